"""Database bootstrapping: create tables and seed the protected categories."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.packages.portfolio.core.config import get_settings
from app.packages.portfolio.crud.folder import folder_crud
from app.packages.portfolio.db import session as db_session
from app.packages.portfolio.models import Base
from app.packages.portfolio.services.folder_service import folder_service
from app.packages.portfolio.utils.text_utils import slugify

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all tables if missing and make sure every protected category exists."""
    logger.info("Initializing database %s", db_session.engine.url.render_as_string(hide_password=True))
    Base.metadata.create_all(bind=db_session.engine)

    session = db_session.SessionLocal()
    try:
        _seed_protected_categories(session)
        session.commit()
    except Exception:  # pragma: no cover - surfaced to the startup hook
        session.rollback()
        logger.exception("Failed to seed protected categories during database initialization")
        raise
    finally:
        session.close()


def _seed_protected_categories(db: Session) -> None:
    """Idempotent: existing categories are flagged protected, missing ones are created."""
    for name in get_settings().protected_categories:
        existing = folder_crud.get_category_by_name(db, name) or folder_crud.get_by_slug(db, slugify(name), None)
        if existing is not None:
            if not existing.is_protected:
                existing.is_protected = True
                db.add(existing)
            continue
        folder_service.create_category(db, name=name, protected=True, auto_commit=False)
