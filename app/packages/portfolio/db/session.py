"""数据库引擎与会话工厂。"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.packages.portfolio.core.config import get_settings

settings = get_settings()

_connect_args = {"check_same_thread": False} if settings.sql_database_url.startswith("sqlite") else {}

engine = create_engine(
    settings.sql_database_url,
    pool_pre_ping=True,
    echo=settings.database_echo,
    connect_args=_connect_args,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
