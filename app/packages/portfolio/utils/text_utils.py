"""Text utilities: slug derivation and upload file naming.

These helpers centralize the rules used across folder_service/media_service:
- slug is lower-case, whitespace runs collapse to one '-', anything outside
  ``[a-z0-9-]`` is dropped (accented letters included);
- uploaded assets are named ``<media id>-<original name>``.
"""

from __future__ import annotations

import os
import re

_WHITESPACE_RE = re.compile(r"\s+")
_SLUG_DROP_RE = re.compile(r"[^a-z0-9-]")


def slugify(name: str | None) -> str:
    s = (name or "").lower()
    s = _WHITESPACE_RE.sub("-", s)
    return _SLUG_DROP_RE.sub("", s)


def normalize_name(name: str | None) -> str:
    return (name or "").strip()


def asset_filename(media_id: str, original: str | None) -> str:
    base = os.path.basename((original or "").replace("\\", "/")) or "file"
    return f"{media_id}-{base}"


def file_extension(filename: str | None, default: str = "jpg") -> str:
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    return ext or default
