from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4


def make_id(prefix: str, *scope: str) -> str:
    """``raid-M1-4f0c9e2a7b1d``: prefix, optional scope parts, random suffix.

    Ids stay unique across undo/redo, so a redone raid never reuses the
    deleted row's key.
    """
    return "-".join((prefix, *scope, uuid4().hex[:12]))


def utc_stamp() -> datetime:
    return datetime.now(UTC)
