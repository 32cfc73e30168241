"""Shared column helpers for the document tables."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

UNASSIGNED = "unassigned"


def utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def new_document_id() -> str:
    """Return a fresh opaque document identifier."""
    return uuid.uuid4().hex


__all__ = ["UNASSIGNED", "new_document_id", "utcnow"]
