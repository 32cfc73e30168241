"""Document models for tasks and users."""

from __future__ import annotations

from .common import UNASSIGNED, new_document_id, utcnow
from .task import Task, TaskBase
from .user import User, UserBase

__all__ = [
    "Task",
    "TaskBase",
    "UNASSIGNED",
    "User",
    "UserBase",
    "new_document_id",
    "utcnow",
]
