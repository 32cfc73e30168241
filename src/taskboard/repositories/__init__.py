"""Task and User stores."""

from __future__ import annotations

from .base import BaseRepository
from .tasks import TaskRepository
from .users import UserRepository

__all__ = ["BaseRepository", "TaskRepository", "UserRepository"]
