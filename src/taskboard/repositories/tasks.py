"""Task Store: persistence primitives for task documents."""

from __future__ import annotations

from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import Task
from .base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    """Concrete repository encapsulating ``Task`` persistence operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Task)

    async def list_assigned_to(self, user_id: str) -> list[Task]:
        """Return every task whose ``assigned_user`` references ``user_id``."""
        return await self.find({"assigned_user": user_id})
