"""Reusable FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from .core.config import Settings, get_settings
from .db.session import get_session
from .services import TaskService, UserService

SettingsDependency = Annotated[Settings, Depends(get_settings)]


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields a database session."""

    async for session in get_session():
        yield session


DatabaseSessionDependency = Annotated[AsyncSession, Depends(get_db_session)]


def get_task_service(session: DatabaseSessionDependency, settings: SettingsDependency) -> TaskService:
    return TaskService(session, settings)


def get_user_service(session: DatabaseSessionDependency, settings: SettingsDependency) -> UserService:
    return UserService(session, settings)


TaskServiceDependency = Annotated[TaskService, Depends(get_task_service)]
UserServiceDependency = Annotated[UserService, Depends(get_user_service)]


__all__ = [
    "DatabaseSessionDependency",
    "SettingsDependency",
    "TaskServiceDependency",
    "UserServiceDependency",
    "get_db_session",
    "get_task_service",
    "get_user_service",
]
