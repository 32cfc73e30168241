from __future__ import annotations

import os
from collections.abc import AsyncIterator
from datetime import datetime, timezone

os.environ.setdefault("TASKBOARD_ENVIRONMENT", "test")
os.environ.setdefault("TASKBOARD_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from taskboard import models  # noqa: F401
from taskboard.core.config import Settings
from taskboard.deps import get_db_session
from taskboard.main import create_app
from taskboard.models import UNASSIGNED
from taskboard.repositories import TaskRepository, UserRepository
from taskboard.services import TaskService, UserService

DEADLINE = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="test")


@pytest.fixture
def task_service(session: AsyncSession, settings: Settings) -> TaskService:
    return TaskService(session, settings)


@pytest.fixture
def user_service(session: AsyncSession, settings: Settings) -> UserService:
    return UserService(session, settings)


@pytest_asyncio.fixture
async def app(session: AsyncSession, settings: Settings) -> AsyncIterator[FastAPI]:
    application = create_app(settings)

    async def _override_db_session() -> AsyncIterator[AsyncSession]:
        yield session

    application.dependency_overrides[get_db_session] = _override_db_session
    try:
        yield application
    finally:
        application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as http_client:
        yield http_client


async def assert_consistent(session: AsyncSession) -> None:
    """Check every assignment invariant across both stores."""
    tasks = {task.id: task for task in await TaskRepository(session).find()}
    users = {user.id: user for user in await UserRepository(session).find()}

    for task in tasks.values():
        owner = users.get(task.assigned_user)
        if task.assigned_user and not task.completed and owner is not None:
            assert task.id in owner.pending_tasks, f"{task.id} missing from {owner.id}"
        if not task.assigned_user:
            assert task.assigned_user_name == UNASSIGNED
        elif owner is not None:
            assert task.assigned_user_name == owner.name
        if task.completed or not task.assigned_user or owner is None:
            assert all(task.id not in user.pending_tasks for user in users.values())

    for user in users.values():
        assert len(user.pending_tasks) == len(set(user.pending_tasks))
        for task_id in user.pending_tasks:
            task = tasks.get(task_id)
            assert task is not None, f"{user.id} lists missing task {task_id}"
            assert not task.completed
            assert task.assigned_user == user.id


@pytest.fixture
def check_invariants(session: AsyncSession):
    async def _check() -> None:
        await assert_consistent(session)

    return _check
