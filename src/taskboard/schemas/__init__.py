"""Pydantic schemas for public interfaces."""

from __future__ import annotations

from .system import CountResponse, ErrorResponse, HealthCheckResponse, RootResponse
from .task import TaskCreate, TaskRead, TaskUpdate
from .user import UserCreate, UserRead, UserUpdate

__all__ = [
    "CountResponse",
    "ErrorResponse",
    "HealthCheckResponse",
    "RootResponse",
    "TaskCreate",
    "TaskRead",
    "TaskUpdate",
    "UserCreate",
    "UserRead",
    "UserUpdate",
]
