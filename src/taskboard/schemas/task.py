"""Task-related Pydantic schemas (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TASK_READ_EXAMPLE = {
    "id": "6f1c2a9e0b4d4e7a9c3f5b8d2e1a0c47",
    "name": "Ship release notes",
    "description": "Summarise the changes for the 1.4 release.",
    "deadline": "2026-11-01T17:00:00Z",
    "completed": False,
    "assignedUser": "3b9d4c1f2e6a4b8d9e0f1a2b3c4d5e6f",
    "assignedUserName": "Ann",
    "dateCreated": "2026-10-18T09:30:00Z",
}


class TaskCreate(BaseModel):
    """Payload for creating a task.

    Required fields are checked by the engine so that a missing ``name`` or
    ``deadline`` surfaces as the same validation error on every entry point.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "name": "Ship release notes",
                "deadline": "2026-11-01T17:00:00Z",
                "assignedUser": "3b9d4c1f2e6a4b8d9e0f1a2b3c4d5e6f",
            }
        },
    )

    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    deadline: datetime | None = None
    completed: bool | None = None
    assigned_user: str | None = None
    assigned_user_name: str | None = None


class TaskUpdate(BaseModel):
    """Partial task update; only fields present in the payload are applied."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "completed": True,
            }
        },
    )

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    deadline: datetime | None = None
    completed: bool | None = None
    assigned_user: str | None = None
    assigned_user_name: str | None = None


class TaskRead(BaseModel):
    """Public representation of a task."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        json_schema_extra={"example": TASK_READ_EXAMPLE},
    )

    id: str
    name: str
    description: str | None = None
    deadline: datetime
    completed: bool
    assigned_user: str
    assigned_user_name: str
    date_created: datetime


__all__ = ["TaskCreate", "TaskRead", "TaskUpdate"]
