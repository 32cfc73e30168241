"""User-related Pydantic schemas (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserCreate(BaseModel):
    """Payload for creating a user, optionally with tasks to take over."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "name": "Ann",
                "email": "ann@example.com",
                "pendingTasks": [],
            }
        },
    )

    name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=320)
    pending_tasks: list[str] | None = None


class UserUpdate(BaseModel):
    """Partial user update; a ``pendingTasks`` list replaces the whole set."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=320)
    pending_tasks: list[str] | None = None


class UserRead(BaseModel):
    """Public representation of a user."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    name: str
    email: str
    pending_tasks: list[str]
    date_created: datetime


__all__ = ["UserCreate", "UserRead", "UserUpdate"]
