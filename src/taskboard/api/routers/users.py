"""Routes exposing the user-side engine operations."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from ...deps import SettingsDependency, UserServiceDependency
from ...models import User
from ...schemas import CountResponse, UserCreate, UserRead, UserUpdate
from ..query import ListQuery

router = APIRouter(prefix="/users", tags=["users"])

WhereQuery = Annotated[str | None, Query(description="JSON object of equality filters.")]
SortQuery = Annotated[str | None, Query(description="JSON object mapping fields to 1 or -1.")]
SelectQuery = Annotated[
    str | None,
    Query(description='JSON object selecting fields with 1, or leaving them out with 0, e.g. {"name": 1}.'),
]
SkipQuery = Annotated[int, Query(ge=0)]
LimitQuery = Annotated[int | None, Query(ge=0, description="0 means no limit.")]
CountQuery = Annotated[bool, Query()]


def _map_user(user: User) -> UserRead:
    return UserRead.model_validate(user)


@router.get(
    "",
    response_model=list[UserRead] | CountResponse,
    summary="List users with filtering, sorting and pagination",
)
async def list_users(
    service: UserServiceDependency,
    settings: SettingsDependency,
    where: WhereQuery = None,
    sort: SortQuery = None,
    select: SelectQuery = None,
    skip: SkipQuery = 0,
    limit: LimitQuery = None,
    count: CountQuery = False,
) -> list[UserRead] | CountResponse | JSONResponse:
    query = ListQuery.parse(
        UserRead,
        where=where,
        sort=sort,
        select=select,
        skip=skip,
        limit=settings.user_list_default_limit if limit is None else limit,
        count=count,
    )
    if query.count:
        return CountResponse(count=await service.count_users(query.filters))
    users = await service.list_users(query.filters, sort=query.sort, skip=query.skip, limit=query.limit)
    documents = [_map_user(user) for user in users]
    if query.projected:
        return JSONResponse(content=[query.project(document) for document in documents])
    return documents


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
async def create_user(payload: UserCreate, service: UserServiceDependency) -> UserRead:
    user = await service.create_user(
        name=payload.name,
        email=payload.email,
        pending_tasks=payload.pending_tasks,
    )
    return _map_user(user)


@router.get("/{user_id}", response_model=UserRead, summary="Retrieve a user by id")
async def get_user(user_id: str, service: UserServiceDependency) -> UserRead:
    return _map_user(await service.get_user(user_id))


@router.put("/{user_id}", response_model=UserRead, summary="Update a user and sync their tasks")
@router.patch("/{user_id}", response_model=UserRead, summary="Update a user and sync their tasks")
async def update_user(user_id: str, payload: UserUpdate, service: UserServiceDependency) -> UserRead:
    changes = payload.model_dump(exclude_unset=True)
    return _map_user(await service.update_user(user_id, **changes))


@router.delete("/{user_id}", response_model=UserRead, summary="Delete a user and unassign their tasks")
async def delete_user(user_id: str, service: UserServiceDependency) -> UserRead:
    return _map_user(await service.delete_user(user_id))
