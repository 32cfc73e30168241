"""Routes exposing the task-side engine operations."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from ...deps import SettingsDependency, TaskServiceDependency
from ...models import Task
from ...schemas import CountResponse, TaskCreate, TaskRead, TaskUpdate
from ..query import ListQuery

router = APIRouter(prefix="/tasks", tags=["tasks"])

WhereQuery = Annotated[
    str | None,
    Query(description='JSON object of equality filters, e.g. {"completed": false}.'),
]
SortQuery = Annotated[
    str | None,
    Query(description='JSON object mapping fields to 1 (ascending) or -1 (descending).'),
]
SelectQuery = Annotated[
    str | None,
    Query(description='JSON object selecting fields with 1, or leaving them out with 0, e.g. {"name": 1}.'),
]
SkipQuery = Annotated[int, Query(ge=0, description="Number of tasks to skip.")]
LimitQuery = Annotated[
    int | None,
    Query(ge=0, description="Maximum number of tasks to return; 0 means no limit."),
]
CountQuery = Annotated[bool, Query(description="Return only the number of matching tasks.")]


def _map_task(task: Task) -> TaskRead:
    return TaskRead.model_validate(task)


@router.get(
    "",
    response_model=list[TaskRead] | CountResponse,
    summary="List tasks with filtering, sorting and pagination",
)
async def list_tasks(
    service: TaskServiceDependency,
    settings: SettingsDependency,
    where: WhereQuery = None,
    sort: SortQuery = None,
    select: SelectQuery = None,
    skip: SkipQuery = 0,
    limit: LimitQuery = None,
    count: CountQuery = False,
) -> list[TaskRead] | CountResponse | JSONResponse:
    query = ListQuery.parse(
        TaskRead,
        where=where,
        sort=sort,
        select=select,
        skip=skip,
        limit=settings.task_list_default_limit if limit is None else limit,
        count=count,
    )
    if query.count:
        return CountResponse(count=await service.count_tasks(query.filters))
    tasks = await service.list_tasks(query.filters, sort=query.sort, skip=query.skip, limit=query.limit)
    documents = [_map_task(task) for task in tasks]
    if query.projected:
        return JSONResponse(content=[query.project(document) for document in documents])
    return documents


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task, optionally assigned to a user",
)
async def create_task(payload: TaskCreate, service: TaskServiceDependency) -> TaskRead:
    task = await service.create_task(
        name=payload.name,
        description=payload.description,
        deadline=payload.deadline,
        completed=payload.completed,
        assigned_user=payload.assigned_user,
        assigned_user_name=payload.assigned_user_name,
    )
    return _map_task(task)


@router.get("/{task_id}", response_model=TaskRead, summary="Retrieve a task by id")
async def get_task(task_id: str, service: TaskServiceDependency) -> TaskRead:
    return _map_task(await service.get_task(task_id))


@router.put("/{task_id}", response_model=TaskRead, summary="Update a task")
@router.patch("/{task_id}", response_model=TaskRead, summary="Update a task")
async def update_task(task_id: str, payload: TaskUpdate, service: TaskServiceDependency) -> TaskRead:
    changes = payload.model_dump(exclude_unset=True)
    return _map_task(await service.update_task(task_id, **changes))


@router.delete("/{task_id}", response_model=TaskRead, summary="Delete a task")
async def delete_task(task_id: str, service: TaskServiceDependency) -> TaskRead:
    return _map_task(await service.delete_task(task_id))
