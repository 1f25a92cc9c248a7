"""
TASKTRACK - Task Router

CRUD endpoints for tasks. All endpoints sit behind the Auth Gate.
"""

from typing import Annotated

from fastapi import APIRouter, HTTPException, status, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from tasktrack.database import get_database
from tasktrack.auth.dependencies import CurrentIdentity, RequestLog, get_mail_sender
from tasktrack.mail import MailSender
from tasktrack.tasks.service import TaskService
from tasktrack.tasks.repository import TaskRepository, TaskRepositoryInterface
from tasktrack.tasks.schemas import (
    TaskCreateRequest,
    TaskUpdateRequest,
    TaskResponse,
    TaskListResponse,
    TaskDeleteResponse,
)


router = APIRouter(prefix="/todos", tags=["Tasks"])


async def get_task_repository(
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
) -> TaskRepositoryInterface:
    """Dependency to get task repository instance."""
    return TaskRepository(db)


async def get_task_service(
    repository: Annotated[TaskRepositoryInterface, Depends(get_task_repository)],
    mail_sender: Annotated[MailSender, Depends(get_mail_sender)],
    log: RequestLog,
) -> TaskService:
    """Dependency to get task service instance."""
    return TaskService(repository, mail_sender, log=log)


Service = Annotated[TaskService, Depends(get_task_service)]


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new task",
)
async def create_task(
    request: TaskCreateRequest,
    identity: CurrentIdentity,
    service: Service,
) -> TaskResponse:
    """
    Create a new task owned by the authenticated account.

    If ``assigned_to`` is set the assignee receives an email.
    """
    return await service.create_task(owner=identity, request=request)


@router.get(
    "/assigned",
    response_model=TaskListResponse,
    summary="List tasks assigned to me",
)
async def list_assigned_tasks(identity: CurrentIdentity, service: Service) -> TaskListResponse:
    tasks = await service.list_assigned(identity)
    return TaskListResponse(tasks=tasks, total=len(tasks))


@router.get(
    "/owner/{owner_id}",
    response_model=TaskListResponse,
    summary="List an owner's tasks",
)
async def list_owned_tasks(owner_id: str, identity: CurrentIdentity, service: Service) -> TaskListResponse:
    """Only the owner may list their own tasks; anyone else gets 403."""
    tasks = await service.list_owned(identity, owner_id)
    return TaskListResponse(tasks=tasks, total=len(tasks))


@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Get a task by ID",
)
async def get_task(task_id: str, identity: CurrentIdentity, service: Service) -> TaskResponse:
    """
    Returns 404 if the task doesn't exist or the caller is neither its
    owner nor its assignee.
    """
    task = await service.get_task(task_id, identity)
    if task is None:
        raise _not_found()
    return task


@router.patch(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Update a task",
)
async def update_task(
    task_id: str,
    request: TaskUpdateRequest,
    identity: CurrentIdentity,
    service: Service,
) -> TaskResponse:
    """
    Update a task by ID. Only provided fields are changed.
    """
    task = await service.update_task(task_id, identity, request)
    if task is None:
        raise _not_found()
    return task


@router.delete(
    "/{task_id}",
    response_model=TaskDeleteResponse,
    summary="Delete a task",
)
async def delete_task(task_id: str, identity: CurrentIdentity, service: Service) -> TaskDeleteResponse:
    deleted = await service.delete_task(task_id, identity)
    if not deleted:
        raise _not_found()
    return TaskDeleteResponse(message="Todo deleted", id=task_id)
