"""
TASKTRACK - Task Service

Task operations with the ownership rules the Auth Gate leaves to resource
handlers: the owner may do anything, the assigned supervisor may read the
task and toggle ``completed``, everyone else sees nothing.
"""

import logging
from typing import List, Optional, Union

from tasktrack.auth.models import Identity
from tasktrack.errors import Forbidden
from tasktrack.mail import MailSender, assignment_email
from tasktrack.tasks.enums import TaskRole
from tasktrack.tasks.models import Subtask, Task
from tasktrack.tasks.repository import TaskRepositoryInterface
from tasktrack.tasks.schemas import SubtaskSchema, TaskCreateRequest, TaskResponse, TaskUpdateRequest

logger = logging.getLogger(__name__)


class TaskService:
    """Service layer for task business logic."""

    def __init__(
        self,
        repository: TaskRepositoryInterface,
        mail_sender: MailSender,
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.repository = repository
        self.mail_sender = mail_sender
        self.log = log or logger

    @staticmethod
    def role_of(task: Task, identity: Identity) -> Optional[TaskRole]:
        """Return how ``identity`` relates to ``task``, or None if it may not see it."""
        if task.is_owned_by(identity.id):
            return TaskRole.OWNER
        if task.is_assigned_to(identity.email):
            return TaskRole.ASSIGNEE
        return None

    def _task_to_response(self, task: Task, role: TaskRole) -> TaskResponse:
        return TaskResponse(
            id=task.id,
            owner_id=task.owner_id,
            title=task.title,
            description=task.description,
            priority=task.priority,
            completed=task.completed,
            due_date=task.due_date,
            subtasks=[SubtaskSchema(title=s.title, completed=s.completed) for s in task.subtasks],
            assigned_to=task.assigned_to,
            role=role,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )

    async def _notify_assignee(self, task: Task) -> None:
        subject, body = assignment_email(task.id, task.title)
        await self.mail_sender.send(task.assigned_to, subject, body)
        self.log.info("Assignment notice for task %s sent", task.id)

    async def create_task(self, owner: Identity, request: TaskCreateRequest) -> TaskResponse:
        """Create a task owned by ``owner``; the assignee, if any, is notified by mail."""
        task = Task.create(
            owner_id=owner.id,
            title=request.title,
            priority=request.priority,
            description=request.description,
            due_date=request.due_date,
            subtasks=[Subtask(title=s.title, completed=s.completed) for s in request.subtasks],
            assigned_to=request.assigned_to,
        )
        await self.repository.create(task)
        if task.assigned_to:
            await self._notify_assignee(task)
        return self._task_to_response(task, TaskRole.OWNER)

    async def list_owned(self, caller: Identity, owner_id: str) -> List[TaskResponse]:
        """List ``owner_id``'s tasks; only the owner may ask."""
        if caller.id != owner_id:
            self.log.warning("Identity %s tried to list tasks of %s", caller.id, owner_id)
            raise Forbidden()
        tasks = await self.repository.list_by_owner(owner_id)
        return [self._task_to_response(t, TaskRole.OWNER) for t in tasks]

    async def list_assigned(self, caller: Identity) -> List[TaskResponse]:
        tasks = await self.repository.list_assigned_to(caller.email)
        return [self._task_to_response(t, TaskRole.ASSIGNEE) for t in tasks]

    async def get_task(self, task_id: str, caller: Identity) -> Optional[TaskResponse]:
        """Get a task visible to ``caller``; None if missing or not theirs."""
        task = await self.repository.get_by_id(task_id)
        if task is None:
            return None
        role = self.role_of(task, caller)
        if role is None:
            return None
        return self._task_to_response(task, role)

    async def update_task(
        self,
        task_id: str,
        caller: Identity,
        request: TaskUpdateRequest,
    ) -> Optional[TaskResponse]:
        """Apply the provided fields. Assignees may only change ``completed``."""
        task = await self.repository.get_by_id(task_id)
        if task is None:
            return None
        role = self.role_of(task, caller)
        if role is None:
            return None

        request_data = request.model_dump(exclude_unset=True)
        if role is TaskRole.ASSIGNEE and set(request_data) - {"completed"}:
            raise Forbidden("Assignees may only change the completion state.")

        updates = {}
        for name in ("title", "description", "completed", "due_date"):
            if name in request_data and (request_data[name] is not None or name == "due_date"):
                updates[name] = request_data[name]
        if request.priority is not None:
            updates["priority"] = request.priority.value
        if request.subtasks is not None:
            updates["subtasks"] = [s.model_dump() for s in request.subtasks]
        if "assigned_to" in request_data:
            updates["assigned_to"] = request.assigned_to.lower() if request.assigned_to else None

        if not updates:
            return self._task_to_response(task, role)

        updated = await self.repository.update(task_id, updates)
        if updated is None:
            return None

        reassigned = updates.get("assigned_to")
        if reassigned and reassigned != task.assigned_to:
            await self._notify_assignee(updated)
        return self._task_to_response(updated, role)

    async def delete_task(self, task_id: str, caller: Identity) -> bool:
        """Delete a task, scoped to owner."""
        return await self.repository.delete(task_id, caller.id)
