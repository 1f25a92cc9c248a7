"""
TASKTRACK - Task Repository

Repository pattern for task data access.
Includes MongoDB implementation for runtime and in-memory one for testing.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from tasktrack.tasks.models import Task


class TaskRepositoryInterface(ABC):
    """
    Abstract interface for task repository.

    Reads by id are unscoped so the service can let assignees in; writes
    that only an owner may perform take the owner id.
    """

    @abstractmethod
    async def create(self, task: Task) -> Task:
        pass

    @abstractmethod
    async def get_by_id(self, task_id: str) -> Optional[Task]:
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[Task]:
        """List tasks owned by ``owner_id``, newest first."""
        pass

    @abstractmethod
    async def list_assigned_to(self, email: str) -> List[Task]:
        """List tasks whose supervisor/assignee is ``email``, newest first."""
        pass

    @abstractmethod
    async def update(self, task_id: str, updates: dict) -> Optional[Task]:
        """Apply storage-form ``updates`` and return the updated task."""
        pass

    @abstractmethod
    async def delete(self, task_id: str, owner_id: str) -> bool:
        pass


class TaskRepository(TaskRepositoryInterface):
    """
    MongoDB implementation of the task repository.
    """

    COLLECTION_NAME = "tasks"

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[self.COLLECTION_NAME]

    async def create(self, task: Task) -> Task:
        await self.collection.insert_one(task.to_dict())
        return task

    async def get_by_id(self, task_id: str) -> Optional[Task]:
        doc = await self.collection.find_one({"_id": task_id})
        if doc is None:
            return None
        return Task.from_dict(doc)

    async def _list(self, query: dict) -> List[Task]:
        cursor = self.collection.find(query).sort("created_at", DESCENDING)
        tasks: List[Task] = []
        async for doc in cursor:
            tasks.append(Task.from_dict(doc))
        return tasks

    async def list_by_owner(self, owner_id: str) -> List[Task]:
        return await self._list({"owner_id": owner_id})

    async def list_assigned_to(self, email: str) -> List[Task]:
        return await self._list({"assigned_to": email.lower()})

    async def update(self, task_id: str, updates: dict) -> Optional[Task]:
        updates["updated_at"] = datetime.now(timezone.utc)

        result = await self.collection.find_one_and_update(
            {"_id": task_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if result is None:
            return None
        return Task.from_dict(result)

    async def delete(self, task_id: str, owner_id: str) -> bool:
        result = await self.collection.delete_one({"_id": task_id, "owner_id": owner_id})
        return result.deleted_count > 0


class InMemoryTaskRepository(TaskRepositoryInterface):
    """
    In-memory implementation for CI-safe testing.
    """

    def __init__(self):
        self._tasks: dict[str, Task] = {}

    def clear(self) -> None:
        self._tasks.clear()

    async def create(self, task: Task) -> Task:
        self._tasks[task.id] = task
        return task

    async def get_by_id(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def _sorted(self, tasks: List[Task]) -> List[Task]:
        return sorted(tasks, key=lambda t: t.created_at, reverse=True)

    async def list_by_owner(self, owner_id: str) -> List[Task]:
        return self._sorted([t for t in self._tasks.values() if t.owner_id == owner_id])

    async def list_assigned_to(self, email: str) -> List[Task]:
        return self._sorted([t for t in self._tasks.values() if t.is_assigned_to(email)])

    async def update(self, task_id: str, updates: dict) -> Optional[Task]:
        task = self._tasks.get(task_id)
        if task is None:
            return None

        doc = task.to_dict()
        doc.update(updates)
        doc["updated_at"] = datetime.now(timezone.utc)
        updated = Task.from_dict(doc)
        self._tasks[task_id] = updated
        return updated

    async def delete(self, task_id: str, owner_id: str) -> bool:
        task = self._tasks.get(task_id)
        if task is None or task.owner_id != owner_id:
            return False
        del self._tasks[task_id]
        return True
