"""
TASKTRACK - Task Models

Internal task model for database operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
import uuid

from tasktrack.auth.models import as_utc
from tasktrack.tasks.enums import TaskPriority


def _utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


@dataclass
class Subtask:
    title: str
    completed: bool = False


@dataclass
class Task:
    """Task owned by one identity, optionally assigned to a supervisor by email."""

    id: str
    owner_id: str
    title: str
    priority: TaskPriority
    description: str = ""
    completed: bool = False
    due_date: Optional[datetime] = None
    subtasks: List[Subtask] = field(default_factory=list)
    assigned_to: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        owner_id: str,
        title: str,
        priority: TaskPriority,
        description: str = "",
        due_date: Optional[datetime] = None,
        subtasks: Optional[List[Subtask]] = None,
        assigned_to: Optional[str] = None,
    ) -> "Task":
        """Create a new task with generated ID."""
        now = _utcnow()
        return cls(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            title=title.strip(),
            priority=priority,
            description=description,
            completed=False,
            due_date=due_date,
            subtasks=subtasks or [],
            assigned_to=assigned_to.lower() if assigned_to else None,
            created_at=now,
            updated_at=now,
        )

    def is_owned_by(self, identity_id: str) -> bool:
        return self.owner_id == identity_id

    def is_assigned_to(self, email: str) -> bool:
        return self.assigned_to is not None and self.assigned_to == email.lower()

    def to_dict(self) -> dict:
        """Convert task to dictionary for MongoDB storage."""
        return {
            "_id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "priority": self.priority.value,
            "description": self.description,
            "completed": self.completed,
            "due_date": self.due_date,
            "subtasks": [{"title": s.title, "completed": s.completed} for s in self.subtasks],
            "assigned_to": self.assigned_to,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Create task from MongoDB document."""
        return cls(
            id=data["_id"],
            owner_id=data["owner_id"],
            title=data["title"],
            priority=TaskPriority(data["priority"]),
            description=data.get("description") or "",
            completed=data.get("completed", False),
            due_date=as_utc(data.get("due_date")),
            subtasks=[
                Subtask(title=s["title"], completed=s.get("completed", False))
                for s in data.get("subtasks") or []
            ],
            assigned_to=data.get("assigned_to"),
            created_at=as_utc(data["created_at"]),
            updated_at=as_utc(data["updated_at"]),
        )
