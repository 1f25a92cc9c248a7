"""
TASKTRACK - Task Schemas

Pydantic models for task API requests and responses.
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, EmailStr, Field

from tasktrack.tasks.enums import TaskPriority, TaskRole


class SubtaskSchema(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    completed: bool = False


class TaskCreateRequest(BaseModel):
    """Request model for creating a task."""

    title: str = Field(min_length=1, max_length=500, description="Task title")
    description: str = Field(default="", max_length=5000, description="Task description")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    due_date: Optional[datetime] = Field(default=None, description="Due date")
    subtasks: List[SubtaskSchema] = Field(default_factory=list, description="Checklist items")
    assigned_to: Optional[EmailStr] = Field(default=None, description="Supervisor/assignee email")


class TaskUpdateRequest(BaseModel):
    """Request model for updating a task. Assignees may only send ``completed``."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    priority: Optional[TaskPriority] = None
    completed: Optional[bool] = None
    due_date: Optional[datetime] = None
    subtasks: Optional[List[SubtaskSchema]] = None
    assigned_to: Optional[EmailStr] = None


class TaskResponse(BaseModel):
    """Response model for a single task."""

    id: str = Field(description="Task ID")
    owner_id: str = Field(description="Owner identity ID")
    title: str
    description: str
    priority: TaskPriority
    completed: bool
    due_date: Optional[datetime] = None
    subtasks: List[SubtaskSchema]
    assigned_to: Optional[str] = None
    role: TaskRole = Field(description="Caller's relation to the task")
    created_at: datetime
    updated_at: datetime


class TaskListResponse(BaseModel):
    """Response model for a list of tasks."""

    tasks: List[TaskResponse] = Field(description="List of tasks")
    total: int = Field(description="Total number of tasks in the list")


class TaskDeleteResponse(BaseModel):
    """Response model for task deletion."""

    message: str = Field(description="Success message")
    id: str = Field(description="Deleted task ID")
