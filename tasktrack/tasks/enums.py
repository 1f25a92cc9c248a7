"""
TASKTRACK - Task Enums
"""

from enum import Enum


class TaskPriority(str, Enum):
    """Task priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskRole(str, Enum):
    """How the caller relates to a task they can see."""
    OWNER = "owner"
    ASSIGNEE = "assignee"
