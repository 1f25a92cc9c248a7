"""
TASKTRACK - Tasks Module

Task CRUD scoped to the owner, with read/complete access for the assigned
supervisor.
"""

from tasktrack.tasks.router import router as tasks_router

__all__ = ["tasks_router"]
