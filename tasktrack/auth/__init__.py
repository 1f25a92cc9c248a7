"""
TASKTRACK - Authentication Module

Registration with email verification, password and Google login, JWT
access/refresh tokens and the bearer-token Auth Gate.
"""

from tasktrack.auth.router import router as auth_router
from tasktrack.auth.dependencies import get_current_identity, CurrentIdentity

__all__ = ["auth_router", "get_current_identity", "CurrentIdentity"]
