"""
Helpers shared by the test modules.
"""

import asyncio
from typing import Optional

from tasktrack.auth.models import Identity
from tasktrack.auth.repository import IdentityRepositoryInterface


def run(coro):
    """Run a coroutine from a synchronous test."""
    return asyncio.run(coro)


def register(client, credentials: dict):
    return client.post("/users/register", json=credentials)


def login(client, credentials: dict):
    return client.post(
        "/users/login",
        json={"email": credentials["email"], "password": credentials["password"]},
    )


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def stored_identity(repository: IdentityRepositoryInterface, email: str) -> Optional[Identity]:
    return run(repository.get_by_email(email))
