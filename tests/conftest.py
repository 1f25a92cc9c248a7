"""
TASKTRACK - Test Configuration

Shared fixtures for CI-safe testing without MongoDB or SMTP.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import List

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from tasktrack.main import app
from tasktrack.auth.dependencies import get_identity_repository, get_mail_sender
from tasktrack.auth.repository import InMemoryIdentityRepository
from tasktrack.auth.tokens import TokenService
from tasktrack.database import get_database
from tasktrack.errors import MailDeliveryFailed
from tasktrack.mail import MailSender
from tasktrack.tasks.repository import InMemoryTaskRepository
from tasktrack.tasks.router import get_task_repository

from helpers import login, register


_VERIFY_LINK = re.compile(r"/verify-email/([0-9a-f]+)")


@dataclass
class SentMail:
    to: str
    subject: str
    body: str


class RecordingMailSender(MailSender):
    """Mail sender that records messages instead of delivering them."""

    def __init__(self):
        self.sent: List[SentMail] = []
        self.fail = False

    async def send(self, to: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise MailDeliveryFailed(reason="SMTP unavailable")
        self.sent.append(SentMail(to=to, subject=subject, body=html_body))

    def clear(self) -> None:
        self.sent.clear()
        self.fail = False

    def verification_tokens(self, email: str) -> List[str]:
        """Verification tokens mailed to ``email``, oldest first."""
        tokens = []
        for mail in self.sent:
            match = _VERIFY_LINK.search(mail.body)
            if mail.to == email and match:
                tokens.append(match.group(1))
        return tokens


# Global in-memory collaborators shared with the dependency overrides
_identity_repository = InMemoryIdentityRepository()
_task_repository = InMemoryTaskRepository()
_mail_sender = RecordingMailSender()


def override_get_identity_repository():
    return _identity_repository


def override_get_mail_sender():
    return _mail_sender


async def override_get_task_repository():
    return _task_repository


async def override_get_database():
    """Override database dependency (not used by the in-memory repositories)."""
    return MagicMock()


@pytest.fixture
def identity_repository() -> InMemoryIdentityRepository:
    """Provide a fresh in-memory identity repository for each test."""
    _identity_repository.clear()
    return _identity_repository


@pytest.fixture
def task_repository() -> InMemoryTaskRepository:
    _task_repository.clear()
    return _task_repository


@pytest.fixture
def mail_sender() -> RecordingMailSender:
    _mail_sender.clear()
    return _mail_sender


@pytest.fixture
def token_service(identity_repository) -> TokenService:
    return TokenService(identity_repository)


@pytest.fixture
def client(identity_repository, task_repository, mail_sender):
    """Create test client wired to the in-memory collaborators."""
    app.dependency_overrides[get_identity_repository] = override_get_identity_repository
    app.dependency_overrides[get_mail_sender] = override_get_mail_sender
    app.dependency_overrides[get_task_repository] = override_get_task_repository
    app.dependency_overrides[get_database] = override_get_database

    yield TestClient(app)
    # Clean up override after test
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return {"username": "alice", "email": "alice@example.com", "password": "alicepassword123"}


@pytest.fixture
def bob():
    return {"username": "bob", "email": "bob@example.com", "password": "bobpassword123"}


@pytest.fixture
def registered_alice(client, alice):
    """Register alice and return her credentials."""
    register(client, alice)
    return alice


@pytest.fixture
def alice_tokens(client, registered_alice) -> dict:
    response = login(client, registered_alice)
    return response.json()


@pytest.fixture
def alice_headers(alice_tokens) -> dict:
    return {"Authorization": f"Bearer {alice_tokens['accessToken']}"}


@pytest.fixture
def bob_headers(client, bob) -> dict:
    register(client, bob)
    response = login(client, bob)
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


# Time control fixtures for deterministic expiry testing
class FrozenClock:
    """A clock that returns a fixed time for deterministic testing."""

    def __init__(self, frozen_time: datetime):
        self._frozen_time = frozen_time

    def __call__(self) -> datetime:
        return self._frozen_time

    def set(self, new_time: datetime) -> None:
        self._frozen_time = new_time

    def advance(self, delta: timedelta) -> None:
        self._frozen_time += delta


@pytest.fixture
def frozen_now() -> datetime:
    """A fixed 'now' time for testing."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def frozen_clock(frozen_now) -> FrozenClock:
    """A controllable clock for expiry testing."""
    return FrozenClock(frozen_now)
