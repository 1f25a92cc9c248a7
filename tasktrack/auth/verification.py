"""
TASKTRACK - Email Verification Workflow

    Unverified(pending token) --complete--> Verified
    Unverified(pending token) --resend----> Unverified(new pending token)

Only one token is pending at a time; issuing a new one makes the previous
one unusable even before it expires.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from tasktrack.config import settings
from tasktrack.auth.models import Identity, as_utc
from tasktrack.auth.repository import IdentityRepositoryInterface
from tasktrack.errors import AccountNotFound, AlreadyVerified, InvalidOrExpiredToken

logger = logging.getLogger(__name__)

TOKEN_BYTES = 20


class VerificationWorkflow:
    """Issues and consumes time-boxed email verification tokens."""

    def __init__(
        self,
        repository: IdentityRepositoryInterface,
        ttl: Optional[timedelta] = None,
        clock: Optional[Callable[[], datetime]] = None,
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.repository = repository
        self.ttl = ttl if ttl is not None else timedelta(minutes=settings.VERIFICATION_TOKEN_TTL_MINUTES)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.log = log or logger

    def _now(self) -> datetime:
        return self._clock()

    def prepare(self, identity: Identity) -> str:
        """Put a fresh pending token on ``identity`` without persisting it."""
        token = secrets.token_hex(TOKEN_BYTES)
        identity.verification_token = token
        identity.verification_token_expires = self._now() + self.ttl
        return token

    async def begin(self, identity: Identity) -> str:
        """Issue a new pending token, persist it and return it for delivery."""
        token = self.prepare(identity)
        await self.repository.save(identity)
        self.log.info("Verification token issued for identity %s", identity.id)
        return token

    async def complete(self, token: str) -> Identity:
        """Consume a pending token and mark the identity verified."""
        identity = await self.repository.get_by_verification_token(token)
        if identity is None:
            self.log.info("Verification rejected: unknown or already consumed token")
            raise InvalidOrExpiredToken()

        expires = as_utc(identity.verification_token_expires)
        if expires is None or expires <= self._now():
            self.log.info("Verification rejected: token for identity %s expired at %s", identity.id, expires)
            raise InvalidOrExpiredToken()

        identity.is_verified = True
        identity.verification_token = None
        identity.verification_token_expires = None
        await self.repository.save(identity)
        self.log.info("Identity %s verified", identity.id)
        return identity

    async def resend(self, email: str) -> tuple[Identity, str]:
        """Replace the pending token for the account registered under ``email``."""
        identity = await self.repository.get_by_email(email)
        if identity is None:
            raise AccountNotFound()
        if identity.is_verified:
            raise AlreadyVerified()
        token = await self.begin(identity)
        return identity, token
