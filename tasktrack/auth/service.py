import logging
from typing import Optional, Union

from tasktrack.config import settings
from tasktrack.auth.models import Identity
from tasktrack.auth.passwords import hash_password, verify_dummy, verify_password
from tasktrack.auth.repository import IdentityRepositoryInterface
from tasktrack.auth.tokens import TokenPair, TokenService
from tasktrack.auth.verification import VerificationWorkflow
from tasktrack.errors import DuplicateEmail, InvalidCredentials
from tasktrack.mail import MailSender, verification_email

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, verification, login and refresh flows."""

    def __init__(
        self,
        repository: IdentityRepositoryInterface,
        mail_sender: MailSender,
        tokens: Optional[TokenService] = None,
        verification: Optional[VerificationWorkflow] = None,
        require_verified: Optional[bool] = None,
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.repository = repository
        self.mail_sender = mail_sender
        self.log = log or logger
        self.tokens = tokens or TokenService(repository, log=self.log)
        self.verification = verification or VerificationWorkflow(repository, log=self.log)
        self.require_verified = (
            settings.REQUIRE_VERIFIED_LOGIN if require_verified is None else require_verified
        )

    async def _send_verification(self, identity: Identity, token: str) -> None:
        subject, body = verification_email(token)
        await self.mail_sender.send(identity.email, subject, body)

    async def register(self, username: str, email: str, password: str) -> Identity:
        """Create an unverified password account and mail its verification link.

        Mail failure propagates: without the link the account cannot be
        verified (the user can still ask for a resend).
        """
        if await self.repository.get_by_email(email) is not None:
            raise DuplicateEmail()

        identity = Identity.create(
            username=username,
            email=email,
            password_hash=hash_password(password),
        )
        token = self.verification.prepare(identity)
        await self.repository.create(identity)
        self.log.info("Registered identity %s; verification pending", identity.id)

        await self._send_verification(identity, token)
        return identity

    async def verify_email(self, token: str) -> tuple[Identity, str]:
        """Consume a verification token; returns the identity and a fresh access token."""
        identity = await self.verification.complete(token)
        return identity, self.tokens.issue_access(identity.id)

    async def resend_verification(self, email: str) -> Identity:
        identity, token = await self.verification.resend(email)
        await self._send_verification(identity, token)
        return identity

    async def authenticate(self, email: str, password: str) -> Identity:
        """Check an email/password pair. Unknown email and wrong password look the same."""
        identity = await self.repository.get_by_email(email)
        if identity is None or not identity.has_password:
            verify_dummy(password)
            raise InvalidCredentials()
        if not verify_password(password, identity.password_hash):
            raise InvalidCredentials()
        if self.require_verified and not identity.is_verified:
            self.log.info("Login refused for unverified identity %s", identity.id)
            raise InvalidCredentials("Please verify your email address before logging in.")
        return identity

    async def login(self, email: str, password: str) -> TokenPair:
        """Authenticate and mint a token pair; the refresh token replaces any previous one."""
        identity = await self.authenticate(email, password)
        pair = self.tokens.issue_pair(identity.id)
        await self.tokens.store_refresh(identity, pair.refresh)
        self.log.info("Identity %s logged in", identity.id)
        return pair

    async def refresh(self, refresh_token: str) -> str:
        return await self.tokens.refresh(refresh_token)

    async def get_identity_by_id(self, identity_id: str) -> Optional[Identity]:
        return await self.repository.get_by_id(identity_id)
