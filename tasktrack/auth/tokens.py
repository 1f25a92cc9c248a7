"""
TASKTRACK - Token Service

Signs and verifies access/refresh JWTs (python-jose, shared secret) and owns
the single refresh slot persisted on each Identity.

Every token carries the same claim shape regardless of how it was issued
(password login, email verification, federation or refresh):

    sub   identity id
    type  "access" or "refresh"
    jti   random id, so two tokens minted in the same second still differ
    iat   issued-at
    exp   expiry
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from jose import JWTError, jwt

from tasktrack.config import settings
from tasktrack.auth.models import Identity
from tasktrack.auth.repository import IdentityRepositoryInterface
from tasktrack.errors import InvalidRefreshToken, InvalidToken, RefreshTokenConflict

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPolicy:
    """Lifetimes applied to every issuance path."""

    access_ttl: timedelta
    refresh_ttl: timedelta

    @classmethod
    def from_settings(cls) -> "TokenPolicy":
        return cls(
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_TTL_DAYS),
        )


@dataclass(frozen=True)
class TokenPair:
    access: str
    refresh: str


@dataclass(frozen=True)
class TokenClaims:
    identity_id: str
    token_type: str
    jti: str
    expires_at: datetime


class TokenService:
    """JWT issuance/verification plus refresh-slot persistence."""

    def __init__(
        self,
        repository: IdentityRepositoryInterface,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        policy: Optional[TokenPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.repository = repository
        self.secret_key = secret_key or settings.JWT_SECRET_KEY
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.policy = policy or TokenPolicy.from_settings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.log = log or logger

    def _encode(self, identity_id: str, token_type: str, ttl: timedelta) -> str:
        now = self._clock()
        claims = {
            "sub": identity_id,
            "type": token_type,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def issue_access(self, identity_id: str, ttl: Optional[timedelta] = None) -> str:
        """Sign an access token; ``ttl`` defaults to the policy's access lifetime."""
        return self._encode(identity_id, ACCESS, ttl if ttl is not None else self.policy.access_ttl)

    def issue_refresh(self, identity_id: str, ttl: Optional[timedelta] = None) -> str:
        return self._encode(identity_id, REFRESH, ttl if ttl is not None else self.policy.refresh_ttl)

    def issue_pair(self, identity_id: str) -> TokenPair:
        """Sign an access/refresh pair. The caller persists ``refresh`` via ``store_refresh``."""
        return TokenPair(access=self.issue_access(identity_id), refresh=self.issue_refresh(identity_id))

    def verify(self, token: str, expected_type: str = ACCESS) -> TokenClaims:
        """Check signature, expiry and claim shape.

        Every failure surfaces as ``InvalidToken`` with the underlying reason
        attached for diagnostics.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            raise InvalidToken(reason=str(e) or type(e).__name__) from e

        identity_id = payload.get("sub")
        if not identity_id:
            raise InvalidToken(reason="Token has no subject.")
        token_type = payload.get("type")
        if token_type != expected_type:
            raise InvalidToken(reason=f"Expected a {expected_type} token, got {token_type!r}.")

        return TokenClaims(
            identity_id=identity_id,
            token_type=token_type,
            jti=payload.get("jti", ""),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    async def store_refresh(self, identity: Identity, refresh_token: str) -> None:
        """Overwrite the identity's refresh slot with compare-and-set.

        ``identity.refresh_token`` is the value read together with the
        identity; if another login replaced it since, the write is refused
        with ``RefreshTokenConflict`` rather than silently clobbering it.
        """
        swapped = await self.repository.compare_and_set_refresh_token(
            identity.id,
            expected=identity.refresh_token,
            new=refresh_token,
        )
        if not swapped:
            self.log.warning("Refresh slot for identity %s changed concurrently; login refused", identity.id)
            raise RefreshTokenConflict()
        identity.refresh_token = refresh_token

    async def refresh(self, presented: str) -> str:
        """Exchange the stored refresh token for a new access token.

        The refresh token itself is not rotated here.
        """
        identity = await self.repository.get_by_refresh_token(presented)
        if identity is None:
            self.log.info("Refresh rejected: token is not the current refresh token of any identity")
            raise InvalidRefreshToken()

        try:
            claims = self.verify(presented, expected_type=REFRESH)
        except InvalidToken as e:
            self.log.info("Refresh rejected for identity %s: %s", identity.id, e.reason)
            raise InvalidRefreshToken(reason=e.reason) from e

        if claims.identity_id != identity.id:
            self.log.warning("Refresh rejected: token subject does not match slot owner %s", identity.id)
            raise InvalidRefreshToken(reason="Subject mismatch.")

        return self.issue_access(identity.id)
