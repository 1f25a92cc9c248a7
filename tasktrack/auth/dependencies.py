"""
TASKTRACK - Authentication Dependencies

FastAPI providers for the auth components, and the Auth Gate
(``get_current_identity``) that every protected route depends on.

The gate only establishes who is calling. Ownership checks belong to the
resource handlers.
"""

import logging
from typing import Annotated, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

from tasktrack.database import get_database
from tasktrack.auth.federation import IdentityProvider, build_identity_providers
from tasktrack.auth.models import Identity
from tasktrack.auth.repository import IdentityRepositoryInterface, MongoIdentityRepository
from tasktrack.auth.service import AuthService
from tasktrack.auth.tokens import TokenService
from tasktrack.errors import AccountNotFound, AuthenticationRequired
from tasktrack.mail import MailSender, SmtpMailSender
from tasktrack.observability import get_request_logger


# HTTP Bearer token scheme - auto_error=False to handle missing tokens ourselves
bearer_scheme = HTTPBearer(auto_error=False)

RequestLog = Annotated[logging.LoggerAdapter, Depends(get_request_logger)]


def get_identity_repository(
    db: Annotated[AsyncIOMotorDatabase, Depends(get_database)]
) -> IdentityRepositoryInterface:
    """Dependency to get the identity repository backed by MongoDB."""
    return MongoIdentityRepository(db)


def get_mail_sender() -> MailSender:
    return SmtpMailSender()


def get_token_service(
    repository: Annotated[IdentityRepositoryInterface, Depends(get_identity_repository)],
    log: RequestLog,
) -> TokenService:
    return TokenService(repository, log=log)


def get_auth_service(
    repository: Annotated[IdentityRepositoryInterface, Depends(get_identity_repository)],
    mail_sender: Annotated[MailSender, Depends(get_mail_sender)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    log: RequestLog,
) -> AuthService:
    """Dependency to get AuthService wired to the request's repository and logger."""
    return AuthService(repository, mail_sender, tokens=tokens, log=log)


def get_identity_providers(
    repository: Annotated[IdentityRepositoryInterface, Depends(get_identity_repository)],
) -> Dict[str, IdentityProvider]:
    return build_identity_providers(repository)


async def get_current_identity(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    log: RequestLog,
) -> Identity:
    """Auth Gate: bearer token -> verified claims -> Identity on ``request.state``."""
    if credentials is None or not credentials.credentials.strip():
        raise AuthenticationRequired()

    claims = tokens.verify(credentials.credentials.strip())

    identity = await tokens.repository.get_by_id(claims.identity_id)
    if identity is None:
        log.info("Token subject %s has no identity", claims.identity_id)
        raise AccountNotFound("User not found.", status_code=401)

    request.state.identity = identity
    return identity


# Type alias for cleaner dependency injection
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
