"""
TASKTRACK - Error Taxonomy

Service-layer exceptions with a stable machine-readable kind, and the
FastAPI handlers that turn them into JSON responses.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors that map onto a structured HTTP response.

    Each subclass defines an HTTP ``status_code`` and a stable ``kind``.
    ``reason`` carries diagnostic detail (e.g. why a token failed to verify)
    and is only included in the response body when ``expose_reason`` is set.
    """

    status_code: int = 400
    kind: str = "bad_request"
    message: str = "The request could not be processed."
    expose_reason: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        reason: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)
        self.reason = reason
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> dict:
        body = {"detail": self.message, "kind": self.kind}
        if self.expose_reason and self.reason:
            body["reason"] = self.reason
        return body


class DuplicateEmail(ServiceError):
    status_code = 400
    kind = "duplicate_email"
    message = "User already exists with this email address."


class AccountNotFound(ServiceError):
    status_code = 404
    kind = "account_not_found"
    message = "No account found with this email address."


class AlreadyVerified(ServiceError):
    status_code = 400
    kind = "already_verified"
    message = "Your email is already verified."


class InvalidOrExpiredToken(ServiceError):
    status_code = 400
    kind = "invalid_or_expired_token"
    message = "The verification token is invalid or has expired. Please request a new one."


class InvalidCredentials(ServiceError):
    status_code = 400
    kind = "invalid_credentials"
    message = "Incorrect email or password."


class AuthenticationRequired(ServiceError):
    status_code = 401
    kind = "authentication_required"
    message = "Authentication required."


class InvalidToken(ServiceError):
    status_code = 401
    kind = "invalid_token"
    message = "Invalid token."
    expose_reason = True


class Forbidden(ServiceError):
    """Authenticated, but not the owner of the resource."""

    status_code = 403
    kind = "forbidden"
    message = "Unauthorized access."


class InvalidRefreshToken(ServiceError):
    status_code = 401
    kind = "invalid_refresh_token"
    message = "Invalid refresh token."


class RefreshTokenConflict(ServiceError):
    """Another login replaced the refresh slot between read and write."""

    status_code = 409
    kind = "refresh_conflict"
    message = "A concurrent login replaced this session. Please log in again."


class MailDeliveryFailed(ServiceError):
    status_code = 502
    kind = "mail_delivery_failed"
    message = "We could not send the email. Please try again later."


class UpstreamFederationFailure(ServiceError):
    status_code = 502
    kind = "upstream_federation_failure"
    message = "The identity provider could not complete the login."


def register_exception_handlers(app: FastAPI) -> None:
    """Install JSON handlers for service errors and unexpected exceptions."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        log = getattr(request.state, "log", logger)
        log_fn = log.error if exc.status_code >= 500 else log.warning
        log_fn(
            "%s %s -> %s %s%s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.kind,
            f" ({exc.reason})" if exc.reason else "",
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        log = getattr(request.state, "log", logger)
        log.error(
            "Unhandled error on %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "An unexpected error occurred. Please try again later.",
                "kind": "server_error",
            },
        )
