"""
TASKTRACK - Authentication Router

Endpoints for registration, email verification, login, token refresh,
Google login and current-account info.
"""

from typing import Annotated, Dict
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from tasktrack.config import settings
from tasktrack.auth.dependencies import (
    CurrentIdentity,
    RequestLog,
    get_auth_service,
    get_identity_providers,
    get_token_service,
)
from tasktrack.auth.federation import IdentityProvider
from tasktrack.auth.schemas import (
    AccessTokenResponse,
    IdentityResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    RefreshTokenRequest,
    RegisterRequest,
    ResendVerificationRequest,
    TokenPairResponse,
    VerifyEmailResponse,
)
from tasktrack.auth.service import AuthService
from tasktrack.auth.tokens import TokenService
from tasktrack.errors import ServiceError, UpstreamFederationFailure


router = APIRouter(prefix="/users", tags=["Authentication"])

Auth = Annotated[AuthService, Depends(get_auth_service)]


def _client_redirect(path: str, **params: str) -> RedirectResponse:
    url = f"{settings.CLIENT_URL}{path}?{urlencode(params)}"
    response = RedirectResponse(url, status_code=status.HTTP_302_FOUND)
    response.headers["Cache-Control"] = "no-store"
    return response


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(request: RegisterRequest, auth_service: Auth) -> MessageResponse:
    """
    Register with username, email and password.

    The account starts unverified and a verification link is emailed.
    """
    await auth_service.register(
        username=request.username,
        email=request.email,
        password=request.password,
    )
    return MessageResponse(message="Registration successful! Check your email to verify your account.")


@router.post(
    "/verify-email/{token}",
    response_model=VerifyEmailResponse,
    summary="Verify an email address",
)
async def verify_email(token: str, auth_service: Auth) -> VerifyEmailResponse:
    """Consume a verification token and return a fresh access token."""
    _, access_token = await auth_service.verify_email(token)
    return VerifyEmailResponse(
        message="Your email has been successfully verified!",
        token=access_token,
    )


@router.post(
    "/resend-verification-code",
    response_model=MessageResponse,
    summary="Send a new verification link",
)
async def resend_verification_code(request: ResendVerificationRequest, auth_service: Auth) -> MessageResponse:
    await auth_service.resend_verification(request.email)
    return MessageResponse(message="A new verification email has been sent to your inbox.")


@router.post(
    "/login",
    response_model=TokenPairResponse,
    summary="Login and get an access/refresh token pair",
)
async def login(request: LoginRequest, auth_service: Auth) -> TokenPairResponse:
    """
    Authenticate with email and password.

    Use the access token in the Authorization header:
    `Authorization: Bearer <token>`. Logging in again invalidates the
    previous refresh token.
    """
    pair = await auth_service.login(email=request.email, password=request.password)
    return TokenPairResponse(access_token=pair.access, refresh_token=pair.refresh)


@router.post(
    "/refresh-token",
    response_model=AccessTokenResponse,
    summary="Exchange a refresh token for a new access token",
)
async def refresh_token(request: RefreshTokenRequest, auth_service: Auth) -> AccessTokenResponse:
    if not request.refresh_token:
        raise ServiceError("A refresh token is required.")
    access_token = await auth_service.refresh(request.refresh_token)
    return AccessTokenResponse(access_token=access_token)


@router.get(
    "/current-user",
    response_model=IdentityResponse,
    summary="Get current account info",
)
async def current_user(identity: CurrentIdentity) -> IdentityResponse:
    """
    Get the authenticated account's public information.

    Requires a valid access token in the Authorization header.
    """
    return IdentityResponse(
        id=identity.id,
        username=identity.username,
        email=identity.email,
        profile_image=identity.profile_image,
        is_verified=identity.is_verified,
        federated_provider=identity.federated_provider,
        created_at=identity.created_at,
        updated_at=identity.updated_at,
    )


@router.get("/profile", response_model=ProfileResponse, summary="Get the account email")
async def profile(identity: CurrentIdentity) -> ProfileResponse:
    return ProfileResponse(email=identity.email)


@router.get("/auth/{provider}", summary="Start a third-party login")
async def federated_login(
    provider: str,
    request: Request,
    providers: Annotated[Dict[str, IdentityProvider], Depends(get_identity_providers)],
    log: RequestLog,
):
    identity_provider = providers.get(provider)
    if identity_provider is None:
        log.warning("Login requested for unknown or unconfigured provider %r", provider)
        return _client_redirect("/login", error="unknown_provider")

    redirect_uri = f"{settings.BACKEND_URL}{router.prefix}/{provider}/callback"
    try:
        return await identity_provider.authorize_redirect(request, redirect_uri)
    except UpstreamFederationFailure as e:
        log.warning("Could not start login via %s: %s", provider, e.reason)
        return _client_redirect("/login", error="oauth_failed")


@router.get("/{provider}/callback", summary="Finish a third-party login")
async def federated_callback(
    provider: str,
    request: Request,
    providers: Annotated[Dict[str, IdentityProvider], Depends(get_identity_providers)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    log: RequestLog,
) -> RedirectResponse:
    """
    Resolve the provider's answer to a local account and redirect the
    browser back to the client with an access token.
    """
    identity_provider = providers.get(provider)
    if identity_provider is None:
        return _client_redirect("/login", error="unknown_provider")

    try:
        assertion = await identity_provider.fetch_assertion(request)
    except UpstreamFederationFailure as e:
        log.warning("Federated login via %s failed: %s", provider, e.reason)
        return _client_redirect("/login", error="oauth_failed")

    identity = await identity_provider.resolve(assertion)
    access_token = tokens.issue_access(identity.id)
    log.info("Identity %s logged in via %s", identity.id, provider)
    return _client_redirect("/oauth-callback", token=access_token)
