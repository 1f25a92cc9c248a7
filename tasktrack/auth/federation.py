"""
TASKTRACK - OAuth Federation Adapter

Each third-party login is an ``IdentityProvider``: it runs the redirect
handshake, turns the provider's answer into a ``FederatedAssertion`` and
resolves that assertion into a local Identity. Providers never issue
tokens; the callback route hands the resolved Identity to the Token Service.

Adding a provider means adding a subclass and listing it in
``build_identity_providers``.

The authlib registry below is populated at import for providers whose
client id and secret are configured. The OAuth ``state`` parameter lives in
the Starlette session between redirect and callback, so the app must run
``SessionMiddleware``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import httpx
from authlib.integrations.starlette_client import OAuth, OAuthError
from pymongo.errors import DuplicateKeyError
from starlette.requests import Request
from starlette.responses import Response

from tasktrack.config import settings
from tasktrack.auth.models import Identity
from tasktrack.auth.repository import IdentityRepositoryInterface
from tasktrack.errors import UpstreamFederationFailure

logger = logging.getLogger(__name__)

oauth = OAuth()

# Google -- OIDC discovery
if settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET:
    oauth.register(
        name="google",
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_kwargs={"scope": "openid email profile"},
    )
    logger.info("Google OAuth provider registered")


@dataclass(frozen=True)
class FederatedAssertion:
    """Normalised identity claims returned by a provider."""

    provider: str
    subject: str
    email: str
    display_name: Optional[str] = None
    picture: Optional[str] = None


class IdentityProvider(ABC):
    """A third-party login method."""

    name: str = ""

    def __init__(self, repository: IdentityRepositoryInterface):
        self.repository = repository

    @abstractmethod
    async def authorize_redirect(self, request: Request, redirect_uri: str) -> Response:
        """Start the handshake by redirecting the browser to the provider."""
        pass

    @abstractmethod
    async def fetch_assertion(self, request: Request) -> FederatedAssertion:
        """Finish the handshake on the callback request.

        Raises ``UpstreamFederationFailure`` if the provider refuses or
        returns an unusable profile.
        """
        pass

    async def resolve(self, assertion: FederatedAssertion) -> Identity:
        """Find the identity linked to ``assertion.subject``, creating it on first login.

        Lookup is by provider subject only. An existing password account with
        the same email is left alone, so the two stay separate identities.
        """
        identity = await self.repository.get_by_federated_id(assertion.subject)
        if identity is not None:
            return identity

        identity = Identity.create(
            username=assertion.display_name or assertion.email.split("@", 1)[0],
            email=assertion.email,
            federated_id=assertion.subject,
            federated_provider=assertion.provider,
            profile_image=assertion.picture,
        )
        try:
            await self.repository.create(identity)
        except DuplicateKeyError:
            # Lost a first-login race for the same subject; use the winner's record.
            existing = await self.repository.get_by_federated_id(assertion.subject)
            if existing is None:
                raise
            return existing

        logger.info("Created federated identity %s via %s", identity.id, assertion.provider)
        return identity


class GoogleIdentityProvider(IdentityProvider):
    """Google OpenID Connect login."""

    name = "google"

    def __init__(self, repository: IdentityRepositoryInterface, client=None):
        super().__init__(repository)
        self.client = client or oauth.create_client(self.name)

    async def authorize_redirect(self, request: Request, redirect_uri: str) -> Response:
        try:
            return await self.client.authorize_redirect(request, redirect_uri)
        except httpx.HTTPError as e:
            # Discovery metadata is fetched lazily on the first redirect
            logger.warning("Google authorization redirect failed: %s", e)
            raise UpstreamFederationFailure(reason=str(e)) from e

    async def fetch_assertion(self, request: Request) -> FederatedAssertion:
        try:
            token = await self.client.authorize_access_token(request)
        except (OAuthError, httpx.HTTPError) as e:
            logger.warning("Google token exchange failed: %s", e)
            raise UpstreamFederationFailure(reason=str(e)) from e

        return self.assertion_from_userinfo(token.get("userinfo"))

    def assertion_from_userinfo(self, userinfo: Optional[dict]) -> FederatedAssertion:
        if not userinfo:
            raise UpstreamFederationFailure(reason="No userinfo in Google token response.")

        subject = userinfo.get("sub")
        email = userinfo.get("email")
        if not subject or not email:
            raise UpstreamFederationFailure(reason="Google profile is missing sub or email.")

        return FederatedAssertion(
            provider=self.name,
            subject=str(subject),
            email=email,
            display_name=userinfo.get("name"),
            picture=userinfo.get("picture") or None,
        )


def build_identity_providers(repository: IdentityRepositoryInterface) -> Dict[str, IdentityProvider]:
    """Instantiate every provider that has credentials configured, keyed by name."""
    providers: Dict[str, IdentityProvider] = {}
    if settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET:
        providers[GoogleIdentityProvider.name] = GoogleIdentityProvider(repository)
    return providers
