"""
TASKTRACK - OAuth Federation Tests

Provider resolution and the redirect/callback routes.
"""

from typing import Optional
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from authlib.integrations.starlette_client import OAuthError
from fastapi.responses import RedirectResponse

from tasktrack.config import settings
from tasktrack.main import app
from tasktrack.auth.dependencies import get_identity_providers
from tasktrack.auth.federation import (
    FederatedAssertion,
    GoogleIdentityProvider,
    IdentityProvider,
    build_identity_providers,
)
from tasktrack.auth.models import Identity
from tasktrack.errors import UpstreamFederationFailure

from helpers import bearer, register, run, stored_identity


ASSERTION = FederatedAssertion(
    provider="fake",
    subject="subject-123",
    email="fern@example.com",
    display_name="Fern Example",
    picture="https://img.example/fern.png",
)


class FakeProvider(IdentityProvider):
    """Provider whose handshake is canned."""

    name = "fake"

    def __init__(self, repository, assertion: Optional[FederatedAssertion] = ASSERTION, failure: bool = False):
        super().__init__(repository)
        self.assertion = assertion
        self.failure = failure

    async def authorize_redirect(self, request, redirect_uri):
        return RedirectResponse(f"https://idp.example/authorize?redirect_uri={redirect_uri}", status_code=302)

    async def fetch_assertion(self, request):
        if self.failure:
            raise UpstreamFederationFailure(reason="access_denied")
        return self.assertion


def query_of(response) -> dict:
    return parse_qs(urlparse(response.headers["location"]).query)


class TestResolve:

    def test_first_login_creates_passwordless_identity(self, identity_repository):
        provider = FakeProvider(identity_repository)

        identity = run(provider.resolve(ASSERTION))
        assert identity.federated_id == "subject-123"
        assert identity.federated_provider == "fake"
        assert identity.password_hash is None
        assert identity.username == "Fern Example"
        assert identity.email == "fern@example.com"
        assert identity.profile_image == "https://img.example/fern.png"
        assert identity_repository.count() == 1

    def test_second_login_returns_same_identity(self, identity_repository):
        provider = FakeProvider(identity_repository)

        first = run(provider.resolve(ASSERTION))
        second = run(provider.resolve(ASSERTION))
        assert second.id == first.id
        assert second == first
        assert identity_repository.count() == 1

    def test_password_account_with_same_email_is_not_merged(self, identity_repository):
        local = Identity.create(username="fern", email=ASSERTION.email, password_hash="x")
        run(identity_repository.create(local))

        federated = run(FakeProvider(identity_repository).resolve(ASSERTION))
        assert federated.id != local.id
        assert identity_repository.count() == 2
        assert run(identity_repository.get_by_id(local.id)).federated_id is None

    def test_missing_display_name_falls_back_to_email_local_part(self, identity_repository):
        assertion = FederatedAssertion(provider="fake", subject="s-2", email="noname@example.com")
        identity = run(FakeProvider(identity_repository).resolve(assertion))
        assert identity.username == "noname"
        assert identity.profile_image is None


class TestGoogleProvider:

    def test_assertion_from_userinfo(self, identity_repository):
        provider = GoogleIdentityProvider(identity_repository, client=MagicMock())
        assertion = provider.assertion_from_userinfo(
            {"sub": "10987", "email": "g@example.com", "name": "G User", "picture": "https://img/g.png"}
        )
        assert assertion == FederatedAssertion(
            provider="google",
            subject="10987",
            email="g@example.com",
            display_name="G User",
            picture="https://img/g.png",
        )

    @pytest.mark.parametrize("userinfo", [None, {}, {"sub": "1"}, {"email": "x@example.com"}])
    def test_incomplete_userinfo(self, identity_repository, userinfo):
        provider = GoogleIdentityProvider(identity_repository, client=MagicMock())
        with pytest.raises(UpstreamFederationFailure):
            provider.assertion_from_userinfo(userinfo)

    def test_token_exchange_failure(self, identity_repository):
        client = MagicMock()
        client.authorize_access_token = AsyncMock(side_effect=OAuthError(error="access_denied"))
        provider = GoogleIdentityProvider(identity_repository, client=client)

        with pytest.raises(UpstreamFederationFailure):
            run(provider.fetch_assertion(MagicMock()))

    def test_fetch_assertion_uses_userinfo(self, identity_repository):
        client = MagicMock()
        client.authorize_access_token = AsyncMock(
            return_value={"access_token": "t", "userinfo": {"sub": "42", "email": "h@example.com"}}
        )
        provider = GoogleIdentityProvider(identity_repository, client=client)

        assertion = run(provider.fetch_assertion(MagicMock()))
        assert assertion.subject == "42"
        assert assertion.display_name is None

    def test_only_configured_providers_are_built(self, identity_repository, monkeypatch):
        monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", None)
        assert build_identity_providers(identity_repository) == {}

        monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "client-id")
        monkeypatch.setattr(settings, "GOOGLE_CLIENT_SECRET", "client-secret")
        providers = build_identity_providers(identity_repository)
        assert set(providers) == {"google"}
        assert isinstance(providers["google"], GoogleIdentityProvider)


class TestFederationRoutes:

    @pytest.fixture
    def provider(self, client, identity_repository) -> FakeProvider:
        provider = FakeProvider(identity_repository)
        app.dependency_overrides[get_identity_providers] = lambda: {"fake": provider}
        return provider

    def test_login_redirects_to_provider(self, client, provider):
        response = client.get("/users/auth/fake", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"].startswith("https://idp.example/authorize")
        assert "/users/fake/callback" in response.headers["location"]

    def test_unknown_provider_redirects_with_error(self, client, provider):
        response = client.get("/users/auth/myspace", follow_redirects=False)
        assert response.status_code == 302
        assert query_of(response) == {"error": ["unknown_provider"]}

    def test_callback_issues_usable_token(self, client, provider, identity_repository):
        response = client.get("/users/fake/callback", follow_redirects=False)
        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith(f"{settings.CLIENT_URL}/oauth-callback")

        token = query_of(response)["token"][0]
        me = client.get("/users/current-user", headers=bearer(token))
        assert me.status_code == 200
        assert me.json()["email"] == ASSERTION.email
        assert me.json()["federated_provider"] == "fake"

    def test_repeated_callback_reuses_identity(self, client, provider, identity_repository):
        client.get("/users/fake/callback", follow_redirects=False)
        client.get("/users/fake/callback", follow_redirects=False)
        assert identity_repository.count() == 1

    def test_callback_does_not_touch_refresh_slot(self, client, provider, identity_repository):
        client.get("/users/fake/callback", follow_redirects=False)
        assert stored_identity(identity_repository, ASSERTION.email).refresh_token is None

    def test_callback_failure_redirects_with_error(self, client, provider, identity_repository):
        provider.failure = True
        response = client.get("/users/fake/callback", follow_redirects=False)
        assert response.status_code == 302
        assert query_of(response) == {"error": ["oauth_failed"]}
        assert identity_repository.count() == 0

    def test_local_registration_and_federation_stay_separate(self, client, provider, identity_repository):
        register(client, {"username": "fern", "email": ASSERTION.email, "password": "fernpassword1"})
        client.get("/users/fake/callback", follow_redirects=False)
        assert identity_repository.count() == 2


class TestGoogleTransportFailures:
    """Network errors talking to Google end in a redirect, not a 500."""

    @pytest.fixture
    def google_client(self, client, identity_repository) -> MagicMock:
        google = MagicMock()
        google.authorize_redirect = AsyncMock(side_effect=httpx.ConnectError("dns failure"))
        google.authorize_access_token = AsyncMock(side_effect=httpx.ConnectError("dns failure"))
        provider = GoogleIdentityProvider(identity_repository, client=google)
        app.dependency_overrides[get_identity_providers] = lambda: {"google": provider}
        return google

    def test_token_exchange_network_error(self, identity_repository):
        google = MagicMock()
        google.authorize_access_token = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))
        provider = GoogleIdentityProvider(identity_repository, client=google)

        with pytest.raises(UpstreamFederationFailure) as exc_info:
            run(provider.fetch_assertion(MagicMock()))
        assert "timed out" in exc_info.value.reason

    def test_callback_redirects_with_error(self, client, google_client, identity_repository):
        response = client.get("/users/google/callback", follow_redirects=False)
        assert response.status_code == 302
        assert query_of(response) == {"error": ["oauth_failed"]}
        assert identity_repository.count() == 0

    def test_login_redirects_with_error(self, client, google_client):
        response = client.get("/users/auth/google", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"].startswith(f"{settings.CLIENT_URL}/login")
        assert query_of(response) == {"error": ["oauth_failed"]}
