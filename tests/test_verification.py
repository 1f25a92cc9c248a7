"""
TASKTRACK - Email Verification Workflow Tests
"""

from datetime import timedelta

import pytest

from tasktrack.auth.models import Identity
from tasktrack.auth.verification import VerificationWorkflow
from tasktrack.errors import AccountNotFound, AlreadyVerified, InvalidOrExpiredToken

from helpers import run


@pytest.fixture
def workflow(identity_repository, frozen_clock) -> VerificationWorkflow:
    return VerificationWorkflow(identity_repository, ttl=timedelta(hours=1), clock=frozen_clock)


@pytest.fixture
def pending(identity_repository) -> Identity:
    identity = Identity.create(username="dave", email="dave@example.com", password_hash="x")
    run(identity_repository.create(identity))
    return identity


class TestBegin:

    def test_sets_token_and_expiry(self, workflow, identity_repository, pending, frozen_now):
        token = run(workflow.begin(pending))

        stored = run(identity_repository.get_by_id(pending.id))
        assert stored.verification_token == token
        assert stored.verification_token_expires == frozen_now + timedelta(hours=1)
        assert stored.is_verified is False

    def test_token_has_twenty_bytes_of_entropy(self, workflow, pending):
        token = run(workflow.begin(pending))
        assert len(token) == 40
        int(token, 16)

    def test_new_token_replaces_previous(self, workflow, pending):
        first = run(workflow.begin(pending))
        second = run(workflow.begin(pending))
        assert first != second
        with pytest.raises(InvalidOrExpiredToken):
            run(workflow.complete(first))


class TestComplete:

    def test_marks_verified_and_clears_token(self, workflow, identity_repository, pending):
        token = run(workflow.begin(pending))

        identity = run(workflow.complete(token))
        assert identity.is_verified is True
        stored = run(identity_repository.get_by_id(pending.id))
        assert stored.is_verified is True
        assert stored.verification_token is None
        assert stored.verification_token_expires is None

    def test_token_is_single_use(self, workflow, pending):
        token = run(workflow.begin(pending))
        run(workflow.complete(token))
        with pytest.raises(InvalidOrExpiredToken):
            run(workflow.complete(token))

    def test_unknown_token(self, workflow):
        with pytest.raises(InvalidOrExpiredToken):
            run(workflow.complete("0" * 40))

    def test_expired_token(self, workflow, pending, frozen_clock):
        token = run(workflow.begin(pending))
        frozen_clock.advance(timedelta(hours=2))
        with pytest.raises(InvalidOrExpiredToken):
            run(workflow.complete(token))

    def test_token_invalid_at_exact_expiry(self, workflow, pending, frozen_clock):
        token = run(workflow.begin(pending))
        frozen_clock.advance(timedelta(hours=1))
        with pytest.raises(InvalidOrExpiredToken):
            run(workflow.complete(token))

    def test_token_valid_just_before_expiry(self, workflow, pending, frozen_clock):
        token = run(workflow.begin(pending))
        frozen_clock.advance(timedelta(minutes=59))
        assert run(workflow.complete(token)).is_verified is True


class TestResend:

    def test_resend_invalidates_old_token(self, workflow, pending):
        old = run(workflow.begin(pending))
        _, new = run(workflow.resend(pending.email))

        with pytest.raises(InvalidOrExpiredToken):
            run(workflow.complete(old))
        assert run(workflow.complete(new)).is_verified is True

    def test_resend_unknown_email(self, workflow):
        with pytest.raises(AccountNotFound):
            run(workflow.resend("nobody@example.com"))

    def test_resend_already_verified(self, workflow, pending):
        token = run(workflow.begin(pending))
        run(workflow.complete(token))
        with pytest.raises(AlreadyVerified):
            run(workflow.resend(pending.email))
