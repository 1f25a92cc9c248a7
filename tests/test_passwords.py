"""
TASKTRACK - Password Credential Manager Tests
"""

from tasktrack.auth.passwords import hash_password, verify_dummy, verify_password


class TestHashPassword:

    def test_hash_is_not_plaintext(self):
        hashed = hash_password("plaintextpassword123")
        assert hashed != "plaintextpassword123"
        # bcrypt hashes start with $2a$ or $2b$
        assert hashed.startswith("$2")

    def test_hash_is_salted(self):
        assert hash_password("samepassword") != hash_password("samepassword")


class TestVerifyPassword:

    def test_correct_password(self):
        hashed = hash_password("correct-horse")
        assert verify_password("correct-horse", hashed) is True

    def test_wrong_password(self):
        hashed = hash_password("correct-horse")
        assert verify_password("battery-staple", hashed) is False

    def test_malformed_hash_does_not_raise(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_dummy_verification_returns_nothing(self):
        assert verify_dummy("whatever") is None
