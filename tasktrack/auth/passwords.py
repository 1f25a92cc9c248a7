"""
TASKTRACK - Password Credential Manager

bcrypt hashing and verification. Stateless: the stored hash lives on the
Identity and is passed in by the caller.
"""

import bcrypt


def hash_password(password: str) -> str:
    """Hash a password using bcrypt with a fresh salt."""
    password_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash. Malformed hashes never match."""
    password_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    try:
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except ValueError:
        return False


# Computed once at import so unknown-email logins pay the same bcrypt cost
# as wrong-password logins.
_DUMMY_HASH: str = hash_password("tasktrack-timing-equalisation")


def verify_dummy(plain_password: str) -> None:
    """Burn one bcrypt check when there is no real hash to compare against."""
    verify_password(plain_password, _DUMMY_HASH)
