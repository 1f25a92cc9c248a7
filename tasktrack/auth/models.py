from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


def _utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as returned by some Mongo clients) as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Optional fields are left out of the stored document when unset so the
# sparse indexes on them only cover records that actually carry a value.
_OPTIONAL_FIELDS = (
    "password_hash",
    "federated_id",
    "federated_provider",
    "profile_image",
    "verification_token",
    "verification_token_expires",
    "refresh_token",
)


@dataclass
class Identity:
    """Account record: credentials, verification state and linked provider id."""

    id: str
    username: str
    email: str
    password_hash: Optional[str] = None
    federated_id: Optional[str] = None
    federated_provider: Optional[str] = None
    profile_image: Optional[str] = None
    is_verified: bool = False
    verification_token: Optional[str] = None
    verification_token_expires: Optional[datetime] = None
    refresh_token: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        username: str,
        email: str,
        password_hash: Optional[str] = None,
        federated_id: Optional[str] = None,
        federated_provider: Optional[str] = None,
        profile_image: Optional[str] = None,
    ) -> "Identity":
        """Create a new identity with generated ID."""
        now = _utcnow()
        return cls(
            id=str(uuid.uuid4()),
            username=username,
            email=email.lower(),
            password_hash=password_hash,
            federated_id=federated_id,
            federated_provider=federated_provider,
            profile_image=profile_image,
            created_at=now,
            updated_at=now,
        )

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    def to_dict(self) -> dict:
        """Convert identity to dictionary for MongoDB storage."""
        doc = {
            "_id": self.id,
            "username": self.username,
            "email": self.email,
            "is_verified": self.is_verified,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        for name in _OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value is not None:
                doc[name] = value
        return doc

    @classmethod
    def from_dict(cls, data: dict) -> "Identity":
        """Create identity from MongoDB document."""
        return cls(
            id=data["_id"],
            username=data["username"],
            email=data["email"],
            password_hash=data.get("password_hash"),
            federated_id=data.get("federated_id"),
            federated_provider=data.get("federated_provider"),
            profile_image=data.get("profile_image"),
            is_verified=data.get("is_verified", False),
            verification_token=data.get("verification_token"),
            verification_token_expires=as_utc(data.get("verification_token_expires")),
            refresh_token=data.get("refresh_token"),
            created_at=as_utc(data["created_at"]),
            updated_at=as_utc(data.get("updated_at", data["created_at"])),
        )
