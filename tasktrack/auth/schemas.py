"""
TASKTRACK - Authentication Schemas

Pydantic models for authentication requests and responses.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input.
MAX_PASSWORD_BYTES = 72


class RegisterRequest(BaseModel):
    """Request schema for account registration."""

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded.")
        return value


class LoginRequest(BaseModel):
    """Request schema for password login."""

    email: EmailStr
    password: str


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class RefreshTokenRequest(BaseModel):
    """Refresh body; a missing token is answered with 400, not a validation error."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class TokenPairResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(serialization_alias="accessToken")
    refresh_token: str = Field(serialization_alias="refreshToken")


class AccessTokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(serialization_alias="accessToken")


class VerifyEmailResponse(BaseModel):
    message: str
    token: str


class IdentityResponse(BaseModel):
    """Public account information. Credentials and pending tokens are never included."""

    id: str
    username: str
    email: str
    profile_image: Optional[str] = None
    is_verified: bool
    federated_provider: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProfileResponse(BaseModel):
    email: str


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
