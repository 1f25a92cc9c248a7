"""
TASKTRACK - Configuration Module

This module handles application configuration via environment variables.
"""

import os
from typing import Optional


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "TASKTRACK API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = _env_bool("DEBUG")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # MongoDB
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://mongodb:27017")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "tasktrack")

    # Public URLs used to compose verification and OAuth callback links
    BACKEND_URL: str = os.getenv("BACKEND_URL", "http://localhost:8000").rstrip("/")
    CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:5173").rstrip("/")

    # CORS - Allowed origins for client requests
    # Multiple origins can be comma-separated
    CORS_ORIGINS: list[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
        if origin.strip()
    ]

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # JWT Configuration
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_TTL_MINUTES: int = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "420"))
    REFRESH_TOKEN_TTL_DAYS: int = int(os.getenv("REFRESH_TOKEN_TTL_DAYS", "7"))

    # Email verification
    VERIFICATION_TOKEN_TTL_MINUTES: int = int(os.getenv("VERIFICATION_TOKEN_TTL_MINUTES", "60"))
    # Unverified accounts may log in unless this is enabled
    REQUIRE_VERIFIED_LOGIN: bool = _env_bool("REQUIRE_VERIFIED_LOGIN")

    # Session cookie backing the OAuth redirect handshake (state parameter)
    SESSION_SECRET: str = os.getenv("SESSION_SECRET", "dev-session-secret-change-in-production")

    # Google OAuth
    GOOGLE_CLIENT_ID: Optional[str] = os.getenv("GOOGLE_CLIENT_ID", None)
    GOOGLE_CLIENT_SECRET: Optional[str] = os.getenv("GOOGLE_CLIENT_SECRET", None)

    # Outbound mail (SMTP). Unset SMTP_HOST means dev mode: mail is logged, not sent.
    SMTP_HOST: Optional[str] = os.getenv("SMTP_HOST", None)
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER: Optional[str] = os.getenv("SMTP_USER", None)
    SMTP_PASSWORD: Optional[str] = os.getenv("SMTP_PASSWORD", None)
    SMTP_USE_TLS: bool = _env_bool("SMTP_USE_TLS", "true")
    MAIL_FROM: Optional[str] = os.getenv("MAIL_FROM", None)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


settings = Settings()
