"""
TASKTRACK - Security Validation

Startup checks for secrets and CORS configuration.
"""

import warnings
from tasktrack.config import settings

_DEFAULT_JWT_SECRET = "dev-secret-key-change-in-production"
_DEFAULT_SESSION_SECRET = "dev-session-secret-change-in-production"


def validate_security_config() -> None:
    """
    Validate security configuration on startup.

    Issues warnings for insecure configurations but does not crash the application
    (to allow tests and development to run).
    """
    if settings.is_production:
        if settings.JWT_SECRET_KEY == _DEFAULT_JWT_SECRET:
            warnings.warn(
                "SECURITY WARNING: Using default JWT_SECRET_KEY in production. "
                "Set JWT_SECRET_KEY environment variable to a strong secret.",
                UserWarning,
            )
        elif len(settings.JWT_SECRET_KEY) < 32:
            warnings.warn(
                "SECURITY WARNING: JWT_SECRET_KEY is too short for production. "
                "Use at least 32 characters.",
                UserWarning,
            )

        if settings.SESSION_SECRET == _DEFAULT_SESSION_SECRET:
            warnings.warn(
                "SECURITY WARNING: Using default SESSION_SECRET in production. "
                "The OAuth handshake state cookie is signed with it.",
                UserWarning,
            )

    # CORS validation
    if "*" in settings.CORS_ORIGINS:
        warnings.warn(
            "SECURITY WARNING: CORS wildcard (*) detected. "
            "Set specific origins via CORS_ORIGINS.",
            UserWarning,
        )
