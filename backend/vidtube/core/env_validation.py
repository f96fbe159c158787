"""
Environment variable validation and security checks.

This module validates that all required environment variables are properly
configured before the application starts.
"""

import sys
from typing import List, Optional, Tuple

from vidtube.core.config import settings
from vidtube.core.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_MARKERS = ("change", "your-", "example", "secret-key")


def validate_secret_key(key_name: str, key_value: Optional[str], min_length: int = 32) -> List[str]:
    """
    Validate that a secret key meets security requirements.

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not key_value:
        errors.append(f"{key_name} is not set")
        return errors

    if len(key_value) < min_length:
        errors.append(
            f"{key_name} is too short (must be at least {min_length} characters)"
        )

    if any(marker in key_value.lower() for marker in PLACEHOLDER_MARKERS):
        errors.append(
            f"{key_name} appears to be a placeholder value - update with a real secret key"
        )

    return errors


def validate_token_secrets() -> List[str]:
    """Both token secrets must be valid and must differ from each other."""
    errors = []
    errors.extend(validate_secret_key("ACCESS_TOKEN_SECRET", settings.ACCESS_TOKEN_SECRET))
    errors.extend(validate_secret_key("REFRESH_TOKEN_SECRET", settings.REFRESH_TOKEN_SECRET))

    if settings.ACCESS_TOKEN_SECRET == settings.REFRESH_TOKEN_SECRET:
        errors.append(
            "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be different"
        )

    return errors


def validate_database_url() -> List[str]:
    """
    Validate database URL configuration.

    PostgreSQL through asyncpg everywhere; the aiosqlite driver is accepted
    only when APP_ENV=testing.
    """
    errors = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")
        return errors

    allowed = ["postgresql+asyncpg://"]
    if settings.is_testing:
        allowed.append("sqlite+aiosqlite://")

    if not settings.DATABASE_URL.startswith(tuple(allowed)):
        errors.append(
            "DATABASE_URL must use asyncpg driver (format: postgresql+asyncpg://...)"
        )

    return errors


def validate_redis_url() -> List[str]:
    errors = []

    if not settings.REDIS_URL:
        errors.append("REDIS_URL is not set")
        return errors

    if not settings.REDIS_URL.startswith(("redis://", "rediss://")):
        errors.append(
            "REDIS_URL must start with redis:// (format: redis://host:port/db)"
        )

    return errors


def validate_media_settings() -> List[str]:
    """Media store credentials are optional (instance roles), but warn when absent."""
    if not settings.MEDIA_BUCKET:
        return ["MEDIA_BUCKET is not set"]

    if not (settings.MEDIA_ACCESS_KEY and settings.MEDIA_SECRET_KEY):
        logger.warning(
            "environment_validation_warning",
            message="MEDIA_ACCESS_KEY / MEDIA_SECRET_KEY not set - relying on the default AWS credential chain",
        )
    return []


def validate_production_settings() -> List[str]:
    errors = []

    if settings.DEBUG:
        errors.append("DEBUG must be false in production")

    if not settings.COOKIE_SECURE:
        errors.append("COOKIE_SECURE must be true in production")

    if "localhost" in ",".join(settings.ALLOWED_ORIGINS):
        logger.warning(
            "localhost_in_allowed_origins",
            message="ALLOWED_ORIGINS includes localhost in production - may be insecure"
        )

    if settings.LOG_FORMAT != "json":
        logger.warning(
            "log_format_not_json",
            message="LOG_FORMAT should be 'json' in production for better log aggregation"
        )

    if settings.LOG_LEVEL == "DEBUG":
        logger.warning(
            "log_level_is_debug",
            message="LOG_LEVEL is DEBUG in production - may impact performance"
        )

    return errors


def validate_environment() -> Tuple[bool, List[str]]:
    """
    Validate all environment variables.

    Returns:
        (is_valid, list_of_errors)
    """
    all_errors = []

    logger.info(
        "validating_environment",
        app_env=settings.APP_ENV,
        app_name=settings.APP_NAME
    )

    all_errors.extend(validate_token_secrets())
    all_errors.extend(validate_database_url())
    all_errors.extend(validate_redis_url())
    all_errors.extend(validate_media_settings())

    if settings.is_production:
        all_errors.extend(validate_production_settings())

    if all_errors:
        logger.error(
            "environment_validation_failed",
            errors=all_errors,
            error_count=len(all_errors)
        )
        return False, all_errors

    logger.info(
        "environment_validation_successful",
        app_env=settings.APP_ENV,
        features_enabled={
            "rate_limit": settings.RATE_LIMIT_ENABLED,
            "custom_media_endpoint": bool(settings.MEDIA_ENDPOINT_URL),
        }
    )
    return True, []


def validate_or_exit():
    """
    Validate environment and exit if validation fails.

    Called from the application lifespan before anything connects.
    """
    is_valid, errors = validate_environment()

    if not is_valid:
        logger.critical(
            "startup_aborted_invalid_environment",
            errors=errors
        )
        sys.exit(1)

    logger.info("environment_validation_passed")
