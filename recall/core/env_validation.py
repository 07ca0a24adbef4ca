"""
Environment variable validation and security checks.

This module validates that the configuration needed by the selected
backends is present before the application starts.

In production, errors abort startup (EnvironmentValidationError).
Everywhere else they are logged as warnings, so a developer can start the
API with VECTOR_DB_TYPE=memory and no cloud credentials.
"""

from typing import List, Optional, Tuple

from recall.core.config import Settings
from recall.core.logging import get_logger

logger = get_logger(__name__)


class EnvironmentValidationError(Exception):
    """Raised when environment validation fails."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def validate_secret_key(key_name: str, key_value: Optional[str], min_length: int = 32) -> List[str]:
    """
    Validate that a secret key meets security requirements.

    Args:
        key_name: Name of the key (for error messages)
        key_value: The key value to validate
        min_length: Minimum required length

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

    # Check if it's a default/example value
    lowered = key_value.lower()
    if "change" in lowered or "your-" in lowered or "example" in lowered:
        errors.append(
            f"{key_name} appears to be a placeholder value - update with a real secret key"
        )

    return errors


def validate_database_url(settings: Settings) -> List[str]:
    """
    Validate database URL configuration.

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not set")
        return errors

    # Check for async driver
    if not settings.DATABASE_URL.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
        errors.append(
            "DATABASE_URL must use an async driver (format: postgresql+asyncpg://...)"
        )

    if settings.is_production and settings.DATABASE_URL.startswith("sqlite"):
        errors.append("DATABASE_URL must point at PostgreSQL in production")

    return errors


def validate_redis_url(settings: Settings) -> List[str]:
    """
    Validate Redis URL configuration (rate limiting and Celery broker).

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    needs_redis = settings.RATE_LIMIT_ENABLED and settings.RATE_LIMIT_BACKEND == "redis"
    if not needs_redis:
        return errors

    if not settings.REDIS_URL:
        errors.append("REDIS_URL is not set")
        return errors

    if not settings.REDIS_URL.startswith(("redis://", "rediss://")):
        errors.append(
            "REDIS_URL must start with redis:// (format: redis://host:port/db)"
        )

    return errors


def validate_provider_credentials(settings: Settings) -> List[str]:
    """
    Validate credentials of the embedding and vector index backends.

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if settings.EMBEDDING_PROVIDER == "openai":
        if not settings.OPENAI_API_KEY:
            errors.append(
                "OPENAI_API_KEY is not set - content cannot be embedded without it"
            )
        elif "your-" in settings.OPENAI_API_KEY.lower():
            errors.append(
                "OPENAI_API_KEY appears to be a placeholder - update with real API key"
            )

    if settings.VECTOR_DB_TYPE == "pinecone":
        if not settings.PINECONE_API_KEY:
            errors.append("PINECONE_API_KEY is not set")
        if not settings.PINECONE_INDEX_HOST:
            errors.append("PINECONE_INDEX_HOST is not set")

    if settings.VECTOR_DB_TYPE == "pgvector" and not settings.DATABASE_URL.startswith("postgresql"):
        errors.append("VECTOR_DB_TYPE=pgvector needs a PostgreSQL DATABASE_URL")

    return errors


def validate_production_settings(settings: Settings) -> List[str]:
    """
    Validate production-specific settings.

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not settings.is_production:
        return errors

    # Check DEBUG is disabled
    if settings.DEBUG:
        errors.append("DEBUG must be false in production")

    if settings.VECTOR_DB_TYPE == "memory":
        errors.append("VECTOR_DB_TYPE=memory loses the index on restart; not allowed in production")

    if settings.RATE_LIMIT_ENABLED and settings.RATE_LIMIT_BACKEND == "memory":
        logger.warning(
            "rate_limit_memory_backend",
            message="In-memory rate limiting is per process - use redis behind multiple workers"
        )

    # Check FRONTEND_URL isn't localhost
    if "localhost" in settings.FRONTEND_URL:
        logger.warning(
            "localhost_in_allowed_origins",
            message="FRONTEND_URL points at localhost in production - CORS may be misconfigured"
        )

    # Check LOG_FORMAT is JSON
    if settings.LOG_FORMAT != "json":
        logger.warning(
            "log_format_not_json",
            message="LOG_FORMAT should be 'json' in production for better log aggregation"
        )

    return errors


def validate_environment(settings: Settings) -> Tuple[bool, List[str]]:
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

    all_errors.extend(validate_secret_key("SECRET_KEY", settings.SECRET_KEY))
    all_errors.extend(validate_database_url(settings))
    all_errors.extend(validate_redis_url(settings))
    all_errors.extend(validate_provider_credentials(settings))
    all_errors.extend(validate_production_settings(settings))

    if all_errors:
        return False, all_errors

    logger.info(
        "environment_validation_successful",
        app_env=settings.APP_ENV,
        backends={
            "embedding": settings.EMBEDDING_PROVIDER,
            "vector_index": settings.VECTOR_DB_TYPE,
            "rate_limit": settings.RATE_LIMIT_BACKEND if settings.RATE_LIMIT_ENABLED else "disabled",
        }
    )
    return True, []


def validate_or_raise(settings: Settings) -> None:
    """
    Validate the environment during application startup.

    Raises:
        EnvironmentValidationError: In production, if any check fails
    """
    is_valid, errors = validate_environment(settings)
    if is_valid:
        return

    if settings.is_production:
        logger.critical("startup_aborted_invalid_environment", errors=errors)
        raise EnvironmentValidationError(errors)

    for error in errors:
        logger.warning("environment_validation_warning", message=error)
