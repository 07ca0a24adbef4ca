"""
Configuration management using Pydantic Settings.
All environment variables are loaded and validated here.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ================================
    # Application Configuration
    # ================================
    APP_NAME: str = "Recall"
    APP_ENV: Literal["development", "staging", "production", "test"] = "development"
    DEBUG: bool = True
    SECRET_KEY: str = Field(..., min_length=32)
    PORT: int = 5000

    # Single browser origin allowed to call the API (CORS)
    FRONTEND_URL: str = "http://localhost:3000"

    # ================================
    # Database Configuration
    # ================================
    DATABASE_URL: str = Field(..., description="PostgreSQL connection string")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # ================================
    # Redis Configuration
    # ================================
    REDIS_URL: str = "redis://redis:6379/0"

    # ================================
    # Identity Provider (ID tokens)
    # ================================
    JWT_ALGORITHM: str = "HS256"
    ID_TOKEN_EXPIRE_MINUTES: int = 60
    ID_TOKEN_ISSUER: str = "recall-identity"

    # ================================
    # Embedding Configuration
    # ================================
    EMBEDDING_PROVIDER: Literal["openai", "local"] = "openai"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSION: int = 1536
    EMBEDDING_TIMEOUT_SECONDS: float = 20.0
    EMBEDDING_MAX_RETRIES: int = 2
    EMBEDDING_RETRY_BACKOFF_SECONDS: float = 0.5

    # Only used by the local sentence-transformers provider
    EMBEDDING_DEVICE: Literal["cpu", "cuda", "mps"] = "cpu"

    # ================================
    # Vector Database Configuration
    # ================================
    VECTOR_DB_TYPE: Literal["pinecone", "pgvector", "memory"] = "pinecone"
    VECTOR_INDEX_TIMEOUT_SECONDS: float = 10.0

    # Pinecone (data plane host of the index, e.g. https://my-index-abc123.svc.pinecone.io)
    PINECONE_API_KEY: Optional[str] = None
    PINECONE_INDEX_HOST: Optional[str] = None
    PINECONE_NAMESPACE: str = "recall"
    PINECONE_API_VERSION: str = "2025-01"

    # ================================
    # Search Configuration
    # ================================
    SEARCH_TOP_K: int = 10

    # ================================
    # Request Protections
    # ================================
    MAX_BODY_BYTES: int = 10 * 1024 * 1024  # 10 MB

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_BACKEND: Literal["redis", "memory"] = "redis"
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60  # 15 minutes
    # Key by X-Forwarded-For / X-Real-IP; only enable behind a proxy that sets them
    RATE_LIMIT_TRUST_PROXY_HEADERS: bool = False

    # ================================
    # Index Reconciliation
    # ================================
    INDEX_RECONCILE_BATCH_SIZE: int = 50
    INDEX_RECONCILE_GRACE_SECONDS: int = 120  # leave in-flight ingestions alone
    INDEX_RECONCILE_INTERVAL_MINUTES: int = 5

    # ================================
    # Celery Configuration
    # ================================
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/0"
    CELERY_TIMEZONE: str = "UTC"

    # ================================
    # Logging Configuration
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def allowed_origins(self) -> list[str]:
        """CORS origins as a list (FRONTEND_URL may be comma-separated)."""
        return [origin.strip() for origin in self.FRONTEND_URL.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"


# Global settings instance
settings = Settings()
