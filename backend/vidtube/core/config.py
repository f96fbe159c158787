"""
Configuration management using Pydantic Settings.
All environment variables are loaded and validated here.
"""

from typing import List, Literal, Optional

from pydantic import Field, field_validator
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
    APP_NAME: str = "VidTube"
    APP_ENV: Literal["development", "staging", "production", "testing"] = "development"
    DEBUG: bool = True
    APP_VERSION: str = "0.1.0"

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def parse_origins(cls, v: str) -> List[str]:
        """Parse comma-separated origins into list."""
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # Requests that take longer than this are answered with a timeout envelope
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # ================================
    # Database Configuration
    # ================================
    DATABASE_URL: str = Field(..., description="SQLAlchemy async connection string")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # ================================
    # Redis Configuration
    # ================================
    REDIS_URL: str = "redis://redis:6379/0"

    # ================================
    # Session Tokens (JWT)
    # ================================
    # Access and refresh tokens are signed with different secrets so a leaked
    # refresh secret cannot mint access tokens and vice versa.
    ACCESS_TOKEN_SECRET: str = Field(..., min_length=32)
    REFRESH_TOKEN_SECRET: str = Field(..., min_length=32)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 10
    JWT_ALGORITHM: str = "HS256"

    # Cookie flags for accessToken / refreshToken
    COOKIE_SECURE: bool = True
    COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"

    # ================================
    # Read Views
    # ================================
    FEED_PAGE_SIZE: int = 24
    COMMENTS_PAGE_SIZE: int = 20
    CHANNEL_VIDEOS_PAGE_SIZE: int = 10
    PLAYLISTS_PAGE_SIZE: int = 20
    SUBSCRIPTIONS_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    CHANNEL_TOP_VIDEOS: int = 12  # popular / latest rails on the channel page
    UP_NEXT_SAMPLE_SIZE: int = 10

    # ================================
    # Media (S3-compatible blob store)
    # ================================
    MEDIA_ENDPOINT_URL: Optional[str] = None  # None = AWS S3, set for MinIO
    MEDIA_ACCESS_KEY: Optional[str] = None
    MEDIA_SECRET_KEY: Optional[str] = None
    MEDIA_REGION: str = "us-east-1"
    MEDIA_BUCKET: str = "vidtube-media"
    MEDIA_PUBLIC_BASE_URL: Optional[str] = None
    MEDIA_MAX_UPLOAD_MB: int = 512

    # ================================
    # Rate Limiting
    # ================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_ANONYMOUS: int = 30  # Requests per minute for anonymous clients
    RATE_LIMIT_AUTHENTICATED: int = 120  # Requests per minute for authenticated users
    RATE_LIMIT_AUTH_ENDPOINTS: int = 10  # login / register / refresh per minute per IP

    # ================================
    # Celery Configuration
    # ================================
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/0"
    CELERY_TASK_SERIALIZER: str = "json"
    CELERY_RESULT_SERIALIZER: str = "json"
    # Celery accept content as comma-separated string, we'll parse it
    CELERY_ACCEPT_CONTENT: str = "json"
    CELERY_TIMEZONE: str = "UTC"
    CELERY_ENABLE_UTC: bool = True
    CELERY_TASK_ALWAYS_EAGER: bool = False

    @property
    def celery_accept_content_list(self) -> List[str]:
        """Parse CELERY_ACCEPT_CONTENT into a list."""
        return [item.strip() for item in self.CELERY_ACCEPT_CONTENT.split(",")]

    # ================================
    # Logging Configuration
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"

    @property
    def is_testing(self) -> bool:
        return self.APP_ENV == "testing"


# Global settings instance
settings = Settings()
