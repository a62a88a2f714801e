"""
Evalify Quiz Attempt Service
Application configuration and settings management
"""

import os
import secrets
from functools import lru_cache
from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application Settings
    APP_NAME: str = "Evalify Quiz Attempt Service"
    VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    # Server Configuration
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)
    WORKERS: int = Field(default=1)

    # Security Settings
    JWT_SECRET_KEY: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = "HS256"

    # CORS Settings (comma-separated)
    ALLOWED_HOSTS: str = Field(default="*")

    @property
    def allowed_hosts(self) -> List[str]:
        return [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()]

    # Database Configuration
    DATABASE_URL: Optional[str] = Field(default=None)
    DB_HOST: str = Field(default="localhost")
    DB_PORT: int = Field(default=5432)
    DB_NAME: str = Field(default="evalify")
    DB_USER: str = Field(default="postgres")
    DB_PASSWORD: str = Field(default="password")
    DB_POOL_SIZE: int = Field(default=10)
    DB_MAX_OVERFLOW: int = Field(default=20)
    DB_ECHO: bool = Field(default=False)

    @property
    def database_url(self) -> str:
        """Generate database URL from components or use provided URL"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # For development, use SQLite
        if self.ENVIRONMENT == "development":
            return "sqlite+aiosqlite:///./evalify.db"

        password = quote_plus(self.DB_PASSWORD)
        return f"postgresql+asyncpg://{self.DB_USER}:{password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Redis Configuration (question and response caches)
    REDIS_URL: Optional[str] = Field(default=None)
    REDIS_HOST: str = Field(default="localhost")
    REDIS_PORT: int = Field(default=6379)
    REDIS_DB: int = Field(default=0)
    REDIS_PASSWORD: Optional[str] = Field(default=None)

    # MongoDB Configuration (question documents)
    MONGO_URL: str = Field(default="mongodb://localhost:27017")
    MONGO_DB_NAME: str = Field(default="evalify")
    QUESTIONS_COLLECTION: str = Field(default="NEW_QUESTIONS")

    # Quiz Attempt Configuration
    QUESTION_CACHE_TTL_SECONDS: int = Field(default=5 * 60 * 60)
    RESPONSE_CACHE_TTL_SECONDS: int = Field(default=6_000_000)
    MIN_SHUFFLE_CACHE_TTL_SECONDS: int = 60
    SEEDED_SHUFFLE: bool = Field(default=False)
    SUBMISSION_TIMEOUT_SECONDS: float = Field(default=10.0)
    # Whole submission transaction, split across its statements on PostgreSQL
    SUBMISSION_DB_TIMEOUT_MS: int = Field(default=8000)

    @field_validator("SUBMISSION_DB_TIMEOUT_MS")
    @classmethod
    def validate_db_timeout(cls, v, info):
        if v <= 0:
            raise ValueError("SUBMISSION_DB_TIMEOUT_MS must be positive")
        outer = info.data.get("SUBMISSION_TIMEOUT_SECONDS")
        if outer is not None and v >= outer * 1000:
            raise ValueError("The submission transaction budget must end before SUBMISSION_TIMEOUT_SECONDS")
        return v

    # Monitoring and Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ENABLE_REQUEST_LOGGING: bool = Field(default=True)


class DevelopmentSettings(Settings):
    """Development environment specific settings"""
    DEBUG: bool = True
    ENVIRONMENT: str = "development"
    DB_ECHO: bool = False
    ENABLE_REQUEST_LOGGING: bool = True


class ProductionSettings(Settings):
    """Production environment specific settings"""
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    DB_ECHO: bool = False
    ENABLE_REQUEST_LOGGING: bool = False

    # Require these in production
    JWT_SECRET_KEY: str = Field(...)
    DATABASE_URL: str = Field(...)


class TestingSettings(Settings):
    """Testing environment specific settings"""
    DEBUG: bool = True
    ENVIRONMENT: str = "testing"
    DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"
    JWT_SECRET_KEY: str = "testing-secret-key-with-enough-length"
    ENABLE_REQUEST_LOGGING: bool = False

    # Faster settings for tests
    SUBMISSION_TIMEOUT_SECONDS: float = 2.0
    SUBMISSION_DB_TIMEOUT_MS: int = 1500


@lru_cache()
def get_settings() -> Settings:
    """Get application settings with caching"""
    environment = os.getenv("ENVIRONMENT", "development").lower()

    if environment == "production":
        return ProductionSettings()
    elif environment == "testing":
        return TestingSettings()
    else:
        return DevelopmentSettings()


def get_redis_url() -> str:
    """Get the Redis URL for the current environment"""
    settings = get_settings()
    if settings.REDIS_URL:
        return settings.REDIS_URL
    if settings.REDIS_PASSWORD:
        return f"redis://:{settings.REDIS_PASSWORD}@{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"
    return f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"


# Export commonly used settings
__all__ = [
    "Settings",
    "DevelopmentSettings",
    "ProductionSettings",
    "TestingSettings",
    "get_settings",
    "get_redis_url"
]
