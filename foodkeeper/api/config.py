"""
Application Configuration
Settings management using Pydantic for environment variables.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "FoodKeeper API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./foodkeeper.db"
    DATABASE_ECHO: bool = False
    DATABASE_SEED_ON_STARTUP: bool = True

    # JWT Authentication
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Security
    BCRYPT_ROUNDS: int = 12
    PASSWORD_MIN_LENGTH: int = 8
    PASSWORD_REQUIRE_UPPERCASE: bool = True
    PASSWORD_REQUIRE_LOWERCASE: bool = True
    PASSWORD_REQUIRE_DIGITS: bool = True
    PASSWORD_REQUIRE_SPECIAL: bool = False

    # Expiry tracking
    EXPIRY_ALERT_THRESHOLD_DAYS: int = 3
    NOTIFICATION_RETENTION_DAYS: int = 30

    # Recipe suggestions
    RECIPE_SUGGESTION_LIMIT: int = 4

    # Rate Limiting (slowapi / limits syntax, fixed window)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_FAIL_OPEN: bool = True
    RATE_LIMIT_DEFAULT: str = "1000/15minutes"
    RATE_LIMIT_LOGIN: str = "5/15minutes"
    RATE_LIMIT_REGISTER: str = "3/hour"
    RATE_LIMIT_TOKEN_REFRESH: str = "10/5minutes"
    RATE_LIMIT_SEARCH: str = "30/minute"

    # Redis (rate limit counters)
    REDIS_URL: Optional[str] = None

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # MCP tool service
    MCP_SERVER_NAME: str = "food-waste-mcp-server"
    MCP_SERVER_VERSION: str = "1.0.0"
    MCP_HOST: str = "0.0.0.0"
    MCP_PORT: int = 8001

    # Monitoring
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
