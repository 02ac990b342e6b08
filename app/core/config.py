"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, loan rules, session settings)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Storage
    STORE_BACKEND: Literal["mongo", "memory"] = Field(
        default="mongo",
        description="Persistent store implementation (memory is for development and tests)"
    )
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="bibliothequedb",
        description="MongoDB database name"
    )
    MONGODB_TIMEOUT_MS: int = Field(
        default=10000,
        description="Upper bound for server selection, connect and socket operations"
    )

    # Loan rules
    LOAN_PERIOD_DAYS: int = Field(
        default=30,
        description="Number of days a document may be kept"
    )
    DEFAULT_BORROW_LIMIT: int = Field(
        default=3,
        description="Simultaneous active loans allowed for a registered user"
    )
    ADMIN_BORROW_LIMIT: int = Field(
        default=999,
        description="Simultaneous active loans allowed for the seeded admin"
    )
    ALLOW_AVAILABILITY_OVERRIDE: bool = Field(
        default=True,
        description="Expose the admin toggle that flips availability without loan bookkeeping"
    )

    # Accounts and sessions
    MIN_PASSWORD_LENGTH: int = Field(
        default=3,
        description="Minimum password length at registration"
    )
    SESSION_TIMEOUT_MINUTES: int = Field(
        default=24 * 60,
        description="Login session lifetime in minutes"
    )
    SESSION_COOKIE_NAME: str = Field(
        default="session_id",
        description="Cookie carrying the session token"
    )

    # Seed data
    SEED_DEFAULT_DATA: bool = Field(
        default=True,
        description="Create default accounts and sample documents on startup"
    )
    DEFAULT_ADMIN_EMAIL: str = Field(default="admin@mediatheque.fr")
    DEFAULT_ADMIN_PASSWORD: str = Field(default="admin123")
    DEFAULT_USER_EMAIL: str = Field(default="user@test.fr")
    DEFAULT_USER_PASSWORD: str = Field(default="user123")

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # Security
    SECRET_KEY: str = Field(
        default="change-me-in-production",
        description="Salt mixed into password hashes"
    )

    @validator("SECRET_KEY")
    def validate_secret_key(cls, v, values):
        """Ensure secret key is changed in production."""
        if values.get("ENVIRONMENT") == "production" and v == "change-me-in-production":
            raise ValueError("SECRET_KEY must be changed in production environment")
        return v

    @validator("DEFAULT_BORROW_LIMIT", "ADMIN_BORROW_LIMIT", "LOAN_PERIOD_DAYS")
    def validate_positive(cls, v):
        """Borrow limits and the loan period must be positive."""
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if settings.STORE_BACKEND == "mongo" and not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if settings.MIN_PASSWORD_LENGTH < 1:
        errors.append("MIN_PASSWORD_LENGTH must be at least 1")

    # Production-specific validations
    if settings.is_production:
        if settings.STORE_BACKEND == "memory":
            errors.append("STORE_BACKEND=memory is not allowed in production")
        if settings.SEED_DEFAULT_DATA and settings.DEFAULT_ADMIN_PASSWORD == "admin123":
            errors.append("DEFAULT_ADMIN_PASSWORD must be changed in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
