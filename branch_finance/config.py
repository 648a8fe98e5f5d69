"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.

The Settings object is built once at startup and handed to the
components that need it (auth service, mailer, reminder scheduler).
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        # Application
        self.APP_NAME: str = os.getenv("APP_NAME", "Branch Finance Back Office")
        self.APP_VERSION: str = "1.0.0"
        self.DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # Server
        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "5000"))
        self.CORS_ORIGIN: str = os.getenv("CORS_ORIGIN", "http://localhost:5173")

        # Database
        self.DATABASE_URL: str = os.getenv(
            "DATABASE_URL",
            "postgresql://localhost:5432/branch_finance"
        )
        self.STATEMENT_TIMEOUT_MS: int = int(
            os.getenv("STATEMENT_TIMEOUT_MS", "30000")
        )

        # Environment
        self.ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

        # Credentials
        self.JWT_SECRET: str = os.getenv("JWT_SECRET", "")
        self.JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")
        )
        self.REFRESH_TOKEN_EXPIRE_DAYS: int = int(
            os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")
        )
        self.PASSWORD_RESET_EXPIRE_MINUTES: int = int(
            os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", "60")
        )
        self.MAX_LOGIN_ATTEMPTS: int = int(os.getenv("MAX_LOGIN_ATTEMPTS", "5"))
        # Per client address: MAX_LOGIN_ATTEMPTS * 2 logins per window
        self.RATE_LIMIT_ENABLED: bool = (
            os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
        )
        self.LOGIN_RATE_WINDOW_MINUTES: int = int(
            os.getenv("LOGIN_RATE_WINDOW_MINUTES", "15")
        )
        self.BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

        # Defaults seeded on first start
        self.DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "ZIG")
        self.DEFAULT_ADMIN_USERNAME: str = os.getenv("DEFAULT_ADMIN_USERNAME", "")
        self.DEFAULT_ADMIN_PASSWORD: str = os.getenv("DEFAULT_ADMIN_PASSWORD", "")
        self.DEFAULT_ADMIN_BRANCH: str = os.getenv("DEFAULT_ADMIN_BRANCH", "00")

        # Scheduling: local timezone for receipt years and the reminder sweep
        self.TIMEZONE: str = os.getenv("TIMEZONE", "Africa/Harare")
        self.REMINDER_HOUR: int = int(os.getenv("REMINDER_HOUR", "0"))

        # Email
        self.SMTP_HOST: str = os.getenv("SMTP_HOST", "")
        self.SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
        self.SMTP_USER: str = os.getenv("SMTP_USER", "")
        self.SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
        self.EMAIL_FROM: str = os.getenv("EMAIL_FROM", self.SMTP_USER)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def validate(self) -> None:
        """Fail fast on configuration the server cannot run without."""
        if not self.JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be defined in the environment")
        if self.MAX_LOGIN_ATTEMPTS < 1:
            raise RuntimeError("MAX_LOGIN_ATTEMPTS must be at least 1")


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Using lru_cache means the Settings object is created once
    and reused for all subsequent calls.
    """
    return Settings()
