"""
Configuration management for EOD Monitor Backend
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    DATABASE_URL: str = Field(
        default="sqlite:///./eod_monitor.db",
        description="SQLite or PostgreSQL database URL"
    )
    SESSION_SECRET_KEY: str = Field(
        default="change-me-local-session-secret",
        description="Secret used to sign session cookies"
    )
    SESSION_ALGORITHM: str = Field(default="HS256", description="Session cookie signing algorithm")
    SESSION_COOKIE_NAME: str = Field(default="eod_session", description="Name of the session cookie")
    SESSION_TTL_DAYS: int = Field(default=30, ge=1, description="Session lifetime in days")

    VIEWER_ACCESS_DAYS: int = Field(default=3, ge=1, description="Lifetime of a viewer access grant in days")
    REPORT_EDIT_WINDOW_DAYS: int = Field(default=3, ge=0, description="Days an employee may edit own report")
    ENFORCE_VIEWER_GRANT_ON_REQUEST: bool = Field(
        default=True,
        description="Re-check viewer grants on every request, not only at login",
    )

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Screenshot uploads
    UPLOAD_DIR: str = Field(default="uploads", description="Directory where screenshots are stored")
    UPLOAD_URL_PREFIX: str = Field(default="/uploads", description="URL prefix uploaded files are served under")
    MAX_UPLOAD_BYTES: int = Field(default=10 * 1024 * 1024, description="Maximum size of one screenshot")
    MAX_SCREENSHOTS_PER_REPORT: int = Field(default=10, description="Maximum screenshots per request")

    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    INITIAL_ADMIN_USERNAME: str = Field(
        default="admin",
        description="Username for initial admin user (used when no admin exists)"
    )
    INITIAL_ADMIN_PASSWORD: str = Field(
        default="admin123",
        description="Password for initial admin user (used when no admin exists)"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @property
    def cookie_secure(self) -> bool:
        """Session cookies are only marked secure in production"""
        return self.APP_ENV == "prod"

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            if len(self.SESSION_SECRET_KEY) < 32:
                raise ValueError(
                    "SESSION_SECRET_KEY must be at least 32 characters in production environment"
                )

            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


settings = Settings()

if settings.APP_ENV == "prod":
    settings.validate_production()
