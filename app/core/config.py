"""Application configuration management using Pydantic Settings."""

from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Settings
    app_name: str = Field(default="Lightsail Console", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Settings
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        alias="CORS_ORIGINS"
    )

    # Bootstrap admin account (created on startup when missing)
    admin_username: str = Field(default="", alias="ADMIN_USERNAME")
    admin_password: str = Field(default="", alias="ADMIN_PASSWORD")

    # Persistence
    database_url: str = Field(
        default="sqlite:///./lightsail_console.db",
        alias="DATABASE_URL"
    )

    # Sessions
    session_cookie_name: str = Field(default="lsc_session", alias="SESSION_COOKIE_NAME")
    session_cookie_secure: bool = Field(default=False, alias="SESSION_COOKIE_SECURE")
    session_ttl_minutes: int = Field(default=30, alias="SESSION_TTL_MINUTES")
    session_cleanup_interval_minutes: int = Field(
        default=5,
        alias="SESSION_CLEANUP_INTERVAL_MINUTES"
    )
    login_rate_limit: str = Field(default="10/minute", alias="LOGIN_RATE_LIMIT")

    # AWS
    default_region: str = Field(default="us-east-1", alias="DEFAULT_REGION")
    aws_connect_timeout: int = Field(default=10, alias="AWS_CONNECT_TIMEOUT")
    aws_read_timeout: int = Field(default=60, alias="AWS_READ_TIMEOUT")

    # Proxy egress check
    ipinfo_url: str = Field(default="https://ipinfo.io/json", alias="IPINFO_URL")
    ipinfo_timeout: float = Field(default=12.0, alias="IPINFO_TIMEOUT")

    # Server Settings
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def session_ttl_seconds(self) -> int:
        return self.session_ttl_minutes * 60

    @property
    def session_cleanup_interval_seconds(self) -> int:
        return self.session_cleanup_interval_minutes * 60

    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True


# Global settings instance
settings = Settings()
