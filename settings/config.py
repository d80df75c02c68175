"""
Settings module for the MAAP backend.

Environment-based configuration with sensible defaults.
All settings can be overridden via environment variables prefixed with MAAP_.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    In production the database parts and the secret key should be set via
    environment variables; the defaults only make local development work.
    """

    model_config = SettingsConfigDict(env_prefix="MAAP_", extra="ignore")

    # Environment
    env: str = Field(
        default="dev",
        description="Environment name (dev, qa, prod)"
    )
    service_name: str = Field(
        default="maap-backend",
        description="Service name reported to logs"
    )
    log_level: str = Field(
        default="INFO",
        description="Root logger level"
    )

    # Database
    database_url: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the db_* parts when set"
    )
    db_host: str = Field(default="localhost", description="PostgreSQL host")
    db_port: int = Field(default=5432, description="PostgreSQL port")
    db_user: str = Field(default="maap", description="PostgreSQL user")
    db_password: str = Field(default="maap", description="PostgreSQL password")
    db_name: str = Field(default="maap", description="PostgreSQL database name")

    # Auth
    secret_key: str = Field(
        default="dev-secret-change-me",
        description="HMAC secret used to sign viewer tokens"
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Lifetime of issued viewer tokens"
    )

    # Datadog log shipping
    datadog_api_key: Optional[str] = Field(
        default=None,
        description="Datadog API key; log shipping is disabled when unset"
    )
    datadog_log_url: str = Field(
        default="https://http-intake.logs.datadoghq.com/v1/input",
        description="Datadog HTTP log intake endpoint"
    )
    dd_include_loggers: Optional[str] = Field(
        default=None,
        description="Comma-separated logger prefixes to ship (allowlist mode)"
    )

    def sqlalchemy_url(self):
        if self.database_url:
            return self.database_url
        return URL.create(
            drivername="postgresql",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            database=self.db_name,
            port=self.db_port,
        )

    def include_logger_prefixes(self) -> Optional[List[str]]:
        if not self.dd_include_loggers:
            return None
        return [prefix.strip() for prefix in self.dd_include_loggers.split(",") if prefix.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
