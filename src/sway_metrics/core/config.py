"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

import re

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

    # Database
    database_url: str = Field(
        description="PostgreSQL async connection string for the relational store",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # Backend selection
    data_source: str = Field(
        default="relational",
        description="Default metrics backend: relational|graph (legacy: supabase|sway_api)",
    )

    @field_validator("data_source")
    @classmethod
    def validate_data_source(cls, v: str) -> str:
        from sway_metrics.lib.data_source import parse_data_source

        return parse_data_source(v).value

    # Batched fetching
    fetch_batch_size: int = Field(
        default=100,
        description="Maximum identifiers per IN-list fetch",
        gt=0,
    )
    fetch_concurrency: int = Field(
        default=1,
        description="Maximum chunks of one batched fetch dispatched concurrently",
        gt=0,
    )
    network_reach_concurrency: int = Field(
        default=4,
        description="Maximum downstream groups resolved concurrently for network reach",
        gt=0,
    )
    metric_timeout_seconds: float = Field(
        default=30.0,
        description="Overall timeout for a single metric computation in seconds",
        gt=0,
    )

    # Sway graph API
    sway_api_url: str | None = Field(
        default=None,
        description="GraphQL endpoint of the Sway graph API",
    )
    sway_jwt: str | None = Field(
        default=None,
        description="Bearer token sent to the Sway graph API",
    )
    sway_api_timeout: float = Field(
        default=30.0,
        description="Sway graph API request timeout in seconds",
        gt=0,
    )

    @field_validator("sway_api_url")
    @classmethod
    def validate_sway_api_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not v.startswith(("https://", "http://")):
            msg = "sway_api_url must be an http(s) URL"
            raise ValueError(msg)
        return v.strip()

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit stderr logs as JSON records",
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
