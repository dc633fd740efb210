"""Application configuration loaded from environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "GPX Grid Challenge"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Storage ---
    storage_driver: Literal["local", "bucket"] | None = None  # None = infer
    storage_root: Path = Path("storage")
    storage_bucket_name: str | None = None
    storage_bucket_prefix: str | None = None
    storage_bucket_region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("storage_bucket_region", "aws_region"),
    )
    storage_bucket_endpoint: str | None = None
    storage_bucket_access_key_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("storage_bucket_access_key_id", "aws_access_key_id"),
    )
    storage_bucket_secret_access_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "storage_bucket_secret_access_key", "aws_secret_access_key"
        ),
    )
    storage_bucket_session_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("storage_bucket_session_token", "aws_session_token"),
    )
    storage_bucket_force_path_style: bool | None = None  # None = path style iff endpoint set

    # --- Strava ---
    strava_client_id: str | None = None
    strava_client_secret: str | None = None
    strava_redirect_uri: str | None = None
    strava_scope: str = "read,activity:read_all"
    strava_http_timeout_seconds: float = 20.0

    # --- Clerk ---
    clerk_secret_key: str = ""
    clerk_publishable_key: str = ""
    clerk_jwks_url: str = "https://api.clerk.com/v1/jwks"
    dev_storage_user_id: str = "dev-user"  # single-user mode when Clerk is not configured

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator("storage_driver", mode="before")
    @classmethod
    def _lowercase_driver(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @property
    def clerk_configured(self) -> bool:
        return bool(self.clerk_publishable_key.strip() and self.clerk_secret_key.strip())

    @property
    def strava_configured(self) -> bool:
        return bool(
            self.strava_client_id and self.strava_client_secret and self.strava_redirect_uri
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
