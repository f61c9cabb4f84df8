"""
VaultStamp Configuration

Settings are read from environment variables (and an optional .env file).
Access them through get_settings() so the instance is cached and can be
overridden in tests via app.dependency_overrides.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central config - every value has a sensible local default."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="VaultStamp")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False, description="JSON logs for production")
    log_file: str | None = Field(default=None)

    # Identity
    security_mode: str = Field(
        default="open",
        description="open: anonymous callers share open_mode_identity | enforced: identity required",
    )
    open_mode_identity: str = Field(default="open-mode-user")

    # Registry
    similarity_threshold: int = Field(default=90, ge=0, le=100)
    similarity_alerts_enabled: bool = Field(default=True)
    max_upload_size_mb: int = Field(default=10, ge=1)
    data_dir: str = Field(
        default="",
        description="Directory for the registry.json snapshot; empty keeps state in memory only.",
    )

    # Rate limiting (slowapi syntax)
    rate_limit_default: str = Field(default="200/minute")
    rate_limit_upload: str = Field(default="20/minute")

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def is_enforced(self) -> bool:
        return self.security_mode == "enforced"


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()
