"""Centralized settings for stagewise.

All fields can be set via ``STAGEWISE_*`` environment variables or a
``.env`` file.  CLI options override settings; settings override defaults.

Fields
──────
network          : default target network name
registry_dir     : root directory of the JSON unit registry
constants_file   : optional TOML file with the constant table
signer_address   : address of the account submitting requests
signer_label     : human label for that account (logs only)
log_level        : structlog log level
log_format       : "console" | "json" | "auto"

Tags:
    settings, configuration, pydantic, environment, stagewise
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stagewise.core.logging import LOG_LEVELS


class StagewiseSettings(BaseSettings):
    """stagewise configuration resolved from env vars and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="STAGEWISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Target ───────────────────────────────────────────────────
    network: str = Field(default="localhost")

    # ── Storage ──────────────────────────────────────────────────
    registry_dir: Path = Field(
        default=Path("deployments"),
        description="Root directory of the unit registry (one subdirectory per network)",
    )
    constants_file: Path | None = Field(default=None)

    # ── Signer ───────────────────────────────────────────────────
    signer_address: str = Field(default="0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266")
    signer_label: str = Field(default="creator")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="auto")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"invalid log level: {value}")
        return value

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in {"console", "json", "auto"}:
            raise ValueError(f"invalid log format: {value}")
        return value

    def json_logs(self) -> bool | None:
        """Translate ``log_format`` into ``configure_logging(json_format=...)``."""
        return {"json": True, "console": False}.get(self.log_format)


@lru_cache(maxsize=1)
def get_settings() -> StagewiseSettings:
    """Return the cached settings instance."""
    return StagewiseSettings()


def reset_settings() -> None:
    """Clear the settings cache (for tests)."""
    get_settings.cache_clear()


__all__ = ["StagewiseSettings", "get_settings", "reset_settings"]
