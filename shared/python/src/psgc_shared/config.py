"""
config.py — pydantic-settings Settings class.

All environment variables for the psgc platform are declared here.
Both the pipeline and API import `settings` from this module.

Usage:
    from psgc_shared.config import settings
    print(settings.duckdb_path)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    duckdb_path: str = Field(default="./data/psgc.duckdb")

    # -------------------------------------------------------------------------
    # Reference standards (PSA published totals). None = bundled file.
    # -------------------------------------------------------------------------
    standards_path: str | None = Field(default=None)

    # -------------------------------------------------------------------------
    # Data sources
    # -------------------------------------------------------------------------
    psgc_cloud_url: str = Field(default="https://psgc.cloud/api")
    http_timeout: float = Field(default=60.0)

    # -------------------------------------------------------------------------
    # Import / merge
    # -------------------------------------------------------------------------
    merge_preview_limit: int = Field(default=20)
    error_preview_limit: int = Field(default=50)

    # -------------------------------------------------------------------------
    # API server
    # -------------------------------------------------------------------------
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3000)
    cors_origins: str = Field(default="*")
    debug: bool = Field(default=False)
    barangay_default_limit: int = Field(default=1000)
    search_default_limit: int = Field(default=20)

    # 100 requests per 15 minutes per client address
    rate_limit_requests: int = Field(default=100)
    rate_limit_window_seconds: int = Field(default=900)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @field_validator("psgc_cloud_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton — import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
