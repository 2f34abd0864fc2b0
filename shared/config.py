"""
Centralized Configuration Management for bot-tools.

Goal:
- One typed source of truth for config across the utilities.
- Keep legacy env var names working (aliases), but prefer the canonical keys.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.exceptions import ConfigurationError


_REPO_ROOT = Path(__file__).resolve().parents[1]


def _env_file_candidates(service_dir: str) -> list[Path]:
    # Order matters: package-local .env first, then repo-root .env (if any).
    return [
        _REPO_ROOT / service_dir / ".env",
        _REPO_ROOT / ".env",
    ]


class ToolsConfig(BaseSettings):
    """Configuration for BotTools utilities (image URL repair, web fetch)."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    # -------------------------
    # Record store
    # -------------------------
    data_dir: str = Field(default="data", validation_alias=AliasChoices("BOT_DATA_DIR", "DATA_DIR"))
    image_urls_file: str = Field(default="ranking_image_urls.json", validation_alias=AliasChoices("IMAGE_URLS_FILE"))

    # -------------------------
    # Web fetch
    # -------------------------
    web_fetch_timeout_s: float = Field(default=10.0, validation_alias=AliasChoices("WEB_FETCH_TIMEOUT_S"))
    web_fetch_max_redirects: int = Field(default=5, validation_alias=AliasChoices("WEB_FETCH_MAX_REDIRECTS"))
    web_fetch_user_agent: str = Field(default="bot-tools/1.0", validation_alias=AliasChoices("WEB_FETCH_USER_AGENT"))

    # -------------------------
    # Telegram (chat platform)
    # -------------------------
    telegram_api_id: int = Field(default=0, validation_alias=AliasChoices("TELEGRAM_API_ID"))
    telegram_api_hash: str = Field(default="", validation_alias=AliasChoices("TELEGRAM_API_HASH"))
    session_string: str = Field(default="", validation_alias=AliasChoices("SESSION_STRING", "TELEGRAM_SESSION_STRING"))
    telegram_device_model: str = Field(default="BotTools", validation_alias=AliasChoices("TELEGRAM_DEVICE_MODEL"))

    @field_validator("web_fetch_timeout_s")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("WEB_FETCH_TIMEOUT_S must be > 0")
        return v

    @field_validator("web_fetch_max_redirects")
    @classmethod
    def _non_negative_redirects(cls, v: int) -> int:
        if v < 0:
            raise ValueError("WEB_FETCH_MAX_REDIRECTS must be >= 0")
        return v

    @property
    def image_urls_path(self) -> Path:
        return Path(self.data_dir) / self.image_urls_file


@lru_cache(maxsize=4)
def _cached_tools_config(env_file_str: Optional[str]) -> ToolsConfig:
    env_file = Path(env_file_str) if env_file_str else None
    candidates = [env_file] if env_file else _env_file_candidates("BotTools")
    existing = [p for p in candidates if p and p.exists()]
    try:
        return ToolsConfig(_env_file=existing or None, _env_file_encoding="utf-8")  # type: ignore[arg-type]
    except ValidationError as e:
        raise ConfigurationError(f"Invalid bot-tools configuration: {e}") from e


def load_tools_config(*, env_file: Optional[Path] = None) -> ToolsConfig:
    return _cached_tools_config(str(env_file) if env_file else None)
