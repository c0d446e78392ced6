"""Centralised configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# src/sensenote/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

# Highlight palette offered by the selection menu, in menu order
DEFAULT_PALETTE: dict[str, str] = {
    "yellow": "#ffeb3b",
    "blue": "#90caf9",
    "pink": "#ff9eb5",
    "green": "#a5d6a7",
}


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class AnchorConfig(BaseModel):
    """Anchor capture and identity settings."""

    context_length: int = 50
    fragment_prefix: str = "sensenote-"
    default_color: str = DEFAULT_PALETTE["yellow"]
    palette: dict[str, str] = dict(DEFAULT_PALETTE)

    @field_validator("context_length")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            msg = "ANCHOR__CONTEXT_LENGTH must not be negative"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _colors_are_hex(self) -> AnchorConfig:
        for color in (self.default_color, *self.palette.values()):
            if not _HEX_COLOR.match(color):
                msg = f"Highlight colors must be #rrggbb, got {color!r}"
                raise ValueError(msg)
        return self


class RestoreConfig(BaseModel):
    """Restoration and scroll-to-highlight timing."""

    scroll_max_attempts: int = 10
    scroll_retry_delay: float = 0.5
    scroll_initial_delay: float = 0.5
    fragment_clear_delay: float = 1.0


class UiConfig(BaseModel):
    """Delays used by the selection menu and dialog lifecycle (seconds)."""

    selection_debounce: float = 0.01
    outside_click_delay: float = 0.2
    dismiss_suppression: float = 0.016
    note_prompt_delay: float = 0.5
    toast_duration: float = 2.0


class StoreConfig(BaseModel):
    """Highlight record storage."""

    path: Path = Path("data/highlights.json")


class AppConfig(BaseModel):
    """Application runtime configuration."""

    log_dir: Path = Path("logs")


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Application settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``ANCHOR__CONTEXT_LENGTH``, ``RESTORE__SCROLL_MAX_ATTEMPTS``,
    ``STORE__PATH``, etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    anchor: AnchorConfig = AnchorConfig()
    restore: RestoreConfig = RestoreConfig()
    ui: UiConfig = UiConfig()
    store: StoreConfig = StoreConfig()
    app: AppConfig = AppConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
