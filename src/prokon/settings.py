"""Application settings loaded from .env via Pydantic."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class VisualizerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    output_root: Path = Field(default=Path("outputs"), validation_alias="PROKON_OUTPUTS")
    config_path: Optional[Path] = Field(default=None, validation_alias="PROKON_CONFIG")

    @field_validator("output_root", mode="before")
    @classmethod
    def _expand_root(cls, value: Path) -> Path:
        return Path(value).expanduser().resolve()

    @field_validator("config_path", mode="before")
    @classmethod
    def _expand_config(cls, value: Optional[Path]) -> Optional[Path]:
        if value in (None, ""):
            return None
        return Path(value).expanduser().resolve()


_settings: Optional[VisualizerSettings] = None


def get_settings() -> VisualizerSettings:
    global _settings
    if _settings is None:
        _settings = VisualizerSettings()
        logger.debug("Loaded settings: outputs=%s config=%s", _settings.output_root, _settings.config_path)
    return _settings


def output_root() -> Path:
    root = get_settings().output_root
    root.mkdir(parents=True, exist_ok=True)
    return root


def default_config_path() -> Optional[Path]:
    return get_settings().config_path


def reset_settings_cache() -> None:
    global _settings
    _settings = None
