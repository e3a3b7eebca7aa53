from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import ConfigError

logger = logging.getLogger(__name__)


class BarBuilderSettings(BaseModel):
    """Tunable constants for capture, restore and the bar geometry."""

    total_bars: int = Field(10, ge=1, description="Number of action bars")
    slots_per_bar: int = Field(12, ge=1, description="Slots on each bar")
    default_enabled_bars: List[int] = Field(
        default_factory=lambda: [1, 2, 3, 4, 5, 6],
        description="Bars managed for a freshly created spec",
    )
    spec_count: int = Field(5, ge=1, description="Number of specs tracked per character")
    debounce_time: float = Field(0.5, ge=0.0, description="Seconds to coalesce slot change bursts")
    restore_delay: float = Field(1.0, ge=0.0, description="Delay before level-up restores and baselines")
    verify_delay: float = Field(1.0, ge=0.0, description="Delay between verify passes")
    verify_retries: int = Field(2, ge=1, description="Maximum verify passes per restore")
    spell_aliases: Dict[str, str] = Field(
        default_factory=lambda: {"Attack": "Auto Attack", "Shoot": "Auto Shot"},
        description="Tooltip name -> spellbook name",
    )
    log_level: str = Field("INFO", description="Level for the barbuilder loggers; BB_LOG_LEVEL overrides it")

    @field_validator("default_enabled_bars")
    @classmethod
    def unique_sorted_bars(cls, v: List[int]) -> List[int]:
        return sorted(set(int(b) for b in v or []))

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        name = str(v).strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown log level: {v}")
        return name

    @field_validator("spell_aliases")
    @classmethod
    def ensure_aliases_dict(cls, v: Dict[str, str]) -> Dict[str, str]:
        return {str(k): str(val) for k, val in (v or {}).items()}

    @property
    def total_slots(self) -> int:
        return self.total_bars * self.slots_per_bar

    # --------------- Loading ---------------

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @staticmethod
    def _flatten(data: dict) -> Dict[str, Any]:
        flat: Dict[str, Any] = {}
        for section in ("bars", "specs", "timing", "logging"):
            flat.update(data.get(section) or {})
        if "spell_aliases" in data:
            flat["spell_aliases"] = data["spell_aliases"]
        return flat

    @classmethod
    def load(cls, user_path: Optional[Path] = None) -> "BarBuilderSettings":
        """Load settings from built-in defaults and an optional user override file."""
        try:
            with resources.files("barbuilder.config").joinpath("default_settings.yaml").open(
                "r", encoding="utf-8"
            ) as f:
                default_data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Default settings not found; falling back to model defaults.")
            default_data = {}

        user_data: dict = {}
        if user_path is not None:
            if user_path.exists():
                try:
                    user_data = cls._load_yaml(user_path)
                except yaml.YAMLError as e:
                    raise ConfigError(f"Invalid settings file {user_path}: {e}") from e
                logger.info("Loaded user settings from %s", user_path)
            else:
                logger.warning("User settings file not found: %s", user_path)

        merged = cls._deep_merge(default_data, user_data)
        try:
            settings = cls(**cls._flatten(merged))
        except ValidationError as e:
            raise ConfigError(str(e)) from e
        logger.debug("Settings merged: %s", settings)
        return settings


__all__ = ["BarBuilderSettings"]
