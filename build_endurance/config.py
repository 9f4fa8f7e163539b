"""Configuration loading utilities for Build Endurance."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_SETTINGS_PATH = Path(__file__).parent / "data" / "settings.yaml"


class ConfigError(ValueError):
    """Raised when the settings file holds values the engine cannot run with."""


@dataclass(frozen=True)
class ProgressionConfig:
    """Typed view over the settings YAML file."""

    exp_for_eating: int = 2
    exp_for_tool_use: int = 1
    exp_for_exhaustion: int = 25
    exp_for_collapsing: int = 50
    exp_for_sleeping: int = 10
    exp_curve_multiplier: float = 1.15
    max_level: int = 100
    initial_exp_to_next_level: int = 20
    initial_exp: int = 0
    stamina_per_level: int = 1
    buff_display_name: str = "Build Endurance"
    buff_icon: Optional[str] = "assets/stamina-buff.png"

    def __post_init__(self) -> None:
        rewards = {
            "experience.eating": self.exp_for_eating,
            "experience.tool_use": self.exp_for_tool_use,
            "experience.exhaustion": self.exp_for_exhaustion,
            "experience.collapsing": self.exp_for_collapsing,
            "experience.sleeping": self.exp_for_sleeping,
        }
        for key, value in rewards.items():
            if value < 0:
                raise ConfigError(f"{key} must be non-negative, got {value}")
        # A multiplier below 1 shrinks the threshold and the rollup never ends.
        if self.exp_curve_multiplier < 1:
            raise ConfigError(
                f"leveling.curve_multiplier must be >= 1, got {self.exp_curve_multiplier}"
            )
        if self.max_level < 0:
            raise ConfigError(f"leveling.max_level must be >= 0, got {self.max_level}")
        if self.initial_exp_to_next_level < 1:
            raise ConfigError(
                "leveling.initial_exp_to_next_level must be >= 1, "
                f"got {self.initial_exp_to_next_level}"
            )
        if self.initial_exp < 0:
            raise ConfigError(f"leveling.initial_exp must be >= 0, got {self.initial_exp}")

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "ProgressionConfig":
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("settings root must be a mapping")
        experience = data.get("experience", {}) or {}
        leveling = data.get("leveling", {}) or {}
        stamina = data.get("stamina", {}) or {}
        buff = data.get("buff", {}) or {}
        defaults = ProgressionConfig.__dataclass_fields__
        try:
            return ProgressionConfig(
                exp_for_eating=int(experience.get("eating", defaults["exp_for_eating"].default)),
                exp_for_tool_use=int(experience.get("tool_use", defaults["exp_for_tool_use"].default)),
                exp_for_exhaustion=int(
                    experience.get("exhaustion", defaults["exp_for_exhaustion"].default)
                ),
                exp_for_collapsing=int(
                    experience.get("collapsing", defaults["exp_for_collapsing"].default)
                ),
                exp_for_sleeping=int(experience.get("sleeping", defaults["exp_for_sleeping"].default)),
                exp_curve_multiplier=float(
                    leveling.get("curve_multiplier", defaults["exp_curve_multiplier"].default)
                ),
                max_level=int(leveling.get("max_level", defaults["max_level"].default)),
                initial_exp_to_next_level=int(
                    leveling.get(
                        "initial_exp_to_next_level",
                        defaults["initial_exp_to_next_level"].default,
                    )
                ),
                initial_exp=int(leveling.get("initial_exp", defaults["initial_exp"].default)),
                stamina_per_level=int(stamina.get("per_level", defaults["stamina_per_level"].default)),
                buff_display_name=str(
                    buff.get("display_name", defaults["buff_display_name"].default)
                ),
                buff_icon=buff.get("icon", defaults["buff_icon"].default),
            )
        except ConfigError:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid settings value: {exc}") from exc


class ConfigLoader:
    """Loads and caches settings from YAML configuration files."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_SETTINGS_PATH
        self._cache: ProgressionConfig | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self, force: bool = False) -> ProgressionConfig:
        """Read the settings file once; a missing file yields the defaults."""

        if self._cache is not None and not force:
            return self._cache
        if not self._path.exists():
            self._cache = ProgressionConfig()
            return self._cache
        with self._path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        self._cache = ProgressionConfig.from_dict(data)
        return self._cache


def get_config() -> ProgressionConfig:
    """Convenience accessor for default settings."""

    return ConfigLoader().load()


__all__ = ["ConfigError", "ConfigLoader", "ProgressionConfig", "get_config", "DEFAULT_SETTINGS_PATH"]
