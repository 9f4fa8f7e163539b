"""Core data models for Build Endurance."""
from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .config import ProgressionConfig


ENDURANCE_BUFF_ID = "Omegasis.BuildEndurance/EnduranceBuff"
# Buff lifetime meaning "until the day rolls over".
ENDLESS = -2
# 2:00 AM in the host's HHMM clock, when the player is forced to pass out.
PASS_OUT_TIME = 2600


class Activity(str, Enum):
    EATING = "eating"
    TOOL_USE = "tool_use"
    EXHAUSTION = "exhaustion"
    COLLAPSING = "collapsing"
    SLEEPING = "sleeping"


class BonusSource(str, Enum):
    """Which persisted representation produced the stamina bonus."""

    LEGACY = "legacy"
    ADDITIVE = "additive"


@dataclass(frozen=True)
class PlayerObservation:
    """Snapshot of the player as the host sees it on the current tick."""

    is_eating: bool = False
    is_using_tool: bool = False
    is_exhausted: bool = False
    stamina: float = 1.0
    health: int = 1
    time_of_day: int = 600
    max_stamina: int = 0

    @property
    def should_pass_out(self) -> bool:
        return self.stamina <= 0 or self.health <= 0 or self.time_of_day >= PASS_OUT_TIME


@dataclass(frozen=True)
class XpGrant:
    activity: Activity
    amount: int


@dataclass(frozen=True)
class BuffEffect:
    """Status effect payload handed to the host."""

    id: str
    display_name: str
    icon: Optional[str]
    magnitude: int
    duration: int

    @property
    def is_removal(self) -> bool:
        return self.duration == 0


# Field name -> key used in save files written by earlier releases.
_JSON_KEYS: Dict[str, str] = {
    "current_exp": "CurrentExp",
    "exp_to_next_level": "ExpToNextLevel",
    "current_level": "CurrentLevel",
    "base_stamina_bonus": "BaseStaminaBonus",
    "current_level_stamina_bonus": "CurrentLevelStaminaBonus",
    "original_max_stamina": "OriginalMaxStamina",
    "nightly_stamina": "NightlyStamina",
    "clear_mod_effects": "ClearModEffects",
}


@dataclass
class ProgressionState:
    """Persistent per-save progression record."""

    current_exp: int = 0
    exp_to_next_level: int = 20
    current_level: int = 0
    base_stamina_bonus: int = 0
    current_level_stamina_bonus: int = 0
    original_max_stamina: int = 0
    nightly_stamina: int = 0
    clear_mod_effects: bool = False

    @classmethod
    def fresh(cls, config: "ProgressionConfig") -> "ProgressionState":
        """Return first-run defaults for ``config``."""

        return cls(
            current_exp=config.initial_exp,
            exp_to_next_level=config.initial_exp_to_next_level,
        )

    def capture_original_max_stamina(self, max_stamina: int) -> bool:
        """Record the baseline stamina once per era; returns True when captured."""

        if self.original_max_stamina != 0:
            return False
        self.original_max_stamina = int(max_stamina)
        return self.original_max_stamina != 0

    def reset_progress(self, config: "ProgressionConfig", max_stamina: int) -> None:
        """Wipe all progression and start a new era from ``max_stamina``."""

        self.exp_to_next_level = config.initial_exp_to_next_level
        self.current_exp = config.initial_exp
        self.current_level = 0
        self.current_level_stamina_bonus = 0
        self.base_stamina_bonus = 0
        self.original_max_stamina = int(max_stamina)
        self.nightly_stamina = 0
        self.clear_mod_effects = False

    def to_dict(self) -> Dict[str, Any]:
        return {_JSON_KEYS[f.name]: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], config: Optional["ProgressionConfig"] = None
    ) -> "ProgressionState":
        """Build a state from a save file; missing keys take first-run defaults."""

        state = cls.fresh(config) if config is not None else cls()
        for f in fields(cls):
            key = _JSON_KEYS[f.name]
            if key not in data or data[key] is None:
                continue
            value = data[key]
            if f.name == "clear_mod_effects":
                setattr(state, f.name, bool(value))
            else:
                # Older releases stored the threshold as a float.
                setattr(state, f.name, int(value))
        return state
