"""Stamina buff computation and application."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from .config import ProgressionConfig
from .models import ENDLESS, ENDURANCE_BUFF_ID, BonusSource, BuffEffect, ProgressionState

logger = logging.getLogger(__name__)


class StatusEffectSink(Protocol):
    """Host surface that applies status effects to the player.

    Applying an effect whose id is already active must replace it.
    """

    def set_effect(self, effect: BuffEffect) -> None:
        ...


class EffectLedger:
    """In-memory status effects keyed by id.

    Used by hosts without a buff system of their own and by the test-suite.
    """

    def __init__(self) -> None:
        self._active: Dict[str, BuffEffect] = {}
        self.history: List[BuffEffect] = []

    def set_effect(self, effect: BuffEffect) -> None:
        self.history.append(effect)
        if effect.is_removal:
            self._active.pop(effect.id, None)
        else:
            self._active[effect.id] = effect

    def get(self, effect_id: str) -> Optional[BuffEffect]:
        return self._active.get(effect_id)

    def active(self) -> List[BuffEffect]:
        return list(self._active.values())

    def clear_day(self) -> None:
        """Expire endless effects at day rollover."""

        for key, effect in list(self._active.items()):
            if effect.duration == ENDLESS:
                del self._active[key]


def compute_bonus(state: ProgressionState) -> int:
    """Return the stamina bonus the persisted state describes.

    A non-zero ``nightly_stamina`` is an absolute snapshot written by earlier
    releases and wins over the additive fields.
    """

    if state.nightly_stamina > 0:
        return state.nightly_stamina - state.original_max_stamina
    return state.base_stamina_bonus + state.current_level_stamina_bonus


def reconcile(state: ProgressionState) -> BonusSource:
    """Bring the additive fields in line with the legacy snapshot, if any."""

    if state.nightly_stamina <= 0:
        return BonusSource.ADDITIVE
    legacy_bonus = state.nightly_stamina - state.original_max_stamina
    base = legacy_bonus - state.current_level_stamina_bonus
    if base != state.base_stamina_bonus:
        logger.info(
            "Migrating legacy stamina snapshot: base bonus %d -> %d",
            state.base_stamina_bonus,
            base,
        )
        state.base_stamina_bonus = base
    return BonusSource.LEGACY


class BuffSynchronizer:
    """Keeps the single endurance buff in step with the progression state."""

    def __init__(self, sink: StatusEffectSink, config: ProgressionConfig) -> None:
        self._sink = sink
        self._config = config

    @property
    def effect_id(self) -> str:
        return ENDURANCE_BUFF_ID

    def apply_bonus(self, state: ProgressionState) -> int:
        """Apply (or replace) the buff and return the bonus it carries."""

        source = reconcile(state)
        bonus = compute_bonus(state)
        effect = BuffEffect(
            id=ENDURANCE_BUFF_ID,
            display_name=self._config.buff_display_name,
            icon=self._config.buff_icon,
            magnitude=bonus,
            duration=ENDLESS,
        )
        self._sink.set_effect(effect)
        logger.debug("Applied endurance buff +%d max stamina (%s)", bonus, source.value)
        return bonus

    def remove_bonus(self) -> None:
        effect = BuffEffect(
            id=ENDURANCE_BUFF_ID,
            display_name="",
            icon=None,
            magnitude=0,
            duration=0,
        )
        self._sink.set_effect(effect)
        logger.info("Removed endurance buff")


__all__ = [
    "BuffSynchronizer",
    "EffectLedger",
    "StatusEffectSink",
    "compute_bonus",
    "reconcile",
]
