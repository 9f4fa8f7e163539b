"""Experience accumulation and level rollup."""
from __future__ import annotations

import logging

from .config import ProgressionConfig
from .models import ProgressionState

logger = logging.getLogger(__name__)


def add_exp(state: ProgressionState, delta: int) -> int:
    """Add ``delta`` experience without levelling; returns the new total.

    Levels are only rolled up at the end of the day so that a half-finished
    day never exposes an intermediate level.
    """

    state.current_exp += delta
    return state.current_exp


def next_threshold(current: int, multiplier: float) -> int:
    """Grow a level threshold along the curve, never shrinking it."""

    return max(current, int(current * multiplier))


def rollup_levels(state: ProgressionState, config: ProgressionConfig) -> int:
    """Convert banked experience into levels and return how many were gained.

    Several levels may be gained at once. With ``max_level`` at 0 levelling is
    disabled and experience keeps accumulating.
    """

    gained = 0
    while state.current_level < config.max_level and state.current_exp >= state.exp_to_next_level:
        state.current_level += 1
        state.current_exp -= state.exp_to_next_level
        state.exp_to_next_level = next_threshold(
            state.exp_to_next_level, config.exp_curve_multiplier
        )
        state.current_level_stamina_bonus += config.stamina_per_level
        gained += 1
    if gained:
        logger.info(
            "Gained %d level(s): now level %d, %d/%d exp",
            gained,
            state.current_level,
            state.current_exp,
            state.exp_to_next_level,
        )
    return gained


__all__ = ["add_exp", "next_threshold", "rollup_levels"]
