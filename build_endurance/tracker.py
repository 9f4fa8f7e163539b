"""Turns per-tick player observations into discrete experience grants."""
from __future__ import annotations

import logging
from typing import List

from .config import ProgressionConfig
from .models import Activity, PlayerObservation, XpGrant

logger = logging.getLogger(__name__)


class DailyEventTracker:
    """Edge detection and once-per-day flags for a single session.

    None of this is persisted: a fresh tracker is equivalent to the start of a
    new day.
    """

    def __init__(self, config: ProgressionConfig) -> None:
        self._config = config
        self.was_exhausted = False
        self.was_collapsed = False
        self.has_recent_tool_exp = False
        self.was_eating = False

    def reset_for_new_day(self) -> None:
        self.was_exhausted = False
        self.was_collapsed = False
        self.has_recent_tool_exp = False
        self.was_eating = False

    def reset_daily_limits(self) -> None:
        """Clear only the once-per-day flags ahead of a save.

        Eating and tool cooldown describe what the player is doing right now,
        so they survive a mid-day save.
        """

        self.was_exhausted = False
        self.was_collapsed = False

    def on_tick(
        self, observation: PlayerObservation, one_second_elapsed: bool = False
    ) -> List[XpGrant]:
        grants: List[XpGrant] = []

        if one_second_elapsed and self.has_recent_tool_exp:
            self.has_recent_tool_exp = False

        # Reward finishing a meal, not holding food.
        if observation.is_eating:
            self.was_eating = True
        elif self.was_eating:
            grants.append(XpGrant(Activity.EATING, self._config.exp_for_eating))
            self.was_eating = False

        if not self.has_recent_tool_exp and observation.is_using_tool:
            grants.append(XpGrant(Activity.TOOL_USE, self._config.exp_for_tool_use))
            self.has_recent_tool_exp = True

        if not self.was_exhausted and observation.is_exhausted:
            grants.append(XpGrant(Activity.EXHAUSTION, self._config.exp_for_exhaustion))
            self.was_exhausted = True

        if not self.was_collapsed and observation.should_pass_out:
            grants.append(XpGrant(Activity.COLLAPSING, self._config.exp_for_collapsing))
            self.was_collapsed = True

        for grant in grants:
            logger.debug("Detected %s (+%d exp)", grant.activity.value, grant.amount)
        return grants


__all__ = ["DailyEventTracker"]
