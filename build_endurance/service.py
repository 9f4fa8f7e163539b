"""Session orchestration driven by host lifecycle events."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .buffs import BuffSynchronizer, StatusEffectSink, compute_bonus
from .config import ProgressionConfig, get_config
from .leveling import add_exp, rollup_levels
from .models import Activity, BonusSource, PlayerObservation, ProgressionState, XpGrant
from .state import ProgressionStore
from .telemetry import TelemetryCollector, get_telemetry, track_duration
from .tracker import DailyEventTracker

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    NO_SESSION = "no_session"
    ACTIVE = "active"


class SessionNotActiveError(RuntimeError):
    """Raised when a session-scoped operation runs before a save is loaded."""


class EnduranceService:
    """Coordinates the tracker, levelling, buff and persistence for one player.

    The host calls :meth:`on_session_load`, then :meth:`on_tick` every game
    tick, :meth:`on_before_save` once per night and :meth:`on_session_end`
    when returning to the title screen. Calls are expected serially.
    """

    def __init__(
        self,
        store: ProgressionStore,
        sink: StatusEffectSink,
        config: ProgressionConfig | None = None,
        telemetry: TelemetryCollector | None = None,
    ) -> None:
        self.config = config or get_config()
        self.store = store
        self.tracker = DailyEventTracker(self.config)
        self.buffs = BuffSynchronizer(sink, self.config)
        self._telemetry = telemetry or get_telemetry()
        self._phase = SessionPhase.NO_SESSION
        self._save_slot: Optional[str] = None
        self.state: Optional[ProgressionState] = None

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def save_slot(self) -> Optional[str]:
        return self._save_slot

    # Host lifecycle ----------------------------------------------------
    def on_session_load(self, save_slot_id: str, observation: PlayerObservation) -> int:
        """Load (or create) the slot's progression and apply its buff."""

        if self._phase is SessionPhase.ACTIVE:
            logger.warning(
                "Loading %s while %s is still active; discarding unsaved progress",
                save_slot_id,
                self._save_slot,
            )
        self.tracker.reset_for_new_day()

        state = self.store.load(save_slot_id, self.config)
        if state is None:
            state = ProgressionState.fresh(self.config)
        state.capture_original_max_stamina(observation.max_stamina)

        if state.clear_mod_effects:
            logger.info("Clearing endurance progress for %s on request", save_slot_id)
            self._host_call("remove_bonus", self.buffs.remove_bonus)
            state.reset_progress(self.config, observation.max_stamina)
            self._emit(self._telemetry.track_session_event, "reset", save_slot_id)

        self.state = state
        self._save_slot = save_slot_id
        self._phase = SessionPhase.ACTIVE
        bonus = self._apply_buff()
        self._emit(self._telemetry.track_session_event, "load", save_slot_id)
        return bonus

    def on_tick(
        self, observation: PlayerObservation, one_second_elapsed: bool = False
    ) -> List[XpGrant]:
        """Feed one tick of observations; returns the experience granted."""

        if self._phase is not SessionPhase.ACTIVE or self.state is None:
            logger.debug("Ignoring tick before a save is loaded")
            return []
        if self.state.capture_original_max_stamina(observation.max_stamina):
            logger.info("Captured original max stamina %d", self.state.original_max_stamina)

        grants = self.tracker.on_tick(observation, one_second_elapsed)
        for grant in grants:
            self._grant(grant)
        return grants

    def on_before_save(self, observation: PlayerObservation | None = None) -> int:
        """End-of-day processing: sleep exp, rollup, buff refresh and persist.

        Returns the stamina bonus now in effect.
        """

        state = self._require_state()
        self.tracker.reset_daily_limits()
        self._grant(XpGrant(Activity.SLEEPING, self.config.exp_for_sleeping))
        if observation is not None:
            state.capture_original_max_stamina(observation.max_stamina)

        stamina_before = state.current_level_stamina_bonus
        gained = rollup_levels(state, self.config)
        if gained:
            if state.nightly_stamina > 0:
                state.nightly_stamina += state.current_level_stamina_bonus - stamina_before
            self._emit(
                self._telemetry.track_level_up, gained, state.current_level, self._save_slot
            )

        bonus = self._apply_buff()
        # Without a baseline the snapshot would not survive the next capture.
        if state.original_max_stamina > 0:
            state.nightly_stamina = state.original_max_stamina + bonus
        else:
            state.nightly_stamina = 0

        assert self._save_slot is not None
        slot = self._save_slot
        self._host_call("save", lambda: self.store.save(slot, state))
        return bonus

    def on_session_end(self) -> None:
        if self._phase is SessionPhase.ACTIVE:
            logger.info("Session for %s ended", self._save_slot)
            self._emit(self._telemetry.track_session_event, "end", self._save_slot)
        self._emit(self._telemetry.flush)
        self.state = None
        self._save_slot = None
        self._phase = SessionPhase.NO_SESSION

    # Player requests ---------------------------------------------------
    def request_reset(self) -> None:
        """Flag the progression to be wiped the next time this save loads."""

        state = self._require_state()
        state.clear_mod_effects = True
        logger.info("Reset requested for %s; applies on next load", self._save_slot)

    def status(self) -> Dict[str, Any]:
        state = self.state
        if state is None:
            return {"phase": self._phase.value}
        return {
            "phase": self._phase.value,
            "save_slot": self._save_slot,
            "level": state.current_level,
            "max_level": self.config.max_level,
            "exp": state.current_exp,
            "exp_to_next_level": state.exp_to_next_level,
            "stamina_bonus": compute_bonus(state),
            "original_max_stamina": state.original_max_stamina,
            "reset_pending": state.clear_mod_effects,
        }

    # Internal helpers --------------------------------------------------
    def _require_state(self) -> ProgressionState:
        if self._phase is not SessionPhase.ACTIVE or self.state is None:
            raise SessionNotActiveError("No save is loaded")
        return self.state

    def _grant(self, grant: XpGrant) -> None:
        assert self.state is not None
        total = add_exp(self.state, grant.amount)
        logger.debug("+%d exp for %s (total %d)", grant.amount, grant.activity.value, total)
        self._emit(
            self._telemetry.track_experience, grant.activity.value, grant.amount, self._save_slot
        )

    def _apply_buff(self) -> int:
        state = self._require_state()
        source = BonusSource.LEGACY if state.nightly_stamina > 0 else BonusSource.ADDITIVE
        bonus = self._host_call("apply_bonus", lambda: self.buffs.apply_bonus(state))
        self._emit(self._telemetry.track_buff, bonus, source.value, self._save_slot)
        return bonus

    def _host_call(self, operation: str, func: Callable[[], Any]) -> Any:
        """Run a call into the host, timing it; failures propagate."""

        try:
            with track_duration(operation, {"save_slot": self._save_slot or ""}, self._telemetry):
                return func()
        except Exception:
            logger.error("Host call %s failed for %s", operation, self._save_slot)
            raise

    def _emit(self, func: Callable[..., Any], *args: Any) -> None:
        try:
            func(*args)
        except Exception:
            logger.debug("Telemetry call %s failed", getattr(func, "__name__", func), exc_info=True)


__all__ = ["EnduranceService", "SessionNotActiveError", "SessionPhase"]
