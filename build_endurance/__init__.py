"""Build Endurance: stamina progression earned from daily activity."""

from .buffs import BuffSynchronizer, EffectLedger, StatusEffectSink
from .config import ConfigError, ConfigLoader, ProgressionConfig, get_config
from .models import ENDURANCE_BUFF_ID, BuffEffect, PlayerObservation, ProgressionState
from .service import EnduranceService, SessionNotActiveError, SessionPhase
from .state import ProgressionStore, StateFileError

__all__ = [
    "BuffEffect",
    "BuffSynchronizer",
    "ConfigError",
    "ConfigLoader",
    "ENDURANCE_BUFF_ID",
    "EffectLedger",
    "EnduranceService",
    "PlayerObservation",
    "ProgressionConfig",
    "ProgressionState",
    "ProgressionStore",
    "SessionNotActiveError",
    "SessionPhase",
    "StateFileError",
    "StatusEffectSink",
    "get_config",
]
