"""Progression state persistence."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Optional

from .config import ProgressionConfig
from .models import ProgressionState

logger = logging.getLogger(__name__)

_UNSAFE_SLOT_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class StateFileError(RuntimeError):
    """Raised when a save slot's state file cannot be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ProgressionStore:
    """One JSON record per save slot under ``<root>/data``."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def data_dir(self) -> Path:
        return self._root / "data"

    def path_for(self, save_slot_id: str) -> Path:
        if not save_slot_id:
            raise ValueError("save slot id must not be empty")
        safe_name = _UNSAFE_SLOT_CHARS.sub("_", save_slot_id)
        return self.data_dir / f"{safe_name}.json"

    def load(
        self, save_slot_id: str, config: Optional[ProgressionConfig] = None
    ) -> Optional[ProgressionState]:
        """Return the stored state, or ``None`` on a slot's first run."""

        path = self.path_for(save_slot_id)
        if not path.exists():
            logger.info("No progression data for %s; starting fresh", save_slot_id)
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StateFileError(path, f"invalid JSON ({exc.msg})") from exc
        if not isinstance(payload, dict):
            raise StateFileError(path, "expected a JSON object")
        try:
            state = ProgressionState.from_dict(payload, config)
        except (TypeError, ValueError) as exc:
            raise StateFileError(path, str(exc)) from exc
        logger.info(
            "Loaded progression for %s: level %d, %d/%d exp",
            save_slot_id,
            state.current_level,
            state.current_exp,
            state.exp_to_next_level,
        )
        return state

    def save(self, save_slot_id: str, state: ProgressionState) -> Path:
        path = self.path_for(save_slot_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload: Dict[str, object] = state.to_dict()
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp_path.replace(path)
        logger.info("Saved progression for %s to %s", save_slot_id, path)
        return path


__all__ = ["ProgressionStore", "StateFileError"]
