"""Tests for progression persistence."""
from __future__ import annotations

import json

import pytest

from build_endurance.config import ProgressionConfig
from build_endurance.models import ProgressionState
from build_endurance.state import ProgressionStore, StateFileError


def test_missing_slot_returns_none(tmp_path):
    """A slot without a file is a first run."""
    store = ProgressionStore(tmp_path)

    assert store.load("Farm_123") is None


def test_save_then_load_preserves_fields(tmp_path):
    """Saved state reads back identically."""
    store = ProgressionStore(tmp_path)
    state = ProgressionState(
        current_exp=3,
        exp_to_next_level=24,
        current_level=1,
        current_level_stamina_bonus=3,
        original_max_stamina=270,
        nightly_stamina=273,
    )

    path = store.save("Farm_123", state)

    assert path == tmp_path / "data" / "Farm_123.json"
    assert store.load("Farm_123") == state
    assert not path.with_suffix(".json.tmp").exists()


def test_file_uses_legacy_key_names(tmp_path):
    """Save files keep the key names older releases wrote."""
    store = ProgressionStore(tmp_path)
    path = store.save("Farm_1", ProgressionState(current_level=2, clear_mod_effects=True))

    payload = json.loads(path.read_text(encoding="utf-8"))

    assert payload["CurrentLevel"] == 2
    assert payload["ClearModEffects"] is True
    assert set(payload) == {
        "CurrentExp",
        "ExpToNextLevel",
        "CurrentLevel",
        "BaseStaminaBonus",
        "CurrentLevelStaminaBonus",
        "OriginalMaxStamina",
        "NightlyStamina",
        "ClearModEffects",
    }


def test_legacy_file_with_missing_and_float_fields(tmp_path):
    """Older files may lack fields or store the threshold as a float."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "Old_9.json").write_text(
        json.dumps({"CurrentExp": 4, "ExpToNextLevel": 26.45, "NightlyStamina": 280, "Unknown": 1}),
        encoding="utf-8",
    )

    state = ProgressionStore(tmp_path).load("Old_9")

    assert state.current_exp == 4
    assert state.exp_to_next_level == 26
    assert state.nightly_stamina == 280
    assert state.current_level == 0
    assert state.clear_mod_effects is False


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", '{"CurrentExp": "many"}'])
def test_corrupt_file_raises(tmp_path, content):
    """Unreadable state is reported with its path rather than silently reset."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "Bad_1.json").write_text(content, encoding="utf-8")

    with pytest.raises(StateFileError) as excinfo:
        ProgressionStore(tmp_path).load("Bad_1")

    assert excinfo.value.path == data_dir / "Bad_1.json"


def test_slot_names_are_sanitised(tmp_path):
    """Slot ids cannot escape the data directory."""
    store = ProgressionStore(tmp_path)

    path = store.path_for("../evil/slot")

    assert path.parent == tmp_path / "data"
    assert path.name == ".._evil_slot.json"


def test_empty_slot_id_rejected(tmp_path):
    """An empty slot id has no file."""
    with pytest.raises(ValueError):
        ProgressionStore(tmp_path).path_for("")


def test_fresh_state_uses_config_defaults():
    """First-run defaults come from the configuration."""
    config = ProgressionConfig(initial_exp=5, initial_exp_to_next_level=40)

    state = ProgressionState.fresh(config)

    assert state.current_exp == 5
    assert state.exp_to_next_level == 40
    assert state.original_max_stamina == 0


def test_original_max_stamina_captured_once():
    """The baseline is recorded the first time only."""
    state = ProgressionState()

    assert state.capture_original_max_stamina(100) is True
    assert state.capture_original_max_stamina(150) is False
    assert state.original_max_stamina == 100


def test_missing_keys_take_configured_defaults(tmp_path):
    """Absent fields fall back to the configuration rather than class defaults."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "Old_2.json").write_text(json.dumps({"CurrentLevel": 3}), encoding="utf-8")
    config = ProgressionConfig(initial_exp=1, initial_exp_to_next_level=45)

    state = ProgressionStore(tmp_path).load("Old_2", config)

    assert state.current_level == 3
    assert state.exp_to_next_level == 45
    assert state.current_exp == 1
