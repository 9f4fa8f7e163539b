"""Tests for progression telemetry."""
import json
import sqlite3
import time

from build_endurance.telemetry import (
    MetricEvent,
    MetricType,
    TelemetryCollector,
    track_duration,
)


def test_metric_event_creation():
    """Test MetricEvent dataclass creation."""
    event = MetricEvent(
        timestamp=time.time(),
        metric_type=MetricType.EXPERIENCE,
        name="eating",
        value=2.0,
        tags={"save_slot": "Farm_1"},
    )

    assert event.metric_type == MetricType.EXPERIENCE
    assert event.tags["save_slot"] == "Farm_1"
    assert event.metadata == {}


def test_memory_only_collector_writes_nothing(tmp_path, monkeypatch):
    """Without a database path nothing is written to disk."""
    monkeypatch.chdir(tmp_path)
    collector = TelemetryCollector()

    collector.track_experience("eating", 2, save_slot="Farm_1")
    collector.flush()

    assert collector.pending() == []
    assert list(tmp_path.iterdir()) == []
    assert collector.get_summary() == {"experience:eating": 2.0}


def test_flush_to_database(tmp_path):
    """Buffered metrics land in the metrics table on flush."""
    db_path = tmp_path / "telemetry.db"
    collector = TelemetryCollector(db_path)

    collector.track_level_up(2, 7, save_slot="Farm_1")
    collector.track_buff(7, "additive")
    collector.flush()

    with sqlite3.connect(db_path) as conn:
        rows = conn.execute("SELECT metric_type, name, value FROM metrics ORDER BY id").fetchall()
    assert rows == [("level_up", "rollup", 2.0), ("buff", "stamina_bonus", 7.0)]
    with sqlite3.connect(db_path) as conn:
        (metadata,) = conn.execute("SELECT metadata FROM metrics WHERE name = ?", ("rollup",)).fetchone()
    assert json.loads(metadata) == {"new_level": 7}
    assert collector.pending() == []


def test_buffer_limit_triggers_flush(tmp_path):
    """A full buffer flushes automatically."""
    collector = TelemetryCollector(tmp_path / "telemetry.db", buffer_limit=3)

    for _ in range(3):
        collector.track_session_event("load")

    assert collector.pending() == []
    assert collector.get_summary()["session:load"] == 3


def test_track_duration_records_errors():
    """Exceptions inside a timed block are counted and re-raised."""
    collector = TelemetryCollector()

    try:
        with track_duration("save", collector=collector):
            raise OSError("disk full")
    except OSError:
        pass

    kinds = [e.metric_type for e in collector.pending()]
    assert kinds == [MetricType.PERFORMANCE, MetricType.ERROR_RATE]
    assert collector.pending()[1].metadata["error_details"] == "disk full"
