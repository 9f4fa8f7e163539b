"""Telemetry for progression events in Build Endurance."""
from __future__ import annotations

import json
import logging
import os
import sqlite3
import time
from collections import Counter
from contextlib import closing
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_METRICS_SCHEMA = """
CREATE TABLE IF NOT EXISTS metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp REAL NOT NULL,
    metric_type TEXT NOT NULL,
    name TEXT NOT NULL,
    value REAL NOT NULL,
    tags TEXT NOT NULL,
    metadata TEXT NOT NULL
);
"""


class MetricType(Enum):
    """Types of metrics tracked."""
    EXPERIENCE = "experience"
    LEVEL_UP = "level_up"
    BUFF = "buff"
    SESSION = "session"
    ERROR_RATE = "error_rate"
    PERFORMANCE = "performance"


@dataclass
class MetricEvent:
    """Individual metric event."""
    timestamp: float
    metric_type: MetricType
    name: str
    value: float
    tags: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)


class TelemetryCollector:
    """Buffers progression metrics and optionally stores them in SQLite.

    Without a ``db_path`` metrics stay in memory and ``flush`` only trims
    the buffer, so nothing is written next to the player's save.
    """

    def __init__(self, db_path: Optional[Path] = None, buffer_limit: int = 500):
        self.db_path = db_path
        self._buffer_limit = buffer_limit
        self._metrics_buffer: List[MetricEvent] = []
        self._totals: Counter[str] = Counter()
        if self.db_path is not None:
            self._init_database()

    def _init_database(self) -> None:
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.executescript(_METRICS_SCHEMA)
            conn.commit()

    def track_experience(self, activity: str, amount: int, save_slot: Optional[str] = None):
        """Track an experience grant."""
        tags = {"activity": activity}
        if save_slot:
            tags["save_slot"] = save_slot
        self.record(MetricType.EXPERIENCE, activity, float(amount), tags=tags)

    def track_level_up(
        self,
        levels_gained: int,
        new_level: int,
        save_slot: Optional[str] = None,
    ):
        """Track levels gained during an end-of-day rollup."""
        tags = {"save_slot": save_slot} if save_slot else {}
        self.record(
            MetricType.LEVEL_UP,
            "rollup",
            float(levels_gained),
            tags=tags,
            metadata={"new_level": new_level},
        )

    def track_buff(self, bonus: int, source: str, save_slot: Optional[str] = None):
        """Track the stamina bonus applied to the player."""
        tags = {"source": source}
        if save_slot:
            tags["save_slot"] = save_slot
        self.record(MetricType.BUFF, "stamina_bonus", float(bonus), tags=tags)

    def track_session_event(self, event: str, save_slot: Optional[str] = None):
        """Record load/save/reset lifecycle events."""
        tags = {"save_slot": save_slot} if save_slot else {}
        self.record(MetricType.SESSION, event, 1.0, tags=tags)

    def track_error(
        self,
        error_type: str,
        operation: Optional[str] = None,
        error_details: Optional[str] = None
    ):
        """Track errors and failures."""
        tags = {"operation": operation} if operation else {}
        self.record(
            MetricType.ERROR_RATE,
            error_type,
            1.0,
            tags=tags,
            metadata={"error_details": error_details} if error_details else {}
        )

    def track_performance(
        self,
        operation: str,
        duration_ms: float,
        tags: Optional[Dict[str, str]] = None
    ):
        """Track performance metrics."""
        self.record(
            MetricType.PERFORMANCE,
            operation,
            duration_ms,
            tags=tags or {},
        )

    def record(
        self,
        metric_type: MetricType,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """Record a metric event."""
        event = MetricEvent(
            timestamp=time.time(),
            metric_type=metric_type,
            name=name,
            value=value,
            tags=tags or {},
            metadata=metadata or {}
        )
        self._metrics_buffer.append(event)
        self._totals[f"{metric_type.value}:{name}"] += value

        if len(self._metrics_buffer) >= self._buffer_limit:
            self.flush()

    def flush(self):
        """Flush buffered metrics to the database, if one is configured."""
        if not self._metrics_buffer:
            return
        if self.db_path is None:
            self._metrics_buffer.clear()
            return

        rows = [
            (
                event.timestamp,
                event.metric_type.value,
                event.name,
                event.value,
                json.dumps(event.tags),
                json.dumps(event.metadata),
            )
            for event in self._metrics_buffer
        ]
        try:
            with closing(sqlite3.connect(self.db_path)) as conn:
                conn.executemany(
                    "INSERT INTO metrics (timestamp, metric_type, name, value, tags, metadata) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    rows,
                )
                conn.commit()
        except sqlite3.Error:
            # Keep the buffer so the next flush retries.
            logger.error("Failed to flush %d metrics", len(rows), exc_info=True)
            return
        logger.info("Flushed %d metrics to %s", len(rows), self.db_path)
        self._metrics_buffer.clear()

    def pending(self) -> List[MetricEvent]:
        return list(self._metrics_buffer)

    def get_summary(self) -> Dict[str, float]:
        """Running totals per ``metric_type:name`` since startup."""
        return dict(self._totals)


_telemetry: Optional[TelemetryCollector] = None


def get_telemetry() -> TelemetryCollector:
    """Get or create singleton telemetry collector."""
    global _telemetry
    if _telemetry is None:
        db_path = os.getenv("BUILD_ENDURANCE_TELEMETRY_DB")
        _telemetry = TelemetryCollector(Path(db_path) if db_path else None)
    return _telemetry


class track_duration:
    """Context manager for tracking operation duration."""

    def __init__(
        self,
        operation: str,
        tags: Optional[Dict[str, str]] = None,
        collector: Optional[TelemetryCollector] = None,
    ):
        self.operation = operation
        self.tags = tags or {}
        self.collector = collector
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = (time.time() - self.start_time) * 1000
        telemetry = self.collector or get_telemetry()
        telemetry.track_performance(self.operation, duration_ms, self.tags)

        if exc_type:
            telemetry.track_error(
                exc_type.__name__,
                operation=self.operation,
                error_details=str(exc_val)
            )
        return False


__all__ = [
    "MetricEvent",
    "MetricType",
    "TelemetryCollector",
    "get_telemetry",
    "track_duration",
]
