"""
Health file writer for the electricity bridge.

Writes a JSON health file at a configurable path with three fields:
- last_telegram_ts: ISO timestamp of the most recent extraction pass.
- last_write_ts: ISO timestamp of the most recent successful InfluxDB write.
- active_connections: Number of meter connections currently being served.

The file is rewritten on every state change. Connection workers run in
separate threads, so every update is serialised with a lock. A failed
write is logged and never raised: the health file must not take a
connection or a pass down with it.

CHANGELOG:
- 2026-03-10: Log and swallow OSError on write so workers survive a missing directory
- 2026-03-08: Track active connections, guard writes with a lock
- 2026-03-02: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path

logger = logging.getLogger(__name__)


class HealthWriter:
    """Writes bridge health status to a JSON file.

    Each mutating method updates the in-memory state and immediately
    rewrites the health file so it always reflects the latest status.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._last_telegram_ts: str | None = None
        self._last_write_ts: str | None = None
        self._active_connections: int = 0

    def record_telegram(self) -> None:
        """Record an extraction pass and write health file."""
        with self._lock:
            self._last_telegram_ts = datetime.now(tz=UTC).isoformat()
            self._write()

    def record_write(self) -> None:
        """Record a successful sink write and write health file."""
        with self._lock:
            self._last_write_ts = datetime.now(tz=UTC).isoformat()
            self._write()

    def connection_opened(self) -> None:
        """Increment the active connection count and write health file."""
        with self._lock:
            self._active_connections += 1
            self._write()

    def connection_closed(self) -> None:
        """Decrement the active connection count and write health file."""
        with self._lock:
            self._active_connections = max(0, self._active_connections - 1)
            self._write()

    def _write(self) -> None:
        data = {
            "last_telegram_ts": self._last_telegram_ts,
            "last_write_ts": self._last_write_ts,
            "active_connections": self._active_connections,
        }
        try:
            self.path.write_text(json.dumps(data))
        except OSError:
            logger.warning("Failed to write health file %s", self.path, exc_info=True)
