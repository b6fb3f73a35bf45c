"""
core/ids.py -- Creation-time identifiers for in-memory records.

Records are keyed by the millisecond timestamp at which they were created.
Two records created inside the same millisecond would collide, so each
generator bumps the value past the last one it handed out.
"""

from __future__ import annotations

import threading
import time


class MillisecondIds:
    """Strictly increasing millisecond-timestamp ids. Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def next_id(self) -> int:
        with self._lock:
            candidate = time.time_ns() // 1_000_000
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate
