"""Thread-safe progress reporting for concurrent planning rounds."""

from __future__ import annotations

import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class ProgressCounter:
    """Counter incremented from worker threads.

    Only the counter is shared between workers; everything else they
    produce is handed back to the planning thread.
    """

    def __init__(self, label: str, total: int = 0) -> None:
        self.label = label
        self._total = total
        self._done = 0
        self._lock = threading.Lock()

    def add_total(self, count: int) -> None:
        with self._lock:
            self._total += count

    def advance(self, item: Optional[str] = None) -> int:
        with self._lock:
            self._done += 1
            done, total = self._done, self._total
        logger.debug("%s: %d/%d%s", self.label, done, total, f" ({item})" if item else "")
        return done

    @property
    def done(self) -> int:
        with self._lock:
            return self._done

    @property
    def total(self) -> int:
        with self._lock:
            return self._total
