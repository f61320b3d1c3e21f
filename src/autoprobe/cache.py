"""In-process cache of probe outcomes.

Keys are the exact snippet text handed to the compiler, including the
``#![no_std]`` and ``#![feature(...)]`` header lines. Probing the same
construct under two different feature sets therefore produces two entries
rather than one overwriting the other.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class ProbeCache:
    """Maps snippet text to whether it compiled. Thread-safe.

    Nothing is persisted; the cache lives as long as its engine.
    """

    def __init__(self):
        self._entries: dict[str, bool] = {}
        self.lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, snippet: str) -> Optional[bool]:
        """Look up a snippet, counting the hit or miss."""
        with self.lock:
            outcome = self._entries.get(snippet)
            if outcome is None:
                self.misses += 1
            else:
                self.hits += 1
            return outcome

    def put(self, snippet: str, outcome: bool) -> bool:
        """Record an outcome and return the stored value.

        If another thread stored a result for the same snippet first, that
        result wins so a snippet never maps to two different outcomes.
        """
        with self.lock:
            stored = self._entries.setdefault(snippet, outcome)
        if stored != outcome:
            logger.warning("Conflicting outcomes for identical probe snippet; keeping the first")
        return stored

    def items(self) -> list[tuple[str, bool]]:
        with self.lock:
            return list(self._entries.items())

    def __contains__(self, snippet: object) -> bool:
        with self.lock:
            return snippet in self._entries

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)
