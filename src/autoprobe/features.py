"""Unstable feature flags injected into every probe snippet."""

import threading
from typing import Iterable


class FeatureFlagManager:
    """Thread-safe set of enabled ``#![feature(...)]`` names.

    Each probe engine owns its own manager, so engines probing different
    toolchains never share feature state.
    """

    def __init__(self, names: Iterable[str] = ()):
        self._names: set[str] = set()
        self._lock = threading.Lock()
        for name in names:
            self.enable(name)

    def enable(self, name: str) -> None:
        name = name.strip()
        if not name:
            raise ValueError("Feature name must not be empty")
        with self._lock:
            self._names.add(name)

    def disable(self, name: str) -> None:
        """Remove a feature; removing one that is not enabled is a no-op."""
        with self._lock:
            self._names.discard(name.strip())

    def is_enabled(self, name: str) -> bool:
        with self._lock:
            return name in self._names

    def snapshot(self) -> tuple[str, ...]:
        """Return the enabled features in sorted order."""
        with self._lock:
            return tuple(sorted(self._names))

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)
