"""Single-flight guard: at most one in-progress answer per client key (per process)."""

import logging

logger = logging.getLogger(__name__)


class InFlightGuard:
    def __init__(self) -> None:
        self._keys: set[str] = set()

    def acquire(self, key: str) -> bool:
        """Record key as busy. Returns False if it already is. Never awaits."""
        if key in self._keys:
            logger.info("[in_flight:acquire] key=%s busy", key)
            return False
        self._keys.add(key)
        return True

    def release(self, key: str) -> None:
        self._keys.discard(key)

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)
