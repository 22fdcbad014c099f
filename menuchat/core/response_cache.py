"""
In-memory answer cache keyed by a literal request signature.

Keys fold the category, the trimmed question and a short tail of the recent
conversation, so an identical repeat in the same context hits; paraphrases do not.
"""

import logging
from dataclasses import dataclass
from typing import Any

from menuchat.core.clock import Clock, now_ms
from menuchat.core.config import (
    CACHE_KEY_HISTORY_TURNS,
    CACHE_KEY_MESSAGE_CHARS,
    CACHE_KEY_TURN_CHARS,
    CACHE_MAX_ENTRIES,
    CACHE_TTL_MS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    timestamp: int
    answer: str


def make_cache_key(message: str, history: list[dict[str, Any]], category: str) -> str:
    """Deterministic signature of (category, question, last few turns)."""
    tail = history[-CACHE_KEY_HISTORY_TURNS:] if history else []
    h_key = "|".join(
        f"{t.get('role') or ''}:{(t.get('content') or '').strip()[:CACHE_KEY_TURN_CHARS]}" for t in tail
    )
    return f"{category}::{(message or '').strip()[:CACHE_KEY_MESSAGE_CHARS]}::{h_key}"


class ResponseCache:
    def __init__(
        self,
        ttl_ms: int = CACHE_TTL_MS,
        max_entries: int | None = CACHE_MAX_ENTRIES,
        clock: Clock = now_ms,
    ) -> None:
        self.ttl_ms = ttl_ms
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        """Return the entry if present and younger than the TTL. Expired entries stay until cleanup()."""
        entry = self._entries.get(key)
        if entry is None or self._clock() - entry.timestamp >= self.ttl_ms:
            return None
        return entry

    def put(self, key: str, answer: str) -> CacheEntry:
        entry = CacheEntry(key=key, timestamp=self._clock(), answer=answer)
        self._entries.pop(key, None)
        self._entries[key] = entry
        if self.max_entries is not None:
            # dicts keep insertion order: the first keys are the oldest writes
            while len(self._entries) > self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
        return entry

    def cleanup(self) -> int:
        """Purge expired entries. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.timestamp >= self.ttl_ms]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.info("[response_cache:cleanup] removed %d expired entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
