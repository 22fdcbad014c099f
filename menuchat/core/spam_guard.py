"""
Spam guard: layered per-client abuse state machine.

Checked in order:
  1. cooldown     - an active block rejects without touching state;
  2. min interval - two requests closer than MIN_INTERVAL_MS start a short block;
  3. window count - more than SPAM_LIMIT requests in SPAM_WINDOW_MS start a long block;
  4. otherwise the request is recorded and allowed.
"""

import logging
import math
from dataclasses import dataclass

from menuchat.core.clock import Clock, now_ms
from menuchat.core.config import (
    MIN_INTERVAL_MS,
    SPAM_BLOCK_MS,
    SPAM_LIMIT,
    SPAM_WINDOW_MS,
    TOO_FAST_BLOCK_MS,
)
from menuchat.core.errors import ErrorKind, RequestFailure

logger = logging.getLogger(__name__)


@dataclass
class SpamState:
    window_start: int
    count: int = 0
    blocked_until: int = 0
    last_request_at: int = 0


class SpamGuard:
    def __init__(
        self,
        limit: int = SPAM_LIMIT,
        window_ms: int = SPAM_WINDOW_MS,
        block_ms: int = SPAM_BLOCK_MS,
        min_interval_ms: int = MIN_INTERVAL_MS,
        too_fast_block_ms: int = TOO_FAST_BLOCK_MS,
        clock: Clock = now_ms,
    ) -> None:
        self.limit = limit
        self.window_ms = window_ms
        self.block_ms = block_ms
        self.min_interval_ms = min_interval_ms
        self.too_fast_block_ms = too_fast_block_ms
        self._clock = clock
        self._states: dict[str, SpamState] = {}

    def check(self, key: str) -> RequestFailure | None:
        now = self._clock()
        st = self._states.get(key) or SpamState(window_start=now)

        if st.blocked_until and now < st.blocked_until:
            retry_after = max(1, math.ceil((st.blocked_until - now) / 1000))
            return RequestFailure(ErrorKind.COOLDOWN, retry_after)

        if st.last_request_at and now - st.last_request_at < self.min_interval_ms:
            st.blocked_until = now + self.too_fast_block_ms
            self._states[key] = st
            logger.info("[spam_guard:check] key=%s too fast, blocked for %dms", key, self.too_fast_block_ms)
            return RequestFailure(ErrorKind.TOO_FAST, max(1, math.ceil(self.too_fast_block_ms / 1000)))

        if now - st.window_start > self.window_ms:
            st.window_start = now
            st.count = 0

        st.count += 1
        st.last_request_at = now

        if st.count > self.limit:
            st.blocked_until = now + self.block_ms
            self._states[key] = st
            logger.warning("[spam_guard:check] key=%s exceeded %d requests in window, blocked for %dms",
                           key, self.limit, self.block_ms)
            return RequestFailure(ErrorKind.SPAM_WINDOW, max(1, math.ceil(self.block_ms / 1000)))

        self._states[key] = st
        return None

    def get(self, key: str) -> SpamState | None:
        return self._states.get(key)

    def prune(self) -> int:
        """Drop states with no active block, an elapsed window and no recent request."""
        now = self._clock()
        stale = [
            k
            for k, st in self._states.items()
            if now >= st.blocked_until
            and now - st.window_start > self.window_ms
            and now - st.last_request_at >= self.min_interval_ms
        ]
        for k in stale:
            del self._states[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._states)
