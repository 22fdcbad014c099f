"""
In-memory per-client rate limiter (fixed window request count).

State lives only in process memory; a reset simply treats every client as new.
"""

import logging
import math
from dataclasses import dataclass

from menuchat.core.clock import Clock, now_ms
from menuchat.core.config import RL_LIMIT, RL_WINDOW_MS
from menuchat.core.errors import ErrorKind, RequestFailure

logger = logging.getLogger(__name__)


@dataclass
class RateState:
    window_start: int
    count: int
    reset_at: int


class RateLimiter:
    def __init__(
        self,
        limit: int = RL_LIMIT,
        window_ms: int = RL_WINDOW_MS,
        clock: Clock = now_ms,
    ) -> None:
        self.limit = limit
        self.window_ms = window_ms
        self._clock = clock
        self._states: dict[str, RateState] = {}

    def check(self, key: str) -> RequestFailure | None:
        """Count this request; over-limit calls are counted too."""
        now = self._clock()
        st = self._states.get(key) or RateState(window_start=now, count=0, reset_at=now + self.window_ms)
        if now - st.window_start > self.window_ms:
            st.window_start = now
            st.count = 0
            st.reset_at = now + self.window_ms
        st.count += 1
        self._states[key] = st

        if st.count > self.limit:
            retry_after = max(1, math.ceil((st.reset_at - now) / 1000))
            logger.info("[rate_limiter:check] key=%s count=%d over limit, retry_after=%ds", key, st.count, retry_after)
            return RequestFailure(ErrorKind.RATE_LIMIT, retry_after)
        return None

    def get(self, key: str) -> RateState | None:
        return self._states.get(key)

    def prune(self) -> int:
        """Drop states whose window has elapsed. Returns the number removed."""
        now = self._clock()
        stale = [k for k, st in self._states.items() if now - st.window_start > self.window_ms]
        for k in stale:
            del self._states[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._states)
