"""
Governance context: all process-wide mutable state in one injected object.

Owned by the server process (app.state), created empty at startup, never
persisted. Resetting it only relaxes protection until clients are seen again.
"""

import logging
from dataclasses import dataclass, field

from menuchat.core.clock import Clock, now_ms
from menuchat.core.errors import ErrorKind, RequestFailure
from menuchat.core.in_flight import InFlightGuard
from menuchat.core.rate_limiter import RateLimiter
from menuchat.core.response_cache import ResponseCache
from menuchat.core.spam_guard import SpamGuard
from menuchat.ingest.loader import load_corpus_text
from menuchat.services.corpus_index import CorpusIndexer, CorpusSource
from menuchat.services.intent import IntentClassifier

logger = logging.getLogger(__name__)


@dataclass
class GovernanceContext:
    clock: Clock = now_ms
    corpus_source: CorpusSource = load_corpus_text
    rate_limiter: RateLimiter = field(init=False)
    spam_guard: SpamGuard = field(init=False)
    in_flight: InFlightGuard = field(init=False)
    cache: ResponseCache = field(init=False)
    corpus: CorpusIndexer = field(init=False)
    intents: IntentClassifier = field(init=False)

    def __post_init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Forget everything: every client is new, the corpus is cold."""
        self.rate_limiter = RateLimiter(clock=self.clock)
        self.spam_guard = SpamGuard(clock=self.clock)
        self.in_flight = InFlightGuard()
        self.cache = ResponseCache(clock=self.clock)
        self.corpus = CorpusIndexer(self.corpus_source)
        self.intents = IntentClassifier()

    def admit(self, key: str) -> RequestFailure | None:
        """
        Rate limit → spam guard → busy guard. Synchronous on purpose: the in-flight
        key is recorded before the caller can suspend. On success the caller owns
        the key and must release it.
        """
        failure = self.rate_limiter.check(key) or self.spam_guard.check(key)
        if failure is not None:
            logger.info("[context:admit] key=%s rejected=%s", key, failure.kind.value)
            return failure
        if not self.in_flight.acquire(key):
            return RequestFailure(ErrorKind.BUSY)
        return None

    def release(self, key: str) -> None:
        self.in_flight.release(key)

    def cleanup(self) -> None:
        """Opportunistic purge of stale entries, run at the start of each answer computation."""
        self.cache.cleanup()
        self.rate_limiter.prune()
        self.spam_guard.prune()
