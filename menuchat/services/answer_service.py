"""
Answer service: cache lookup, retrieval, generation and cache write-back.

Responsibility: everything after governance admitted the request. No HTTP here;
the in-flight key is released by the caller.
"""

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator

from menuchat.agent.graph import build_messages, run_retrieval, trim_history
from menuchat.agent.llm import LLMProvider, Message
from menuchat.core.config import DEFAULT_CATEGORY, VALID_CATEGORIES
from menuchat.core.context import GovernanceContext
from menuchat.core.response_cache import make_cache_key
from menuchat.services.answer_streamer import DONE_EVENT, AnswerStreamer

logger = logging.getLogger(__name__)


def normalize_category(category: str | None) -> str:
    return category if category in VALID_CATEGORIES else DEFAULT_CATEGORY


@dataclass(frozen=True)
class ChatQuery:
    message: str
    history: list[Message]
    category: str

    @classmethod
    def create(cls, message: str, history: list[dict[str, Any]] | None, category: str | None) -> "ChatQuery":
        return cls(message=message, history=trim_history(history), category=normalize_category(category))

    @property
    def cache_key(self) -> str:
        return make_cache_key(self.message, self.history, self.category)


@dataclass(frozen=True)
class AnswerResult:
    answer: str
    cached: bool


async def _prepare_messages(ctx: GovernanceContext, provider: LLMProvider, query: ChatQuery) -> list[Message]:
    state = await run_retrieval(ctx, provider, query.message)
    return build_messages(query.message, query.history, state.get("context") or "", state.get("intent") or "")


def _store(ctx: GovernanceContext, key: str, answer: str | None) -> None:
    if answer:
        ctx.cache.put(key, answer)


async def answer_buffered(ctx: GovernanceContext, provider: LLMProvider, query: ChatQuery) -> AnswerResult:
    """Complete answer in one piece. Raises on retrieval/generation failure."""
    ctx.cleanup()
    key = query.cache_key
    hit = ctx.cache.get(key)
    if hit is not None:
        logger.info("[answer:buffered] cache hit category=%s", query.category)
        return AnswerResult(hit.answer, cached=True)

    messages = await _prepare_messages(ctx, provider, query)
    streamer = AnswerStreamer(streaming=False)
    answer = await streamer.deliver(await provider.complete(messages))
    _store(ctx, key, answer)
    logger.info("[answer:buffered] OUT answer_len=%d", len(answer))
    return AnswerResult(answer, cached=False)


async def answer_events(
    ctx: GovernanceContext,
    provider: LLMProvider,
    query: ChatQuery,
    streamer: AnswerStreamer,
) -> AsyncIterator[str]:
    """
    SSE events for one answer. Failures are logged and surfaced as an error
    event followed by the terminal event; nothing is cached in that case.
    """
    ctx.cleanup()
    key = query.cache_key
    hit = ctx.cache.get(key)
    if hit is not None:
        logger.info("[answer:stream] cache hit category=%s", query.category)
        for event in streamer.cached(hit.answer):
            yield event
        return

    try:
        messages = await _prepare_messages(ctx, provider, query)
        async for event in streamer.stream(provider.stream(messages)):
            if event == DONE_EVENT:
                _store(ctx, key, streamer.answer)
            yield event
    except Exception:
        logger.exception("[answer:stream] generation failed")
        for event in streamer.failed():
            yield event
        return

    logger.info("[answer:stream] OUT answer_len=%d events=%d", len(streamer.answer or ""), streamer.events_sent)
