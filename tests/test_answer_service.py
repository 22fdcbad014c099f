"""
Integration tests for the answer service: retrieval graph, generation, caching.

All external calls go through FakeProvider, so no API keys are needed.
"""

import asyncio
import json

import pytest
from conftest import MENU_TEXT, FakeClock, FakeProvider, static_source

from menuchat.agent.graph import build_messages, run_retrieval, trim_history
from menuchat.core.context import GovernanceContext
from menuchat.core.errors import ServiceUnavailableError
from menuchat.services.answer_service import ChatQuery, answer_buffered, answer_events, normalize_category
from menuchat.services.answer_streamer import DONE_EVENT, AnswerStreamer

SIX_HOURS_MS = 6 * 60 * 60 * 1000


def stream_all(ctx: GovernanceContext, provider: FakeProvider, query: ChatQuery) -> tuple[list[str], AnswerStreamer]:
    streamer = AnswerStreamer(streaming=True)

    async def _run() -> list[str]:
        return [event async for event in answer_events(ctx, provider, query, streamer)]

    return asyncio.run(_run()), streamer


class TestChatQuery:
    def test_unknown_category_falls_back(self) -> None:
        assert normalize_category("pizza") == "auto"
        assert normalize_category(None) == "auto"
        assert normalize_category("drinks") == "drinks"

    def test_history_is_trimmed(self) -> None:
        history = [{"role": "user", "content": "x" * 900}] * 20 + [{"role": "system", "content": "ignore me"}]
        query = ChatQuery.create("Wine?", history, "drinks")
        assert len(query.history) == 15
        assert all(len(t["content"]) == 500 for t in query.history)
        assert all(t["role"] == "user" for t in query.history)

    def test_trim_history_empty(self) -> None:
        assert trim_history(None) == []
        assert trim_history([]) == []


class TestRetrievalGraph:
    def test_drinks_question_pulls_drinks_chunk(self, ctx: GovernanceContext, provider: FakeProvider) -> None:
        state = asyncio.run(run_retrieval(ctx, provider, "Do you have wine?"))
        ids = [c.id for c in state["selected"]]
        assert ids[:2] == ["intro:1", "footer:1"]
        assert "drinks:1" in ids
        assert "### DRINKS (drinks:1)\nITALOK / DRINKS" in state["context"]

    def test_cheapest_question_is_classified(self, ctx: GovernanceContext, provider: FakeProvider) -> None:
        state = asyncio.run(run_retrieval(ctx, provider, "What is the cheapest drink?"))
        assert state["intent"] == "cheapest"

    def test_corpus_embedded_once(self, ctx: GovernanceContext, provider: FakeProvider) -> None:
        asyncio.run(run_retrieval(ctx, provider, "Do you have wine?"))
        asyncio.run(run_retrieval(ctx, provider, "Any hummus?"))
        chunk_batches = [call for call in provider.embed_calls if len(call) == 4 and "Hummus" in "".join(call)]
        assert len(chunk_batches) == 1
        assert ctx.corpus.computations == 1
        assert ctx.corpus.ready is True

    def test_empty_corpus_is_unavailable(self, clock: FakeClock, provider: FakeProvider) -> None:
        ctx = GovernanceContext(clock=clock, corpus_source=static_source("   "))
        with pytest.raises(ServiceUnavailableError):
            asyncio.run(run_retrieval(ctx, provider, "Do you have wine?"))
        assert ctx.corpus.ready is False

    def test_messages_layout(self) -> None:
        history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
        messages = build_messages("y" * 1500, history, "### DRINKS (drinks:1)\nBeer", "cheapest")
        assert [m["role"] for m in messages] == ["system", "system", "user", "assistant", "user"]
        assert "INTENT (internal): cheapest" in messages[0]["content"]
        assert messages[1]["content"].endswith("### DRINKS (drinks:1)\nBeer")
        assert len(messages[-1]["content"]) == 1000


class TestBuffered:
    def test_answer_then_cache_hit(self, ctx: GovernanceContext, provider: FakeProvider) -> None:
        query = ChatQuery.create("Do you have wine?", [], "drinks")
        first = asyncio.run(answer_buffered(ctx, provider, query))
        assert first.answer == "Red wine is 2500 Ft."
        assert first.cached is False

        second = asyncio.run(answer_buffered(ctx, provider, query))
        assert second.answer == first.answer
        assert second.cached is True
        assert provider.generations == 1

    def test_context_reaches_model(self, ctx: GovernanceContext, provider: FakeProvider) -> None:
        asyncio.run(answer_buffered(ctx, provider, ChatQuery.create("Do you have wine?", [], None)))
        messages = provider.complete_calls[0]
        assert "### DRINKS (drinks:1)" in messages[1]["content"]
        assert messages[-1] == {"role": "user", "content": "Do you have wine?"}

    def test_expired_cache_regenerates(self, ctx: GovernanceContext, provider: FakeProvider, clock: FakeClock) -> None:
        query = ChatQuery.create("Do you have wine?", [], "auto")
        asyncio.run(answer_buffered(ctx, provider, query))
        clock.advance(SIX_HOURS_MS)
        result = asyncio.run(answer_buffered(ctx, provider, query))
        assert result.cached is False
        assert provider.generations == 2

    def test_different_history_misses_cache(self, ctx: GovernanceContext, provider: FakeProvider) -> None:
        asyncio.run(answer_buffered(ctx, provider, ChatQuery.create("Wine?", [], "auto")))
        other = ChatQuery.create("Wine?", [{"role": "user", "content": "We are vegan"}], "auto")
        assert asyncio.run(answer_buffered(ctx, provider, other)).cached is False

    def test_empty_answer_not_cached(self, ctx: GovernanceContext) -> None:
        provider = FakeProvider(fragments=["   "])
        query = ChatQuery.create("Do you have wine?", [], "auto")
        assert asyncio.run(answer_buffered(ctx, provider, query)).answer == ""
        assert len(ctx.cache) == 0


class TestStreaming:
    def test_stream_events_and_cache_write(self, ctx: GovernanceContext, provider: FakeProvider) -> None:
        query = ChatQuery.create("Do you have wine?", [], "auto")
        events, streamer = stream_all(ctx, provider, query)
        assert events[-1] == DONE_EVENT
        assert [json.loads(e[6:-2])["delta"] for e in events[:-1]] == ["Red wine ", "is 2500 Ft."]
        assert streamer.answer == "Red wine is 2500 Ft."
        assert ctx.cache.get(query.cache_key).answer == "Red wine is 2500 Ft."

    def test_cached_stream_has_single_delta(self, ctx: GovernanceContext, provider: FakeProvider) -> None:
        query = ChatQuery.create("Do you have wine?", [], "auto")
        stream_all(ctx, provider, query)
        events, _ = stream_all(ctx, provider, query)
        assert len(events) == 2
        assert json.loads(events[0][6:-2]) == {"delta": "Red wine is 2500 Ft.", "cached": True}
        assert provider.generations == 1

    def test_streamed_and_buffered_answers_match(self, clock: FakeClock) -> None:
        provider = FakeProvider(fragments=[" Beer ", "1200 Ft ", ""])
        query = ChatQuery.create("Beer?", [], "auto")
        streamed_ctx = GovernanceContext(clock=clock, corpus_source=static_source(MENU_TEXT))
        buffered_ctx = GovernanceContext(clock=clock, corpus_source=static_source(MENU_TEXT))
        _, streamer = stream_all(streamed_ctx, provider, query)
        result = asyncio.run(answer_buffered(buffered_ctx, provider, query))
        assert streamer.answer == result.answer == "Beer 1200 Ft"

    def test_failure_mid_stream(self, ctx: GovernanceContext) -> None:
        provider = FakeProvider(fragments=["Red ", "wine ", "is 2500 Ft."])
        provider.fail_after = 1
        query = ChatQuery.create("Do you have wine?", [], "auto")
        events, _ = stream_all(ctx, provider, query)
        assert json.loads(events[0][6:-2]) == {"delta": "Red "}
        assert json.loads(events[-2][6:-2]) == {"error": "SERVER_ERROR"}
        assert events[-1] == DONE_EVENT
        assert ctx.cache.get(query.cache_key) is None

    def test_retrieval_failure_is_reported_in_stream(self, clock: FakeClock, provider: FakeProvider) -> None:
        ctx = GovernanceContext(clock=clock, corpus_source=static_source(""))
        events, _ = stream_all(ctx, provider, ChatQuery.create("Wine?", [], "auto"))
        assert len(events) == 2
        assert json.loads(events[0][6:-2]) == {"error": "SERVER_ERROR"}
        assert events[1] == DONE_EVENT
