"""
Shared fixtures: a controllable clock, a keyword-vector fake provider and a tiny menu.

The fake provider embeds text as keyword counts, so similarity is predictable
without any network access.
"""

import pytest
from fastapi.testclient import TestClient

from menuchat.core.context import GovernanceContext
from menuchat.main import app

MENU_TEXT = """TÜRKIZ Restaurant
Open daily 12:00-22:00, Budapest

MEZE / MEZZE
Hummus 1900 Ft
Falafel 2100 Ft

ITALOK / DRINKS
Red wine 2500 Ft
Beer 1200 Ft
Lemonade 900 Ft

Az árak forintban értendőek. Prices include VAT."""

KEYWORD_GROUPS: tuple[tuple[str, ...], ...] = (
    ("meze", "hummus", "falafel"),
    ("drink", "italok", "wine", "beer", "lemonade"),
    ("cheap", "lowest"),
    ("recommend",),
    ("compare",),
    ("general", "open"),
)


def keyword_vector(text: str) -> list[float]:
    lower = text.lower()
    return [float(sum(lower.count(word) for word in group)) for group in KEYWORD_GROUPS]


class FakeClock:
    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeProvider:
    model = "fake-model"

    def __init__(self, fragments: list[str] | None = None) -> None:
        self.fragments = fragments if fragments is not None else ["Red wine ", "is 2500 Ft."]
        self.fail_after: int | None = None
        self.embed_calls: list[list[str]] = []
        self.complete_calls: list[list[dict]] = []
        self.stream_calls: list[list[dict]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.embed_calls.append(list(texts))
        return [keyword_vector(t) for t in texts]

    async def complete(self, messages: list[dict]) -> str:
        self.complete_calls.append(messages)
        return "".join(self.fragments)

    async def stream(self, messages: list[dict]):
        self.stream_calls.append(messages)
        for i, fragment in enumerate(self.fragments):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("stream interrupted")
            yield fragment

    @property
    def generations(self) -> int:
        return len(self.complete_calls) + len(self.stream_calls)


def static_source(text: str):
    async def _source() -> str:
        return text

    return _source


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def ctx(clock: FakeClock) -> GovernanceContext:
    return GovernanceContext(clock=clock, corpus_source=static_source(MENU_TEXT))


@pytest.fixture
def client(ctx: GovernanceContext, provider: FakeProvider):
    app.state.governance = ctx
    app.state.provider = provider
    app.state.streaming_enabled = True
    yield TestClient(app)
    app.state.governance = GovernanceContext()
    app.state.provider = None
    app.state.streaming_enabled = True
