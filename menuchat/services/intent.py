"""
Intent classification by nearest prototype.

The label only widens retrieval and adds a one-line hint to the prompt; it never
filters which chunks are eligible.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from menuchat.agent.llm import LLMProvider
from menuchat.core.lazy import LazyResource
from menuchat.services.retrieval_service import cosine_similarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentPrototype:
    label: str
    text: str
    vector: tuple[float, ...] = ()


@dataclass(frozen=True)
class IntentMatch:
    label: str
    score: float


DEFAULT_INTENT = "general"

INTENT_DESCRIPTIONS: tuple[tuple[str, str], ...] = (
    ("recommendation", "User asks for recommendations or what to try today."),
    ("cheapest", "User asks for the cheapest or lowest priced option."),
    ("comparison", "User asks to compare items, prices, or differences."),
    ("general", "User asks general restaurant info or menu info."),
)


def nearest_intent(query_vector: Sequence[float], prototypes: Sequence[IntentPrototype]) -> IntentMatch:
    """Highest cosine similarity wins; on ties the first prototype is kept."""
    best: IntentMatch | None = None
    for proto in prototypes:
        score = cosine_similarity(query_vector, proto.vector)
        if best is None or score > best.score:
            best = IntentMatch(proto.label, score)
    return best or IntentMatch(DEFAULT_INTENT, 0.0)


class IntentClassifier:
    def __init__(self, descriptions: tuple[tuple[str, str], ...] = INTENT_DESCRIPTIONS) -> None:
        self._descriptions = descriptions
        self._prototypes: LazyResource[tuple[IntentPrototype, ...]] = LazyResource("intent_prototypes")

    @property
    def ready(self) -> bool:
        return self._prototypes.ready

    async def prototypes(self, provider: LLMProvider) -> tuple[IntentPrototype, ...]:
        return await self._prototypes.get(lambda: self._embed(provider))

    async def _embed(self, provider: LLMProvider) -> tuple[IntentPrototype, ...]:
        vectors = await provider.embed([text for _, text in self._descriptions])
        return tuple(
            IntentPrototype(label, text, tuple(vec))
            for (label, text), vec in zip(self._descriptions, vectors)
        )

    async def classify(self, provider: LLMProvider, query_vector: Sequence[float]) -> IntentMatch:
        match = nearest_intent(query_vector, await self.prototypes(provider))
        logger.info("[intent:classify] OUT label=%s score=%.4f", match.label, match.score)
        return match

    def reset(self) -> None:
        self._prototypes.reset()
