"""
Retrieval: rank corpus chunks against a query vector.

Responsibility: cosine ranking over the in-memory chunk vectors, intent-aware
top-K, and always keeping the intro / footer boilerplate (hours, contact, price
notes) regardless of rank.
"""

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from menuchat.core.config import RETRIEVAL_TOP_K_BROAD, RETRIEVAL_TOP_K_DEFAULT
from menuchat.services.text_processing import FOOTER_KEY, INTRO_KEY, CorpusChunk

logger = logging.getLogger(__name__)

BROAD_INTENTS = frozenset({"cheapest", "comparison"})


@dataclass(frozen=True)
class ScoredChunk:
    chunk: CorpusChunk
    score: float


@dataclass(frozen=True)
class RetrievalResult:
    ranked: list[ScoredChunk]
    selected: list[CorpusChunk]
    top_k: int


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    return dot / ((norm_a * norm_b) or 1.0)


def top_k_for_intent(intent: str) -> int:
    """Comparisons need more price-bearing chunks in view."""
    return RETRIEVAL_TOP_K_BROAD if intent in BROAD_INTENTS else RETRIEVAL_TOP_K_DEFAULT


def rank_chunks(
    query_vector: Sequence[float],
    chunks: Sequence[CorpusChunk],
    vectors: Sequence[Sequence[float]],
) -> list[ScoredChunk]:
    """Similarity of every chunk, best first. Ties keep corpus order."""
    scored = [ScoredChunk(chunk, cosine_similarity(query_vector, vec)) for chunk, vec in zip(chunks, vectors)]
    scored.sort(key=lambda s: -s.score)
    return scored


def retrieve(
    query_vector: Sequence[float],
    chunks: Sequence[CorpusChunk],
    vectors: Sequence[Sequence[float]],
    intent: str,
) -> RetrievalResult:
    """
    Pipeline: rank → top-K by intent → prepend first intro and first footer chunk,
    deduplicated by id. Order of `selected` is intro, footer, then ranked chunks.
    """
    top_k = top_k_for_intent(intent)
    ranked = rank_chunks(query_vector, chunks, vectors)
    top = [s.chunk for s in ranked[:top_k]]
    intro = [c for c in chunks if c.section == INTRO_KEY][:1]
    footer = [c for c in chunks if c.section == FOOTER_KEY][:1]

    selected: list[CorpusChunk] = []
    seen: set[str] = set()
    for chunk in [*intro, *footer, *top]:
        if chunk.id not in seen:
            seen.add(chunk.id)
            selected.append(chunk)

    logger.info("[retrieval:retrieve] OUT intent=%s top_k=%d selected=%s top_scores=%s",
                intent, top_k, [c.id for c in selected], [round(s.score, 4) for s in ranked[:top_k]])
    return RetrievalResult(ranked=ranked, selected=selected, top_k=top_k)
