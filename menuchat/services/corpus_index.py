"""
Corpus index: chunk the menu text and embed every chunk, once per process.

Responsibility: load → chunk → embed, memoized through LazyResource. The first
request pays the embedding cost; later ones reuse the aligned chunk/vector tuples.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from menuchat.agent.llm import LLMProvider
from menuchat.core.config import MAX_EMBED_CHUNK_CHARS
from menuchat.core.errors import ServiceUnavailableError
from menuchat.core.lazy import LazyResource
from menuchat.ingest.loader import load_corpus_text
from menuchat.services.text_processing import CorpusChunk, chunk_corpus

logger = logging.getLogger(__name__)

CorpusSource = Callable[[], Awaitable[str]]


@dataclass(frozen=True)
class CorpusIndex:
    """chunks[i] is embedded as vectors[i]."""

    chunks: tuple[CorpusChunk, ...]
    vectors: tuple[tuple[float, ...], ...]


class CorpusIndexer:
    def __init__(self, source: CorpusSource = load_corpus_text) -> None:
        self._source = source
        self._index: LazyResource[CorpusIndex] = LazyResource("corpus_index")

    @property
    def ready(self) -> bool:
        return self._index.ready

    @property
    def computations(self) -> int:
        return self._index.computations

    async def get(self, provider: LLMProvider) -> CorpusIndex:
        return await self._index.get(lambda: self._build(provider))

    async def _build(self, provider: LLMProvider) -> CorpusIndex:
        text = await self._source()
        chunks = chunk_corpus(text)
        if not chunks:
            raise ServiceUnavailableError("Corpus is empty")
        logger.info("[corpus_index:build] chunks=%d sections=%s",
                    len(chunks), sorted({c.section for c in chunks}))
        vectors = await provider.embed([c.text[:MAX_EMBED_CHUNK_CHARS] for c in chunks])
        if len(vectors) != len(chunks):
            raise RuntimeError(f"Embedding count mismatch: {len(vectors)} vectors for {len(chunks)} chunks")
        return CorpusIndex(chunks=tuple(chunks), vectors=tuple(tuple(v) for v in vectors))

    def reset(self) -> None:
        self._index.reset()
