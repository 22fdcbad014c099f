"""
Text processing for retrieval: section splitting and chunking.

The menu text is split on fixed section headings, then each section is packed
line by line into chunks small enough to embed. Chunk quality directly impacts
retrieval accuracy: keeping whole lines together keeps a dish and its price in
the same chunk.
"""

import re
from dataclasses import dataclass

from menuchat.core.config import MAX_CONTEXT_CHARS, MAX_EMBED_CHUNK_CHARS


@dataclass(frozen=True)
class SectionMarker:
    key: str
    pattern: re.Pattern


@dataclass(frozen=True)
class Section:
    key: str
    text: str


@dataclass(frozen=True)
class CorpusChunk:
    id: str
    section: str
    text: str


def _marker(key: str, regex: str) -> SectionMarker:
    return SectionMarker(key, re.compile(regex, re.IGNORECASE))


INTRO_KEY = "intro"
FOOTER_KEY = "footer"

# Headings of the bilingual (HU / EN) menu, in no particular order
DEFAULT_MARKERS: tuple[SectionMarker, ...] = (
    _marker("meze", r"MEZE\s*/\s*MEZZE"),
    _marker("soups", r"LEVESEK\s*/\s*SOUPS"),
    _marker("oven", r"PÉKÜNK KEMENCÉJÉBŐL"),
    _marker("char", r"FASZÉNEN SÜLTEK\s*/\s*CHAR GRILLED"),
    _marker("classics", r"KLASSZIKUSOK\s*/\s*CLASSICS"),
    _marker("sea", r"TENGER FINOMSÁGAI"),
    _marker("salads", r"SALÁTÁK\s*/\s*SALADS"),
    _marker("sides", r"KÖRETEK\s*/\s*SIDES"),
    _marker("desserts", r"DESSZERTEK\s*/\s*DESSERTS"),
    _marker("drinks", r"ITALOK\s*/\s*DRINKS"),
    _marker(FOOTER_KEY, r"Az árak forintban értendőek"),
)


def split_sections(
    text: str,
    markers: tuple[SectionMarker, ...] = DEFAULT_MARKERS,
    max_chars: int = MAX_CONTEXT_CHARS,
) -> list[Section]:
    """
    Split the corpus into ordered, non-overlapping sections.

    The first match of each marker is a boundary. Text before the first boundary
    becomes the "intro" section. Without any match the whole (capped) text is a
    single intro section.
    """
    if not text or not text.strip():
        return []

    positions: list[tuple[int, str]] = []
    for m in markers:
        found = m.pattern.search(text)
        if found:
            positions.append((found.start(), m.key))
    positions.sort(key=lambda p: p[0])

    if not positions:
        return [Section(INTRO_KEY, text.strip()[:max_chars])]

    sections: list[Section] = []
    intro = text[: positions[0][0]].strip()
    if intro:
        sections.append(Section(INTRO_KEY, intro))

    for i, (start, key) in enumerate(positions):
        end = positions[i + 1][0] if i + 1 < len(positions) else len(text)
        body = text[start:end].strip()
        if body:
            sections.append(Section(key, body))
    return sections


def chunk_section(key: str, text: str, max_chars: int = MAX_EMBED_CHUNK_CHARS) -> list[CorpusChunk]:
    """
    Greedily pack whole lines into chunks of at most max_chars.

    Lines keep their line endings, so chunks are contiguous spans and joining a
    section's chunks gives back its text. A single line longer than max_chars
    is cut at max_chars.
    """
    pieces: list[str] = []
    buf = ""
    for line in text.splitlines(keepends=True):
        if buf and len(buf) + len(line) > max_chars:
            pieces.append(buf)
            buf = ""
        while len(line) > max_chars:
            pieces.append(line[:max_chars])
            line = line[max_chars:]
        buf += line
    if buf:
        pieces.append(buf)

    return [CorpusChunk(id=f"{key}:{i}", section=key, text=piece) for i, piece in enumerate(pieces, start=1)]


def chunk_corpus(
    text: str,
    markers: tuple[SectionMarker, ...] = DEFAULT_MARKERS,
    max_chunk_chars: int = MAX_EMBED_CHUNK_CHARS,
) -> list[CorpusChunk]:
    """Sections in text order, each section's chunks in ordinal order."""
    chunks: list[CorpusChunk] = []
    for section in split_sections(text, markers):
        chunks.extend(chunk_section(section.key, section.text, max_chunk_chars))
    return chunks
