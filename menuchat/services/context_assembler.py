"""Context assembly: selected chunks → one bounded, labeled prompt context."""

from typing import Sequence

from menuchat.core.config import MAX_CONTEXT_CHARS
from menuchat.services.text_processing import CorpusChunk


def format_block(chunk: CorpusChunk) -> str:
    return f"### {chunk.section.upper()} ({chunk.id})\n{chunk.text.strip()}"


def assemble_context(chunks: Sequence[CorpusChunk], max_chars: int = MAX_CONTEXT_CHARS) -> str:
    """Blocks in the given order, separated by blank lines, cut as a whole at max_chars."""
    return "\n\n".join(format_block(c) for c in chunks)[:max_chars]
