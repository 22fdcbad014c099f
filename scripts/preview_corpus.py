#!/usr/bin/env python3
"""
Preview how the menu corpus is split into sections and chunks.

Useful when the menu text changes: shows which section headings were found and
how many characters each chunk holds, without calling any embedding API.

Run from project root:

    python scripts/preview_corpus.py
    python scripts/preview_corpus.py data/menu.pdf --show-text
"""

import argparse
import sys
from pathlib import Path

# Project root on path so "menuchat" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from menuchat.core.config import CORPUS_FILE, MAX_EMBED_CHUNK_CHARS
from menuchat.ingest.loader import read_corpus_file
from menuchat.services.text_processing import chunk_section, split_sections


def main() -> None:
    parser = argparse.ArgumentParser(description="Preview corpus sections and chunks.")
    parser.add_argument("path", nargs="?", default=CORPUS_FILE, help="Corpus file (.txt or .pdf).")
    parser.add_argument(
        "--max-chars",
        type=int,
        default=MAX_EMBED_CHUNK_CHARS,
        help="Chunk character budget.",
    )
    parser.add_argument("--show-text", action="store_true", help="Print each chunk's text.")
    args = parser.parse_args()

    text = read_corpus_file(args.path)
    sections = split_sections(text)
    print(f"{args.path}: {len(text)} chars, {len(sections)} sections")

    total = 0
    for section in sections:
        chunks = chunk_section(section.key, section.text, args.max_chars)
        total += len(chunks)
        print(f"\n[{section.key}] {len(section.text)} chars → {len(chunks)} chunks")
        for chunk in chunks:
            print(f"  {chunk.id:<16} {len(chunk.text):>5} chars")
            if args.show_text:
                for line in chunk.text.rstrip().splitlines():
                    print(f"    | {line}")

    print(f"\nDone. {total} chunks.")


if __name__ == "__main__":
    main()
