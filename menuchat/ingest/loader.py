# Corpus loader. No embeddings, no chunking.
# Supports .txt and .pdf, from a local file or an HTTP(S) URL. Single place for "source → text".

import asyncio
import io
import logging
from pathlib import Path

import httpx

from menuchat.core.config import CORPUS_FETCH_TIMEOUT, CORPUS_FILE, CORPUS_URL
from menuchat.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


def bytes_to_text(raw: bytes, filename: str) -> str:
    """
    Convert raw file bytes to text by extension. .pdf goes through pypdf,
    everything else is decoded as UTF-8.
    """
    ext = Path(filename).suffix.lower() if filename else ""
    if ext == ".pdf":
        return _read_pdf(raw)
    return raw.decode("utf-8", errors="replace")


def _read_pdf(raw: bytes) -> str:
    from pypdf import PdfReader
    reader = PdfReader(io.BytesIO(raw))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent.parent


def _resolve(path: str) -> Path:
    p = Path(path)
    if p.is_absolute() or p.exists():
        return p
    return _project_root() / p


def read_corpus_file(path: str) -> str:
    full_path = _resolve(path)
    if not full_path.is_file():
        raise ServiceUnavailableError(f"Corpus file not found: {path}")
    text = bytes_to_text(full_path.read_bytes(), full_path.name)
    logger.info("[loader:read_corpus_file] OUT path=%s chars=%d", full_path, len(text))
    return text.strip()


async def fetch_corpus_url(url: str) -> str:
    async with httpx.AsyncClient(timeout=CORPUS_FETCH_TIMEOUT) as client:
        response = await client.get(url)
    if response.status_code != 200:
        raise ServiceUnavailableError(f"Corpus fetch failed ({response.status_code}): {url}")
    filename = httpx.URL(url).path.rsplit("/", 1)[-1]
    text = bytes_to_text(response.content, filename)
    logger.info("[loader:fetch_corpus_url] OUT url=%s chars=%d", url, len(text))
    return text.strip()


async def load_corpus_text(path: str = CORPUS_FILE, url: str = CORPUS_URL) -> str:
    """Default corpus source: the configured URL if any, else the local file (read in a thread)."""
    if url:
        return await fetch_corpus_url(url)
    return await asyncio.to_thread(read_corpus_file, path)
