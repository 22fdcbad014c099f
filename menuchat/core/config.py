"""
Settings for the menu chat backend.

Everything tunable lives here as a module constant, read once from the
environment (and .env) at import time. Governance limits are in milliseconds.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


# Corpus source: local file (.txt or .pdf) or an HTTP(S) URL. URL wins when set.
CORPUS_FILE: str = os.getenv("CORPUS_FILE", "data/menu.txt").strip() or "data/menu.txt"
CORPUS_URL: str = os.getenv("CORPUS_URL", "").strip()
CORPUS_FETCH_TIMEOUT: float = 30.0

# Context / chunking (tuning these affects retrieval quality)
MAX_CONTEXT_CHARS: int = 15_000
MAX_EMBED_CHUNK_CHARS: int = 1_400
RETRIEVAL_TOP_K_DEFAULT: int = 4
RETRIEVAL_TOP_K_BROAD: int = 7

# Conversation trimming
HISTORY_MAX: int = 16
HISTORY_TRIM_LEN: int = 500
USER_TRIM_LEN: int = 1_000

# Response cache (ms)
CACHE_TTL_MS: int = 6 * 60 * 60 * 1000
CACHE_MAX_ENTRIES: int = _int_env("CACHE_MAX_ENTRIES", 2_000)
CACHE_KEY_HISTORY_TURNS: int = 4
CACHE_KEY_TURN_CHARS: int = 140
CACHE_KEY_MESSAGE_CHARS: int = 600

# Rate limit: fixed window per client (ms)
RL_WINDOW_MS: int = 60 * 1000
RL_LIMIT: int = _int_env("RL_LIMIT", 12)

# Spam guard (ms)
SPAM_WINDOW_MS: int = 5 * 60 * 1000
SPAM_LIMIT: int = _int_env("SPAM_LIMIT", 30)
SPAM_BLOCK_MS: int = 3 * 60 * 1000
MIN_INTERVAL_MS: int = 650
TOO_FAST_BLOCK_MS: int = 3_000

# Client identity
CLIENT_ID_MIN_LEN: int = 8

# Categories must match the widget's topic keys
VALID_CATEGORIES: frozenset[str] = frozenset(
    {"auto", "full", "starters_soups", "mains", "desserts", "drinks", "info"}
)
DEFAULT_CATEGORY: str = "auto"

# Transport: SSE streaming capability, resolved once at startup
STREAMING_ENABLED: bool = _bool_env("STREAMING_ENABLED", True)
CORS_ORIGIN: str = os.getenv("CORS_ORIGIN", "https://solarchat.eu").strip() or "https://solarchat.eu"

# OpenAI (primary provider). When set, OpenAI is used for embeddings and chat.
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)
OPENAI_EMBED_MODEL: str = (
    os.getenv("OPENAI_EMBED_MODEL", "text-embedding-3-small").strip()
    or "text-embedding-3-small"
)
# Only sent for reasoning models (e.g. gpt-5-nano -> "low")
OPENAI_REASONING_EFFORT: str = os.getenv("OPENAI_REASONING_EFFORT", "").strip()

# Hugging Face router (fallback provider when OPENAI_API_KEY is not set)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_EMBED_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)
HF_CHAT_URL: str = "https://router.huggingface.co/v1/chat/completions"

EMBED_BATCH_SIZE: int = 32

# API timeouts (seconds)
EMBED_API_TIMEOUT: float = 30.0
LLM_API_TIMEOUT: float = 60.0

# USD per 1M tokens, used for usage logging only
PRICING_PER_1M: dict[str, dict[str, float]] = {
    "gpt-5-nano": {"input": 0.05, "cached_input": 0.005, "output": 0.40},
    "gpt-4o-mini": {"input": 0.15, "cached_input": 0.075, "output": 0.60},
}
