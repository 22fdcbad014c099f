"""
Model providers: OpenAI (primary) or Hugging Face router (fallback).

A provider turns text into vectors (embed) and role-tagged messages into an
answer, either complete (complete) or as incremental text deltas (stream).
When OPENAI_API_KEY is set, OpenAI is used; otherwise the HF router.
"""

import json
import logging
from typing import Any, AsyncIterator, Protocol

import httpx
from openai import AsyncOpenAI

from menuchat.core.config import (
    EMBED_API_TIMEOUT,
    EMBED_BATCH_SIZE,
    HF_API_KEY,
    HF_CHAT_URL,
    HF_EMBED_MODEL,
    HF_LLM_MODEL,
    LLM_API_TIMEOUT,
    OPENAI_API_KEY,
    OPENAI_EMBED_MODEL,
    OPENAI_LLM_MODEL,
    OPENAI_REASONING_EFFORT,
    PRICING_PER_1M,
)
from menuchat.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

Message = dict[str, str]

HF_EMBED_URL = (
    "https://router.huggingface.co/hf-inference/models/"
    f"{HF_EMBED_MODEL}/pipeline/feature-extraction"
)


class LLMProvider(Protocol):
    model: str

    async def embed(self, texts: list[str]) -> list[list[float]]: ...

    async def complete(self, messages: list[Message]) -> str: ...

    def stream(self, messages: list[Message]) -> AsyncIterator[str]: ...


def estimate_cost_usd(model: str, usage: Any) -> float | None:
    """Rough USD cost of one completion from its usage block; None for unknown models."""
    p = PRICING_PER_1M.get(model)
    if not p or usage is None:
        return None
    prompt = getattr(usage, "prompt_tokens", 0) or 0
    completion = getattr(usage, "completion_tokens", 0) or 0
    details = getattr(usage, "prompt_tokens_details", None)
    cached = (getattr(details, "cached_tokens", 0) or 0) if details is not None else 0
    uncached = max(0, prompt - cached)
    return (uncached / 1e6) * p["input"] + (cached / 1e6) * p["cached_input"] + (completion / 1e6) * p["output"]


class OpenAIProvider:
    def __init__(
        self,
        api_key: str = OPENAI_API_KEY,
        model: str = OPENAI_LLM_MODEL,
        embed_model: str = OPENAI_EMBED_MODEL,
        reasoning_effort: str = OPENAI_REASONING_EFFORT,
    ) -> None:
        self.model = model
        self.embed_model = embed_model
        self.reasoning_effort = reasoning_effort
        self._client = AsyncOpenAI(api_key=api_key, timeout=LLM_API_TIMEOUT)

    def _extra(self) -> dict[str, Any]:
        return {"reasoning_effort": self.reasoning_effort} if self.reasoning_effort else {}

    async def embed(self, texts: list[str]) -> list[list[float]]:
        out: list[list[float]] = []
        for i in range(0, len(texts), EMBED_BATCH_SIZE):
            batch = texts[i : i + EMBED_BATCH_SIZE]
            resp = await self._client.embeddings.create(model=self.embed_model, input=batch)
            out.extend(list(d.embedding) for d in sorted(resp.data, key=lambda d: d.index))
        logger.info("[llm:openai:embed] OUT texts=%d", len(out))
        return out

    async def complete(self, messages: list[Message]) -> str:
        logger.info("[llm:openai:complete] IN  messages=%d model=%s", len(messages), self.model)
        resp = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            **self._extra(),
        )
        msg = resp.choices[0].message if resp.choices else None
        out = ((msg.content if msg else None) or "").strip()
        cost = estimate_cost_usd(self.model, resp.usage)
        logger.info("[llm:openai:complete] OUT response_len=%d usage=%s cost_usd=%s",
                    len(out), resp.usage, f"{cost:.6f}" if cost is not None else "n/a")
        return out

    async def stream(self, messages: list[Message]) -> AsyncIterator[str]:
        logger.info("[llm:openai:stream] IN  messages=%d model=%s", len(messages), self.model)
        stream = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            stream=True,
            **self._extra(),
        )
        async for part in stream:
            if not part.choices:
                continue
            delta = getattr(part.choices[0].delta, "content", None)
            if delta:
                yield delta


class HuggingFaceProvider:
    """HF router: feature-extraction for embeddings, OpenAI-compatible chat completions."""

    def __init__(self, api_key: str = HF_API_KEY, model: str = HF_LLM_MODEL) -> None:
        self.model = model
        self._headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

    async def embed(self, texts: list[str]) -> list[list[float]]:
        out: list[list[float]] = []
        async with httpx.AsyncClient(timeout=EMBED_API_TIMEOUT) as client:
            for i in range(0, len(texts), EMBED_BATCH_SIZE):
                batch = texts[i : i + EMBED_BATCH_SIZE]
                payload = {"inputs": batch, "options": {"wait_for_model": True}}
                response = await client.post(HF_EMBED_URL, json=payload, headers=self._headers)
                if response.status_code == 503:
                    raise RuntimeError(f"HF model is loading. Retry later. {response.text[:200]}")
                if response.status_code != 200:
                    raise RuntimeError(f"HF embed error {response.status_code}: {response.text[:200]}")
                result = response.json()
                if isinstance(result, list) and result and isinstance(result[0], list):
                    out.extend(result)
                else:
                    raise RuntimeError(f"Unexpected HF embed payload: {str(result)[:200]}")
        logger.info("[llm:hf:embed] OUT texts=%d", len(out))
        return out

    async def complete(self, messages: list[Message]) -> str:
        payload = {"model": self.model, "messages": messages}
        async with httpx.AsyncClient(timeout=LLM_API_TIMEOUT) as client:
            response = await client.post(HF_CHAT_URL, json=payload, headers=self._headers)
        if response.status_code != 200:
            raise RuntimeError(f"HF LLM error {response.status_code}: {response.text[:200]}")
        choices = response.json().get("choices") or []
        if choices and isinstance(choices[0], dict):
            out = ((choices[0].get("message") or {}).get("content") or "").strip()
            logger.info("[llm:hf:complete] OUT response_len=%d", len(out))
            return out
        return ""

    async def stream(self, messages: list[Message]) -> AsyncIterator[str]:
        payload = {"model": self.model, "messages": messages, "stream": True}
        async with httpx.AsyncClient(timeout=LLM_API_TIMEOUT) as client:
            async with client.stream("POST", HF_CHAT_URL, json=payload, headers=self._headers) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise RuntimeError(f"HF LLM error {response.status_code}: {body[:200]!r}")
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[5:].strip()
                    if data == "[DONE]":
                        break
                    try:
                        obj = json.loads(data)
                    except json.JSONDecodeError:
                        continue
                    choices = obj.get("choices") or []
                    delta = ((choices[0].get("delta") or {}).get("content") if choices else None) or ""
                    if delta:
                        yield delta


def get_provider() -> LLMProvider:
    """OpenAI when OPENAI_API_KEY is set, else Hugging Face when HF_API_KEY is set."""
    if OPENAI_API_KEY:
        return OpenAIProvider()
    if HF_API_KEY:
        logger.info("[llm] OPENAI_API_KEY not set; using Hugging Face router")
        return HuggingFaceProvider()
    raise ServiceUnavailableError("Set OPENAI_API_KEY or HF_API_KEY in .env")
