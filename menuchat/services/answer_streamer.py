"""
Answer delivery: SSE delta events or one buffered payload.

Wire format (streaming):
    data: {"delta": "<fragment>"}\n\n     one per generated fragment
    data: {"error": "SERVER_ERROR"}\n\n   only on failure
    data: [DONE]\n\n                      always last

Both modes strip the concatenated answer the same way, so the final text does
not depend on the mode.
"""

import json
from typing import AsyncIterable, AsyncIterator

from menuchat.core.errors import ErrorKind

DONE_EVENT = "data: [DONE]\n\n"


def sse_event(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def finalize(text: str) -> str:
    return (text or "").strip()


class AnswerStreamer:
    """
    One delivery per instance. `streaming` is the transport's capability flag;
    `answer` holds the final text once delivery finished.
    """

    def __init__(self, streaming: bool) -> None:
        self.streaming = streaming
        self.answer: str | None = None
        self.events_sent = 0

    def _emit(self, event: str) -> str:
        self.events_sent += 1
        return event

    async def stream(self, fragments: AsyncIterable[str]) -> AsyncIterator[str]:
        """
        Forward each fragment as it arrives, then the terminal event. Without
        streaming the fragments are held back and sent as one delta.
        """
        parts: list[str] = []
        async for fragment in fragments:
            if not fragment:
                continue
            parts.append(fragment)
            if self.streaming:
                yield self._emit(sse_event({"delta": fragment}))
        if not self.streaming and parts:
            yield self._emit(sse_event({"delta": "".join(parts)}))
        self.answer = finalize("".join(parts))
        yield self._emit(DONE_EVENT)

    def cached(self, answer: str) -> list[str]:
        """Cache hit: the whole answer as a single fragment, then the terminal event."""
        self.answer = finalize(answer)
        return [
            self._emit(sse_event({"delta": answer, "cached": True})),
            self._emit(DONE_EVENT),
        ]

    def failed(self, kind: ErrorKind = ErrorKind.SERVER_ERROR) -> list[str]:
        """Error marker followed by the terminal event, so consumers always see the end."""
        return [self._emit(sse_event({"error": kind.value})), self._emit(DONE_EVENT)]

    async def deliver(self, generation: AsyncIterable[str] | str) -> str:
        """
        Buffered delivery: a complete answer (or fragments, joined) with no
        intermediate events. Returns the final answer text.
        """
        if isinstance(generation, str):
            text = generation
        else:
            text = "".join([fragment async for fragment in generation])
        self.answer = finalize(text)
        return self.answer
