"""
API handlers: identify the client, run governance, call the answer service, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Marshalling and failure-to-HTTP mapping.
Lives in the API layer so services stay free of FastAPI/HTTP types.
"""

import logging
from typing import Any, Callable

from fastapi import Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.types import Receive, Scope, Send

from menuchat.agent.llm import LLMProvider, get_provider
from menuchat.core.context import GovernanceContext
from menuchat.core.errors import ErrorKind, RequestFailure
from menuchat.core.identity import client_address, client_key
from menuchat.schemas.chat import ChatRequest, ChatResponse, ErrorResponse
from menuchat.services.answer_service import ChatQuery, answer_buffered, answer_events
from menuchat.services.answer_streamer import AnswerStreamer

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ReleasingStreamingResponse(StreamingResponse):
    """
    StreamingResponse that runs `release` once the response is over: finished,
    failed, or aborted by the client before the body iterator ever started.
    """

    def __init__(self, content: Any, release: Callable[[], None], **kwargs: Any) -> None:
        super().__init__(content, **kwargs)
        self._release = release

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self._release()


def get_context(request: Request) -> GovernanceContext:
    return request.app.state.governance


def get_llm(request: Request) -> LLMProvider:
    """Provider is created on first use and kept on app.state."""
    if request.app.state.provider is None:
        request.app.state.provider = get_provider()
    return request.app.state.provider


def failure_response(failure: RequestFailure) -> JSONResponse:
    body = ErrorResponse(error=failure.kind.value, retry_after_seconds=failure.retry_after_seconds)
    headers = {"Cache-Control": "no-store"}
    if failure.retry_after_seconds is not None:
        headers["Retry-After"] = str(failure.retry_after_seconds)
    return JSONResponse(
        status_code=failure.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def _admit(request: Request, body: ChatRequest) -> tuple[ChatQuery, str] | RequestFailure:
    """Validate, identify, govern. On success the in-flight key is held by the caller."""
    if not body.message:
        return RequestFailure(ErrorKind.NO_MESSAGE)
    peer = request.client.host if request.client else None
    key = client_key(body.client_id, client_address(request.headers, peer))
    failure = get_context(request).admit(key)
    if failure is not None:
        return failure
    history = [t.model_dump() for t in body.history]
    return ChatQuery.create(body.message, history, body.category), key


async def handle_chat(request: Request, body: ChatRequest) -> Response:
    admitted = _admit(request, body)
    if isinstance(admitted, RequestFailure):
        return failure_response(admitted)
    query, key = admitted
    ctx = get_context(request)
    logger.info("[api:chat] IN  key=%s category=%s message_len=%d history=%d",
                key, query.category, len(query.message), len(query.history))
    try:
        result = await answer_buffered(ctx, get_llm(request), query)
    except Exception:
        logger.exception("[api:chat] answer failed")
        return failure_response(RequestFailure(ErrorKind.SERVER_ERROR))
    finally:
        ctx.release(key)
    payload = ChatResponse(answer=result.answer, reply=result.answer, cached=result.cached)
    return JSONResponse(content=payload.model_dump(), headers={"Cache-Control": "no-store"})


async def handle_chat_stream(request: Request, body: ChatRequest) -> Response:
    """SSE when the transport supports it; otherwise the buffered JSON response."""
    streamer = AnswerStreamer(streaming=request.app.state.streaming_enabled)
    if not streamer.streaming:
        return await handle_chat(request, body)

    admitted = _admit(request, body)
    if isinstance(admitted, RequestFailure):
        return failure_response(admitted)
    query, key = admitted
    ctx = get_context(request)
    logger.info("[api:chat_stream] IN  key=%s category=%s message_len=%d history=%d",
                key, query.category, len(query.message), len(query.history))
    try:
        provider = get_llm(request)
    except Exception:
        ctx.release(key)
        logger.exception("[api:chat_stream] provider unavailable")
        return failure_response(RequestFailure(ErrorKind.SERVER_ERROR))

    return ReleasingStreamingResponse(
        answer_events(ctx, provider, query, streamer),
        release=lambda: ctx.release(key),
        media_type="text/event-stream; charset=utf-8",
        headers=SSE_HEADERS,
    )
