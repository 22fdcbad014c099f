"""
API routes: register endpoints and delegate to handlers.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import Response

from menuchat.api.handlers import get_context, handle_chat, handle_chat_stream
from menuchat.core.config import HF_LLM_MODEL, OPENAI_API_KEY, OPENAI_LLM_MODEL
from menuchat.schemas.chat import ChatRequest, ChatResponse, ErrorResponse, HealthResponse

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "NO_MESSAGE"},
    409: {"model": ErrorResponse, "description": "BUSY"},
    429: {"model": ErrorResponse, "description": "RATE_LIMIT, COOLDOWN, TOO_FAST or SPAM_WINDOW (with Retry-After)"},
    500: {"model": ErrorResponse, "description": "SERVER_ERROR"},
}


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Menu chat backend running"}


@router.get("/health", tags=["system"], response_model=HealthResponse, response_model_by_alias=True)
def health(request: Request) -> HealthResponse:
    """Liveness probe; no governance applied."""
    return HealthResponse(
        ok=True,
        corpus_ready=get_context(request).corpus.ready,
        model=OPENAI_LLM_MODEL if OPENAI_API_KEY else HF_LLM_MODEL,
        time=datetime.now(timezone.utc).isoformat(),
    )


# --- Chat ---

@router.post(
    "/api/chat",
    tags=["chat"],
    response_model=ChatResponse,
    responses=_ERROR_RESPONSES,
    summary="Ask a question (buffered JSON)",
    description="Answer from the menu corpus in one payload: {ok, answer, reply, cached}.",
)
async def post_chat(request: Request, body: ChatRequest) -> Response:
    return await handle_chat(request, body)


@router.post(
    "/api/chat-stream",
    tags=["chat"],
    responses=_ERROR_RESPONSES,
    summary="Ask a question (SSE stream)",
    description="Stream the answer as `data: {\"delta\": ...}` events terminated by `data: [DONE]`. "
                "Falls back to the buffered JSON payload when streaming is disabled.",
)
async def post_chat_stream(request: Request, body: ChatRequest) -> Response:
    return await handle_chat_stream(request, body)
