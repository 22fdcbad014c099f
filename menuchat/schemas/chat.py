"""Schemas for the chat and health endpoints."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ConversationTurn(BaseModel):
    """One prior turn, as kept by the widget. Trimmed server-side before use."""

    role: str = Field("", description="'user' or 'assistant'; other roles are ignored.")
    content: str = Field(
        "",
        validation_alias=AliasChoices("content", "text"),
        description="Turn text.",
    )
    timestamp: float | None = Field(None, description="Client timestamp (ms); informational only.")


class ChatRequest(BaseModel):
    """Request body for POST /api/chat and POST /api/chat-stream."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(
        "",
        validation_alias=AliasChoices("message", "question"),
        description="User question. Empty → 400 NO_MESSAGE.",
    )
    history: list[ConversationTurn] = Field(default_factory=list, description="Prior turns; only the tail is used.")
    category: str | None = Field(None, description="Topic key; unknown values fall back to 'auto'.")
    client_id: str | None = Field(
        None,
        validation_alias=AliasChoices("clientId", "client_id"),
        description="Opaque per-browser token (≥ 8 chars) used to key governance state.",
    )


class ChatResponse(BaseModel):
    """Response for POST /api/chat."""

    ok: bool = True
    answer: str = Field(..., description="Final answer.")
    reply: str = Field(..., description="Same as answer; kept for older widget builds.")
    cached: bool = Field(False, description="True when served from the response cache.")


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = False
    error: str
    retry_after_seconds: int | None = Field(None, serialization_alias="retryAfterSeconds")


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    corpus_ready: bool = Field(False, serialization_alias="corpusReady")
    model: str = ""
    time: str = ""
