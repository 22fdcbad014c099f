# Run from project root: uvicorn menuchat.main:app --reload

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from menuchat.api.routes import router
from menuchat.core.config import CORS_ORIGIN, STREAMING_ENABLED
from menuchat.core.context import GovernanceContext

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


app = FastAPI(title="Menu Chat Backend")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[CORS_ORIGIN],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Retry-After"],
)

# Process-wide state: empty at startup, never persisted
app.state.governance = GovernanceContext()
app.state.streaming_enabled = STREAMING_ENABLED
app.state.provider = None

app.include_router(router)


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("[main] invalid body path=%s errors=%d", request.url.path, len(exc.errors()))
    return JSONResponse(status_code=400, content={"ok": False, "error": "INVALID_BODY"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error = "NOT_FOUND" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": error})


if __name__ == "__main__":
    print("Menu chat backend booting...")
