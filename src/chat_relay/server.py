"""FastAPI application exposing the chat pipeline."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import load_config
from .errors import PipelineError
from .models import ChatRequest, ChatResponse, ErrorResponse
from .orchestrator import ChatOrchestrator
from .provider import CompletionProvider, create_from_config
from .store import MessageStore, open_store

logger = logging.getLogger(__name__)

# Every failure looks the same to the caller.
GENERIC_ERROR = "Failed to get a reply. Please try again."


def _error_response() -> JSONResponse:
    return JSONResponse(status_code=500, content=ErrorResponse(error=GENERIC_ERROR).model_dump())


def _make_store(cfg: Dict[str, Any]) -> MessageStore:
    url = cfg.get("storage", {}).get("url") or "jsonl://data/messages.jsonl"
    return open_store(str(url))


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    store: Optional[MessageStore] = None,
    provider: Optional[CompletionProvider] = None,
) -> FastAPI:
    cfg = load_config(config_path)

    cors_origins = cfg.get("server", {}).get("cors_origins", ["*"])

    # Explicit None checks: an empty store has len 0 and is falsy.
    store = store if store is not None else _make_store(cfg)
    provider = provider if provider is not None else create_from_config(cfg)
    orchestrator = ChatOrchestrator(store, provider)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        aclose = getattr(provider, "aclose", None)
        if aclose is not None:
            await aclose()

    app = FastAPI(title="Chat Relay", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.store = store
    app.state.orchestrator = orchestrator

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        # The wire contract only knows 200 and 500.
        logger.warning("Rejected unparseable request to %s: %s", request.url.path, exc.errors())
        return _error_response()

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True}

    @app.post("/api/chat", response_model=ChatResponse, responses={500: {"model": ErrorResponse}})
    async def chat(req: ChatRequest):
        try:
            reply = await orchestrator.handle(req.message)
        except PipelineError as e:
            logger.exception("Chat request failed at step %s: %s", e.step.value, e.cause)
            return _error_response()
        return ChatResponse(reply=reply)

    return app
