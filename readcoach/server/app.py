"""Tutor service: chat completions and the participant log endpoint."""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from .. import __version__
from ..config import Settings, load_settings
from ..db.participants import ParticipantLogStore
from ..llm import BaseLLMClient, create_llm_client, to_provider_messages
from ..tutoring.prompts import PromptPolicy
from ..tutoring.state import ChatContext, SessionMode

logger = logging.getLogger(__name__)

MESSAGES_REQUIRED = "Messages array is required"
CHAT_FAILED = "Failed to process chat request"
PARTICIPANT_REQUIRED = "Participant ID is required"
LOG_FAILED = "Internal Server Error"

MAX_REPLY_TOKENS = 600


# ==============================================================================
# Pydantic Models
# ==============================================================================

class ChatMessageIn(BaseModel):
    """One prior turn. `text` is accepted as an alias of `content`."""
    role: str = "user"
    content: Optional[str] = None
    text: Optional[str] = None


class ContextIn(BaseModel):
    """Structured context for the tutor's next reply."""
    type: Optional[str] = None
    question_text: Optional[str] = None
    user_answer: Optional[str] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


class ChatRequest(BaseModel):
    messages: Optional[List[ChatMessageIn]] = None
    context: Optional[ContextIn] = None
    mode: Optional[str] = "B"
    stream: bool = True


class LogRequest(BaseModel):
    participantId: Optional[str] = None
    type: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _chat_log(context: Optional[ChatContext], model: str, message_count: int, preview: str):
    logger.info("CHAT_LOG: %s", json.dumps({
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "context_type": context.type.value if context else "general",
        "model": model,
        "messages_count": message_count,
        "response_preview": (preview or "")[:50],
    }))


def create_app(
    llm_client: Optional[BaseLLMClient] = None,
    prompt_policy: Optional[PromptPolicy] = None,
    store: Optional[ParticipantLogStore] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or load_settings()
    llm = llm_client or create_llm_client(settings.provider, settings.model)
    if llm is None:
        logger.warning("No LLM provider configured; /api/chat will fail until one is set up")
    policy = prompt_policy or PromptPolicy(language=settings.language)
    log_store = store or ParticipantLogStore(settings.db_path)

    app = FastAPI(
        title="readcoach tutor",
        description="Reading tutor chat and participant log service",
        version=__version__,
    )
    app.state.llm = llm
    app.state.prompt_policy = policy
    app.state.store = log_store

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        if request.url.path == "/api/chat":
            return _error(400, MESSAGES_REQUIRED)
        return _error(400, "Invalid request body")

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "provider": llm.provider if llm else None,
            "model": llm.model_name if llm else None,
        }

    @app.post("/api/chat")
    def chat(body: ChatRequest):
        if body.messages is None:
            return _error(400, MESSAGES_REQUIRED)
        if llm is None:
            logger.error("Chat request received but no LLM client is available")
            return _error(500, CHAT_FAILED)

        mode = SessionMode.parse(body.mode)
        context = ChatContext.from_dict(body.context.model_dump() if body.context else None)
        system = policy.build(mode, context)
        messages = to_provider_messages([m.model_dump() for m in body.messages])

        if not body.stream:
            try:
                response = llm.create(system, messages, max_tokens=MAX_REPLY_TOKENS)
            except Exception as e:
                logger.error("%s API error: %s", llm.provider, e)
                return _error(500, CHAT_FAILED)
            _chat_log(context, llm.model_name, len(body.messages), response.content)
            return {"message": {"role": "assistant", "content": response.content}}

        # Pull the first fragment up front so provider failures still get a 500
        fragments = llm.stream(system, messages, max_tokens=MAX_REPLY_TOKENS)
        try:
            first = next(fragments, "")
        except Exception as e:
            logger.error("%s API error: %s", llm.provider, e)
            return _error(500, CHAT_FAILED)
        _chat_log(context, llm.model_name, len(body.messages), first)

        def body_iter():
            if first:
                yield first
            try:
                for fragment in fragments:
                    yield fragment
            except Exception as e:
                logger.error("Reply stream interrupted: %s", e)

        return StreamingResponse(body_iter(), media_type="text/plain; charset=utf-8")

    @app.post("/api/log")
    def write_log(body: LogRequest):
        if not body.participantId:
            return _error(400, PARTICIPANT_REQUIRED)
        try:
            log_store.upsert(body.participantId, body.type or "", body.data or {})
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error("Error writing log: %s", e)
            return _error(500, LOG_FAILED)
        return {"success": True}

    return app
