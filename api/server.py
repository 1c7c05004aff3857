"""
HTTP surface for the Wonderland Account Assistant.

Run with:
    uvicorn api.server:app --port 8000
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from config.settings import PRODUCT_NAME, SESSIONS_FOLDER, VERSION
from core.conversational_orchestrator import ConversationalOrchestrator
from models.schemas import ChatResponse, Message
from models.session_state import SessionStore

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Id"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    orchestrator: ConversationalOrchestrator | None = None,
    sessions: SessionStore | None = None,
) -> FastAPI:
    """Build the app; the orchestrator is created on first use when not given."""
    app = FastAPI(title=f"{PRODUCT_NAME} Account Assistant", version=VERSION)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )
    app.state.orchestrator = orchestrator
    app.state.sessions = sessions if sessions is not None else SessionStore(base_dir=SESSIONS_FOLDER)

    orchestrator_lock = threading.Lock()

    def get_orchestrator() -> ConversationalOrchestrator:
        with orchestrator_lock:
            if app.state.orchestrator is None:
                app.state.orchestrator = ConversationalOrchestrator()
            return app.state.orchestrator

    def run_turn(history: list[Message], session_id: str | None, record: dict | None):
        # Blocking: Gemini and Airtable calls. Runs in the worker thread pool.
        sessions: SessionStore = app.state.sessions
        session = sessions.get(session_id)
        result = get_orchestrator().process_turn(history, session, record)
        sessions.save(result.session)
        return result

    @app.post("/api/chat")
    async def chat(request: Request):
        logger.info("[POST /api/chat] Request received")
        try:
            body: Any = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("[POST /api/chat] Body is not valid JSON")
            return _error(400, "Invalid input format.")

        messages = body.get("messages") if isinstance(body, dict) else None
        if not isinstance(messages, list):
            logger.warning("[POST /api/chat] Invalid input: messages is not an array.")
            return _error(400, "Invalid input format.")
        try:
            history = [Message.model_validate(m) for m in messages]
        except ValidationError as e:
            logger.warning("[POST /api/chat] Invalid message entry: %s", e)
            return _error(400, "Invalid input format.")

        record = body.get("record")
        session_id = body.get("session_id") or request.headers.get(SESSION_HEADER)

        try:
            result = await run_in_threadpool(
                run_turn, history, session_id, record if isinstance(record, dict) else None
            )
        except Exception as e:
            logger.error("[POST /api/chat] Error: %s", e, exc_info=True)
            return _error(500, str(e) or type(e).__name__)

        response = ChatResponse(
            messages=result.messages,
            logs=result.logs,
            session_id=result.session.session_id,
        )
        return JSONResponse(
            content=response.model_dump(mode="json"),
            headers={SESSION_HEADER: result.session.session_id},
        )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
