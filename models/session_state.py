"""
Per-conversation session state: active record pointer and creation progress.

Owned by the orchestrator for the duration of a turn and handed back to the
caller, who keeps it between turns (Streamlit session state, or the
SessionStore used by the HTTP endpoint). Never module-global.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Creation stages: 0 links, 1 description, 2 talking points
STAGE_LINKS = 0
STAGE_DESCRIPTION = 1
STAGE_TALKING_POINTS = 2
FINAL_STAGE = STAGE_TALKING_POINTS


class SessionContext(BaseModel):
    """State that must survive between turns of one conversation."""
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    active_record_id: str | None = None
    active_record_name: str | None = None
    creation_progress: int | None = None
    name_prompt_attempts: int = 0

    def activate(self, record_id: str, name: str | None = None, start_creation: bool = False) -> None:
        """Point the session at a record (optionally starting the creation flow)."""
        self.active_record_id = record_id
        if name:
            self.active_record_name = name
        self.creation_progress = STAGE_LINKS if start_creation else None
        self.name_prompt_attempts = 0

    def clear_active(self) -> None:
        """Forget the active record (after delete)."""
        self.active_record_id = None
        self.active_record_name = None
        self.creation_progress = None

    @property
    def in_creation_flow(self) -> bool:
        return self.active_record_id is not None and self.creation_progress is not None


# =============================================================================
# Session store (HTTP endpoint)
# =============================================================================

class SessionStore:
    """
    Thread-safe in-memory session registry with optional write-through to disk.

    Hands out copies so a turn never mutates another request's view of the
    same session; the caller saves the updated context when the turn ends.
    """

    def __init__(self, base_dir: Path | None = None):
        self._sessions: dict[str, SessionContext] = {}
        self._lock = threading.Lock()
        self._base_dir = base_dir

    def get(self, session_id: str | None) -> SessionContext:
        """Return a copy of the session (new one when unknown or id is missing)."""
        if not session_id:
            return SessionContext()
        with self._lock:
            ctx = self._sessions.get(session_id)
        if ctx is None and self._base_dir is not None:
            ctx = load_session(session_id, self._base_dir)
        if ctx is None:
            return SessionContext(session_id=session_id)
        return ctx.model_copy()

    def save(self, ctx: SessionContext) -> None:
        with self._lock:
            self._sessions[ctx.session_id] = ctx.model_copy()
        if self._base_dir is not None:
            save_session(ctx, self._base_dir)

    def drop(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def get_session_path(session_id: str, base_dir: Path) -> Path:
    """Return file path for a persisted session."""
    safe_id = "".join(c if c.isalnum() or c in "-_" else "_" for c in session_id)[:100]
    return base_dir / f"session_{safe_id}.json"


def load_session(session_id: str, base_dir: Path) -> SessionContext | None:
    """Load a persisted session from disk. Returns None if not found or invalid."""
    path = get_session_path(session_id, base_dir)
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return SessionContext(**data)
    except Exception as e:
        logger.warning("Failed to load session from %s: %s", path, e)
        return None


def save_session(ctx: SessionContext, base_dir: Path) -> bool:
    """Save a session to disk. Returns True on success."""
    path = get_session_path(ctx.session_id, base_dir)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(ctx.model_dump_json(indent=2), encoding="utf-8")
        return True
    except OSError as e:
        logger.warning("Failed to save session to %s: %s", path, e)
        return False
