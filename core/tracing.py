"""
Observability & Tracing for the Wonderland Account Assistant.

Structured in-memory trace of every LLM call made while handling a
conversation: timing, token estimates and approximate cost. This is the
operator-facing view; the per-turn LogTrail returned to the caller is
built separately by the orchestrator.
"""

from __future__ import annotations

import contextvars
import logging
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generator

from models.schemas import AgentTraceEntry

logger = logging.getLogger(__name__)


# =============================================================================
# Cost Estimation (approximate)
# =============================================================================

# Keys MUST match the model names used in config/settings.py (MODEL_PRO / MODEL_FLASH).
MODEL_COSTS = {
    "gemini-2.5-pro": {"input": 1.25 / 1_000_000, "output": 10.0 / 1_000_000},
    "gemini-2.5-flash": {"input": 0.15 / 1_000_000, "output": 0.60 / 1_000_000},
    "default": {"input": 1.0 / 1_000_000, "output": 5.0 / 1_000_000},
}


def estimate_cost(model: str, tokens_in: int, tokens_out: int) -> float:
    """Estimate USD cost for an LLM call."""
    costs = MODEL_COSTS.get(model, MODEL_COSTS["default"])
    return (tokens_in * costs["input"]) + (tokens_out * costs["output"])


def estimate_tokens(text: str) -> int:
    """Rough token estimate (4 chars ≈ 1 token for English)."""
    return max(1, len(text) // 4)


# =============================================================================
# Trace Store
# =============================================================================

class TraceStore:
    """In-memory trace store for LLM activity (thread-safe)."""

    MAX_ENTRIES = 2000  # Rolling cap, oldest entries trimmed when exceeded

    def __init__(self):
        self.entries: list[AgentTraceEntry] = []
        self._lock = threading.Lock()
        self._session_start = datetime.now()
        self._total_cost: float = 0.0
        self._total_tokens_in: int = 0
        self._total_tokens_out: int = 0
        self._total_calls: int = 0

    def record(
        self,
        agent: str,
        action: str,
        detail: str = "",
        tokens_in: int = 0,
        tokens_out: int = 0,
        cost_usd: float = 0.0,
        duration_ms: int = 0,
        model: str = "",
    ) -> AgentTraceEntry:
        """Record a trace entry (thread-safe)."""
        entry = AgentTraceEntry(
            agent=agent,
            action=action,
            detail=detail[:2000] if detail else "",
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            cost_usd=cost_usd,
            duration_ms=duration_ms,
            model=model,
        )

        with self._lock:
            self.entries.append(entry)
            if len(self.entries) > self.MAX_ENTRIES:
                self.entries = self.entries[-self.MAX_ENTRIES:]

            self._total_cost += cost_usd
            self._total_tokens_in += tokens_in
            self._total_tokens_out += tokens_out
            if action == "LLM_CALL":
                self._total_calls += 1

        return entry

    @contextmanager
    def trace_llm_call(
        self, agent: str, model: str, prompt_text: str = ""
    ) -> Generator[dict[str, Any], None, None]:
        """
        Context manager for tracing an LLM call with automatic timing and cost.

        Usage:
            with tracer.trace_llm_call("FieldExtractor", "gemini-2.5-flash") as ctx:
                response = client.models.generate_content(...)
                ctx["response_text"] = response.text
        """
        ctx: dict[str, Any] = {
            "tokens_in": estimate_tokens(prompt_text),
            "tokens_out": 0,
            "response_text": "",
        }
        start = time.time()

        self.record(agent, "LLM_CALL", f"Model: {model}", model=model)

        try:
            yield ctx
        finally:
            duration_ms = int((time.time() - start) * 1000)
            tokens_out = ctx.get("tokens_out", 0) or estimate_tokens(ctx.get("response_text", ""))
            tokens_in = ctx.get("tokens_in", 0)
            cost = estimate_cost(model, tokens_in, tokens_out)

            self.record(
                agent,
                "LLM_RESPONSE",
                f"Generated {len(ctx.get('response_text', '')):,} chars in {duration_ms}ms",
                tokens_in=tokens_in,
                tokens_out=tokens_out,
                cost_usd=cost,
                duration_ms=duration_ms,
                model=model,
            )

    # ---- Accessors ----

    @property
    def total_cost(self) -> float:
        with self._lock:
            return self._total_cost

    @property
    def total_calls(self) -> int:
        with self._lock:
            return self._total_calls

    def get_entries(self, last_n: int = 0) -> list[AgentTraceEntry]:
        """Get a snapshot of trace entries, optionally last N."""
        with self._lock:
            snapshot = list(self.entries)
        if last_n > 0:
            return snapshot[-last_n:]
        return snapshot

    def format_for_export(self) -> str:
        """Format trace as plain text (used by the chat UI's trace panel)."""
        with self._lock:
            calls = self._total_calls
            tokens_in = self._total_tokens_in
            tokens_out = self._total_tokens_out
            cost = self._total_cost
        lines = [
            f"Session started: {self._session_start.isoformat()}",
            f"Total LLM calls: {calls}",
            f"Total tokens: {tokens_in:,} in / {tokens_out:,} out",
            f"Estimated cost: ${cost:.4f}",
            "",
        ]
        for entry in self.get_entries():
            time_str = f" [{entry.duration_ms}ms]" if entry.duration_ms > 0 else ""
            lines.append(f"[{entry.time}] {entry.agent:18s} | {entry.action:13s}{time_str}")
            if entry.detail:
                lines.append(f"{'':21s} └─ {entry.detail[:120]}")
        return "\n".join(lines)

    def clear(self):
        """Clear all trace entries."""
        with self._lock:
            self.entries.clear()
            self._total_cost = 0.0
            self._total_tokens_in = 0
            self._total_tokens_out = 0
            self._total_calls = 0


# =============================================================================
# Session-scoped tracer (contextvars prevents cross-session bleed)
# =============================================================================

_tracer_var: contextvars.ContextVar[TraceStore | None] = contextvars.ContextVar("tracer", default=None)


def get_tracer() -> TraceStore:
    """Get the context-local tracer instance."""
    tracer = _tracer_var.get()
    if tracer is None:
        tracer = TraceStore()
        _tracer_var.set(tracer)
    return tracer


def set_tracer(tracer: TraceStore) -> None:
    """Set the context-local tracer (called from Streamlit session init)."""
    _tracer_var.set(tracer)
