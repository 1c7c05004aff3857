"""
Shared fixtures: in-memory record store and a scripted LLM.
"""

from __future__ import annotations

import json
import re
from typing import Any
from unittest.mock import patch

import pytest

from core.tracing import TraceStore
from models.schemas import LLMCallResult, StoreRecord, ToolCall
from models.session_state import SessionContext
from tools.record_store import RecordNotFoundError, RecordStoreError, RecordStoreGateway

_CLAUSE_RE = re.compile(r"\{([^}]+)\} = '((?:[^'\\]|\\.)*)'")


class FakeRecordStore:
    """Dict-backed stand-in for the Airtable client (same four methods)."""

    def __init__(self):
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self._counter = 0

    def _maybe_fail(self, op: str) -> None:
        self.calls.append((op, ""))
        if op in self.fail_on:
            raise RecordStoreError(f"simulated {op} failure")

    def add(self, fields: dict[str, Any], table: str = "Accounts", record_id: str | None = None) -> str:
        self._counter += 1
        record_id = record_id or f"rec{self._counter:04d}"
        self.tables.setdefault(table, {})[record_id] = dict(fields)
        return record_id

    def select(self, table, formula=None, fields=None):
        self._maybe_fail("select")
        filters = {
            field: value.replace("\\'", "'").replace("\\\\", "\\")
            for field, value in _CLAUSE_RE.findall(formula or "")
        }
        out = []
        for record_id, data in self.tables.get(table, {}).items():
            if all(str(data.get(k, "")) == v for k, v in filters.items()):
                visible = {k: v for k, v in data.items() if not fields or k in fields}
                out.append(StoreRecord(id=record_id, fields=visible))
        return out

    def find(self, table, record_id):
        self._maybe_fail("find")
        data = self.tables.get(table, {}).get(record_id)
        if data is None:
            raise RecordNotFoundError(f"{record_id} not found")
        return StoreRecord(id=record_id, fields=dict(data))

    def create(self, table, fields):
        self._maybe_fail("create")
        record_id = self.add(fields, table)
        return StoreRecord(id=record_id, fields=dict(fields))

    def update(self, table, record_id, fields):
        self._maybe_fail("update")
        data = self.tables.get(table, {}).get(record_id)
        if data is None:
            raise RecordNotFoundError(f"{record_id} not found")
        data.update(fields)
        return StoreRecord(id=record_id, fields=dict(data))

    def fields_of(self, record_id: str, table: str = "Accounts") -> dict[str, Any]:
        return self.tables[table][record_id]


class ScriptedLLM:
    """Replays queued outputs per agent instead of calling Gemini."""

    def __init__(self):
        self.intents: list[str] = []
        self.extractions: list[Any] = []
        self.replies: list[str] = []
        self.actions: list[LLMCallResult] = []
        self.calls: list[str] = []
        self.failing_agents: set[str] = set()
        self.thinking_budgets: dict[str, int | None] = {}

    def call_llm(self, prompt=None, messages=None, system_instruction=None, model="test-model",
                 temperature=0.0, max_tokens=0, agent_name="LLM", tracer=None, thinking_budget=None):
        self.calls.append(agent_name)
        self.thinking_budgets[agent_name] = thinking_budget
        if agent_name in self.failing_agents:
            return LLMCallResult(text="", model=model, agent_name=agent_name, success=False, error="boom")
        if agent_name == "IntentClassifier":
            text = self.intents.pop(0) if self.intents else "general_query"
        elif agent_name == "FieldExtractor":
            payload = self.extractions.pop(0) if self.extractions else {}
            text = payload if isinstance(payload, str) else json.dumps(payload)
        else:
            text = self.replies.pop(0) if self.replies else "Hello! How can I help?"
        return LLMCallResult(text=text, model=model, agent_name=agent_name)

    def call_llm_for_action(self, messages, tools, system_instruction=None, model="test-model",
                            temperature=0.0, max_tokens=0, agent_name="AccountActions", tracer=None,
                            thinking_budget=None):
        self.calls.append(agent_name)
        self.thinking_budgets[agent_name] = thinking_budget
        if self.actions:
            return self.actions.pop(0)
        return LLMCallResult(text="Could you clarify?", model=model, agent_name=agent_name)

    def queue_tool_call(self, name: str, args: dict[str, Any]) -> None:
        self.actions.append(
            LLMCallResult(text="", model="test-model", agent_name="AccountActions",
                          tool_calls=[ToolCall(name=name, args=args)])
        )


@pytest.fixture
def store():
    return FakeRecordStore()


@pytest.fixture
def gateway(store):
    return RecordStoreGateway(store, table="Accounts")


@pytest.fixture
def session():
    return SessionContext(session_id="test-session")


@pytest.fixture
def tracer():
    return TraceStore()


@pytest.fixture
def llm():
    """Scripted LLM patched into every module that calls the model."""
    scripted = ScriptedLLM()
    with patch("core.conversational_orchestrator.call_llm", side_effect=scripted.call_llm), \
         patch("tools.field_extractor.call_llm", side_effect=scripted.call_llm), \
         patch("core.conversational_orchestrator.call_llm_for_action", side_effect=scripted.call_llm_for_action):
        yield scripted


@pytest.fixture
def orchestrator(gateway, tracer):
    from core.conversational_orchestrator import ConversationalOrchestrator
    return ConversationalOrchestrator(gateway=gateway, tracer=tracer)
