"""
Conversational Orchestrator for the Wonderland Account Assistant.

One call per user turn: classify the intent, route to account creation,
an account action or a general reply, and hand back the extended history,
the log trail and the updated session.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from pydantic import BaseModel, Field

from config.settings import (
    AGENT_MODELS,
    AGENT_TEMPERATURES,
    AGENT_THINKING_BUDGETS,
    INTENT_HISTORY_WINDOW,
    MAX_NAME_PROMPTS,
)
from core.account_actions import ERROR_MESSAGE, execute_action, normalize_enum_fields
from core.draft_reconciler import reconcile_draft
from core.field_collector import ProgressiveFieldCollector
from core.llm_client import call_llm, call_llm_for_action, require_success
from core.parsers import format_fields, parse_intent_label
from core.prompts import action_prompt, intent_prompt, persona_prompt
from core.tracing import TraceStore, get_tracer
from models.schemas import (
    FIELD_CLIENT_COMPANY_NAME,
    FIELD_NAME,
    FIELD_STATUS,
    ExtractionResult,
    Intent,
    Message,
    MessageRole,
)
from models.session_state import SessionContext
from tools.enum_normalizer import title_case
from tools.field_extractor import extract
from tools.function_declarations import ToolCallError, get_account_tools, to_account_action
from tools.record_store import RecordStoreGateway, get_gateway

logger = logging.getLogger(__name__)

NAME_PROMPT = "What is the name of the account you'd like to create?"
NAME_RETRY_PROMPT = (
    "I still couldn't detect a name for the account. Please tell me the company or "
    "account name, for example: \"Create an account called Acme Corp\"."
)
CLARIFY_ACTION = "Which account would you like to change, and what should change?"

_NAME_FIELDS = (FIELD_NAME, FIELD_CLIENT_COMPANY_NAME)


class TurnResult(BaseModel):
    """Output of one turn: history + one assistant message, log trail, session."""
    messages: list[Message]
    logs: list[str] = Field(default_factory=list)
    session: SessionContext


def _selected_record_name(record: dict[str, Any] | None) -> str | None:
    """Name of the record the caller has selected in its UI, if any."""
    if not isinstance(record, dict):
        return None
    fields = record.get("fields") if isinstance(record.get("fields"), dict) else record
    name = fields.get(FIELD_NAME) or fields.get(FIELD_CLIENT_COMPANY_NAME) or record.get("name")
    return str(name) if name else None


class ConversationalOrchestrator:
    """
    Turn-level state machine over an explicit SessionContext.

    The orchestrator holds no conversation state of its own; everything
    that must survive a turn lives on the session it is given.
    """

    def __init__(self, gateway: RecordStoreGateway | None = None, tracer: TraceStore | None = None):
        self.gateway = gateway or get_gateway()
        self.tracer = tracer or get_tracer()
        self.collector = ProgressiveFieldCollector(self.gateway)

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def process_turn(
        self,
        messages: Sequence[Message],
        session: SessionContext,
        record: dict[str, Any] | None = None,
    ) -> TurnResult:
        """
        Process one user turn.

        Never raises: any failure becomes an apologetic assistant message
        plus an error log entry, and the input history is always preserved.
        """
        logs: list[str] = ["[LLM] process_turn: Starting..."]
        history = list(messages)
        session = session.model_copy()

        try:
            reply = self._run_turn(history, session, record, logs)
            logs.append("[LLM] Conversation processed successfully.")
        except Exception as e:
            logger.error("Turn failed for session %s: %s", session.session_id, e, exc_info=True)
            logs.append(f"[LLM] Error in process_turn: {e}")
            reply = ERROR_MESSAGE.format(details=e)

        history.append(Message(role=MessageRole.ASSISTANT, content=reply))
        return TurnResult(messages=history, logs=logs, session=session)

    def _run_turn(
        self,
        history: list[Message],
        session: SessionContext,
        record: dict[str, Any] | None,
        logs: list[str],
    ) -> str:
        intent = self._classify_intent(history, session, logs)
        logs.append(f"[LLM] Detected intent: {intent.value}")

        if intent == Intent.ACCOUNT_CREATION:
            return self._handle_creation(history, session, logs)
        elif intent == Intent.ACCOUNT_ACTION:
            return self._handle_action(history, session, logs)
        else:
            return self._handle_general(history, session, record, logs)

    # -------------------------------------------------------------------------
    # Intent
    # -------------------------------------------------------------------------

    def _classify_intent(self, history: list[Message], session: SessionContext, logs: list[str]) -> Intent:
        if not any(m.role == MessageRole.USER for m in history):
            return Intent.GENERAL_QUERY

        result = call_llm(
            prompt=intent_prompt(history[-INTENT_HISTORY_WINDOW:], session.active_record_id is not None),
            model=AGENT_MODELS["intent_classifier"],
            temperature=AGENT_TEMPERATURES["intent_classifier"],
            max_tokens=16,
            thinking_budget=AGENT_THINKING_BUDGETS["intent_classifier"],
            agent_name="IntentClassifier",
            tracer=self.tracer,
        )
        if not result.success:
            logs.append(f"[LLM] Intent classification failed, treating as general query: {result.error}")
            return Intent.GENERAL_QUERY
        return parse_intent_label(result.text)

    # -------------------------------------------------------------------------
    # Account creation
    # -------------------------------------------------------------------------

    @staticmethod
    def _latest_user_message(history: list[Message]) -> tuple[str, str | None]:
        """Latest user message and the message right before it (context)."""
        for i in range(len(history) - 1, -1, -1):
            if history[i].role == MessageRole.USER:
                prior = history[i - 1].content if i > 0 else None
                return history[i].content, prior
        return "", None

    def _starts_new_account(self, session: SessionContext, extraction: ExtractionResult) -> bool:
        if session.active_record_id is None:
            return True
        name = extraction.candidate_name
        if not name:
            return False
        # A different name opens its own draft, even mid-collection
        return title_case(name) != title_case(session.active_record_name or "")

    def _handle_creation(self, history: list[Message], session: SessionContext, logs: list[str]) -> str:
        message, prior = self._latest_user_message(history)
        extraction = extract(message, prior_message=prior, logs=logs, tracer=self.tracer)
        name = extraction.candidate_name
        prefix = ""

        if self._starts_new_account(session, extraction):
            if not name:
                return self._prompt_for_name(session, logs)

            extra = {
                k: v for k, v in extraction.fields.items()
                if k not in _NAME_FIELDS and k != FIELD_STATUS
            }
            if extra:
                extra = normalize_enum_fields(extra, self.gateway, logs)
            record_id = reconcile_draft(self.gateway, name, extra, logs)
            session.activate(record_id, title_case(name), start_creation=True)
            logs.append(f"[TOOL] Active record is now {record_id}")
            prefix = f'I\'ve started a draft for "{session.active_record_name}". '
        else:
            self._apply_extracted_fields(session, extraction, logs)

        record_id = session.active_record_id
        if session.creation_progress is not None:
            step = self.collector.advance(session, record_id, message, extraction, logs)
            if step.question:
                return prefix + step.question

        label = session.active_record_name or record_id
        return (
            f'{prefix}Account "{label}" is all set. '
            "Let me know if you'd like to change anything else."
        )

    def _prompt_for_name(self, session: SessionContext, logs: list[str]) -> str:
        session.name_prompt_attempts += 1
        logs.append(f"[EXTRACT] No account name detected (attempt {session.name_prompt_attempts})")
        if session.name_prompt_attempts >= MAX_NAME_PROMPTS:
            session.name_prompt_attempts = 0
            return NAME_RETRY_PROMPT
        return NAME_PROMPT

    def _apply_extracted_fields(
        self,
        session: SessionContext,
        extraction: ExtractionResult,
        logs: list[str],
    ) -> None:
        """Write newly extracted fields to the active record. Failures are logged only."""
        fields = {k: v for k, v in extraction.fields.items() if k not in _NAME_FIELDS}
        if not fields:
            return
        record_id = session.active_record_id
        try:
            fields = normalize_enum_fields(fields, self.gateway, logs)
            self.gateway.update(record_id, fields)
            logs.append(f"[TOOL] Updated {record_id}: {format_fields(fields)}")
        except Exception as e:
            logger.warning("Field update on %s failed: %s", record_id, e)
            logs.append(f"[TOOL] Failed to update {record_id}: {e}")

    # -------------------------------------------------------------------------
    # Account actions (modify / delete / switch)
    # -------------------------------------------------------------------------

    def _handle_action(self, history: list[Message], session: SessionContext, logs: list[str]) -> str:
        result = call_llm_for_action(
            messages=history,
            tools=get_account_tools(),
            system_instruction=action_prompt(session.active_record_id, session.active_record_name),
            model=AGENT_MODELS["account_actions"],
            temperature=AGENT_TEMPERATURES["account_actions"],
            thinking_budget=AGENT_THINKING_BUDGETS["account_actions"],
            agent_name="AccountActions",
            tracer=self.tracer,
        )
        require_success(result, tracer=self.tracer)

        if not result.tool_calls:
            logs.append("[LLM] No tool selected")
            return result.text.strip() or CLARIFY_ACTION

        call = result.tool_calls[0]
        logs.append(f"[LLM] Tool selected: {call.name}")
        try:
            action = to_account_action(call)
        except ToolCallError as e:
            logs.append(f"[TOOL] Rejected tool call: {e}")
            return ERROR_MESSAGE.format(details=e)

        outcome = execute_action(action, session, self.gateway, logs)
        return outcome.message

    # -------------------------------------------------------------------------
    # General conversation
    # -------------------------------------------------------------------------

    def _handle_general(
        self,
        history: list[Message],
        session: SessionContext,
        record: dict[str, Any] | None,
        logs: list[str],
    ) -> str:
        name = session.active_record_name or _selected_record_name(record)
        result = call_llm(
            prompt=None if history else "Hello!",
            messages=history or None,
            system_instruction=persona_prompt(name),
            model=AGENT_MODELS["assistant"],
            temperature=AGENT_TEMPERATURES["assistant"],
            thinking_budget=AGENT_THINKING_BUDGETS["assistant"],
            agent_name="Assistant",
            tracer=self.tracer,
        )
        require_success(result, tracer=self.tracer)
        return result.text.strip()
