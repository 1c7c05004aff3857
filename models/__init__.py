"""Pydantic models for type-safe data flow."""
from .schemas import (
    # Enums
    MessageRole,
    AccountStatus,
    Intent,
    # Field names
    ACCOUNT_FIELDS,
    MODIFIABLE_FIELDS,
    # Conversation
    Message,
    # LLM
    AgentTraceEntry,
    ToolCall,
    LLMCallResult,
    # Extraction
    ExtractionResult,
    # Account actions
    CreateAccount,
    ModifyAccount,
    DeleteAccount,
    SwitchRecord,
    AccountAction,
    ActionResult,
    # Collection
    CollectorStep,
    StoreRecord,
    # HTTP
    ChatResponse,
)
from .session_state import SessionContext, SessionStore

__all__ = [
    "MessageRole",
    "AccountStatus",
    "Intent",
    "ACCOUNT_FIELDS",
    "MODIFIABLE_FIELDS",
    "Message",
    "AgentTraceEntry",
    "ToolCall",
    "LLMCallResult",
    "ExtractionResult",
    "CreateAccount",
    "ModifyAccount",
    "DeleteAccount",
    "SwitchRecord",
    "AccountAction",
    "ActionResult",
    "CollectorStep",
    "StoreRecord",
    "ChatResponse",
    "SessionContext",
    "SessionStore",
]
