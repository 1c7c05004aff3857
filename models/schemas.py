"""
Pydantic models for the Wonderland Account Assistant.

Every data boundary (chat messages, LLM output, tool invocations,
record-store payloads, HTTP bodies) flows through these models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class AccountStatus(str, Enum):
    DRAFT = "Draft"
    NEW = "New"
    ACTIVE = "Active"
    DISABLED = "Disabled"
    DELETED = "Deleted"


class Intent(str, Enum):
    """Turn-level intents; the classifier must return one of these labels verbatim."""
    GENERAL_QUERY = "general_query"
    ACCOUNT_CREATION = "account_creation"
    ACCOUNT_ACTION = "account_action"  # modify / delete / switch


# =============================================================================
# Account field names (exact column names in the Accounts table)
# =============================================================================

FIELD_NAME = "Name"
FIELD_CLIENT_COMPANY_NAME = "Client Company Name"
FIELD_DESCRIPTION = "Description"
FIELD_CLIENT_URL = "Client URL"
FIELD_STATUS = "Status"
FIELD_INDUSTRY = "Industry"
FIELD_PRIMARY_CONTACT = "Primary Contact Person"
FIELD_ABOUT_THE_CLIENT = "About the Client"
FIELD_PRIMARY_OBJECTIVE = "Primary Objective"
FIELD_TALKING_POINTS = "Talking Points"
FIELD_CONTACT_INFORMATION = "Contact Information"
FIELD_PRIORITY_IMAGE = "Priority Image"
FIELD_INSTAGRAM = "Instagram"
FIELD_FACEBOOK = "Facebook"
FIELD_BLOG = "Blog"
FIELD_OTHER_SOCIAL = "Other Social Accounts"

ACCOUNT_FIELDS: tuple[str, ...] = (
    FIELD_NAME,
    FIELD_CLIENT_COMPANY_NAME,
    FIELD_DESCRIPTION,
    FIELD_CLIENT_URL,
    FIELD_STATUS,
    FIELD_INDUSTRY,
    FIELD_PRIMARY_CONTACT,
    FIELD_ABOUT_THE_CLIENT,
    FIELD_PRIMARY_OBJECTIVE,
    FIELD_TALKING_POINTS,
    FIELD_CONTACT_INFORMATION,
    FIELD_PRIORITY_IMAGE,
    FIELD_INSTAGRAM,
    FIELD_FACEBOOK,
    FIELD_BLOG,
    FIELD_OTHER_SOCIAL,
)

# Fields the modifyAccount tool may touch
MODIFIABLE_FIELDS: tuple[str, ...] = (
    FIELD_NAME,
    FIELD_DESCRIPTION,
    FIELD_CLIENT_COMPANY_NAME,
    FIELD_CLIENT_URL,
    FIELD_STATUS,
    FIELD_INDUSTRY,
    FIELD_PRIMARY_CONTACT,
    FIELD_ABOUT_THE_CLIENT,
    FIELD_PRIMARY_OBJECTIVE,
    FIELD_TALKING_POINTS,
    FIELD_CONTACT_INFORMATION,
)


# =============================================================================
# Conversation
# =============================================================================

class Message(BaseModel):
    """A single chat message. Immutable once appended to history."""
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str = ""


# =============================================================================
# Tracing / LLM
# =============================================================================

class AgentTraceEntry(BaseModel):
    """Single entry in the LLM activity trace."""
    time: str = Field(default_factory=lambda: datetime.now().strftime("%H:%M:%S"))
    agent: str
    action: str
    detail: str = ""
    tokens_in: int = 0
    tokens_out: int = 0
    cost_usd: float = 0.0
    duration_ms: int = 0
    model: str = ""


class ToolCall(BaseModel):
    """A function call returned by the model (name + raw arguments)."""
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class LLMCallResult(BaseModel):
    """Result from an LLM call with metadata."""
    text: str
    model: str
    tokens_in: int = 0
    tokens_out: int = 0
    cost_usd: float = 0.0
    duration_ms: int = 0
    agent_name: str = "LLM"
    success: bool = True
    error: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)


# =============================================================================
# Extraction
# =============================================================================

class ExtractionResult(BaseModel):
    """Fields detected in one user turn (store field name -> text). Never persisted."""
    fields: dict[str, str] = Field(default_factory=dict)
    error: str | None = None

    def get(self, field: str, default: str | None = None) -> str | None:
        return self.fields.get(field, default)

    @property
    def is_empty(self) -> bool:
        return not self.fields

    @property
    def candidate_name(self) -> str | None:
        return self.fields.get(FIELD_NAME) or self.fields.get(FIELD_CLIENT_COMPANY_NAME)


# =============================================================================
# Account actions (closed variant, one payload shape per operation)
# =============================================================================

class CreateAccount(BaseModel):
    kind: Literal["createAccount"] = "createAccount"
    fields: dict[str, str] = Field(default_factory=dict)


class ModifyAccount(BaseModel):
    kind: Literal["modifyAccount"] = "modifyAccount"
    record_id: str
    fields: dict[str, str] = Field(default_factory=dict)


class DeleteAccount(BaseModel):
    kind: Literal["deleteAccount"] = "deleteAccount"
    record_id: str


class SwitchRecord(BaseModel):
    kind: Literal["switchRecord"] = "switchRecord"
    record_id: str


AccountAction = Annotated[
    Union[CreateAccount, ModifyAccount, DeleteAccount, SwitchRecord],
    Field(discriminator="kind"),
]


class ActionResult(BaseModel):
    """Outcome of one executed account action."""
    message: str
    record_id: str | None = None
    success: bool = True


# =============================================================================
# Progressive field collection
# =============================================================================

class CollectorStep(BaseModel):
    """What the collector did on one turn."""
    stage_before: Optional[int] = None
    stage_after: Optional[int] = None
    written_fields: dict[str, str] = Field(default_factory=dict)
    question: str | None = None

    @property
    def complete(self) -> bool:
        return self.stage_after is None


# =============================================================================
# HTTP boundary
# =============================================================================

class ChatResponse(BaseModel):
    """Body returned by the chat endpoint."""
    messages: list[Message]
    logs: list[str] = Field(default_factory=list)
    session_id: str | None = None


# =============================================================================
# Record store
# =============================================================================

class StoreRecord(BaseModel):
    """A record as returned by the record store (id + field values)."""
    id: str
    fields: dict[str, Any] = Field(default_factory=dict)
    created_time: str | None = None

    @property
    def name(self) -> str:
        return str(self.fields.get(FIELD_NAME) or "")

    @property
    def status(self) -> str:
        return str(self.fields.get(FIELD_STATUS) or "")
