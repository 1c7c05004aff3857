"""
Account action execution.

One exhaustive dispatch over the closed `AccountAction` variant. Every
branch returns an `ActionResult`; store and guard failures become a
user-facing message instead of escaping the turn.
"""

from __future__ import annotations

import logging
from typing import Any

from core.draft_reconciler import DraftCreationError, reconcile_draft
from core.field_collector import question_for
from core.identity_guard import RecordMismatchError, authorize
from core.parsers import format_fields
from models.schemas import (
    FIELD_CLIENT_COMPANY_NAME,
    FIELD_INDUSTRY,
    FIELD_NAME,
    FIELD_STATUS,
    AccountAction,
    AccountStatus,
    ActionResult,
    CreateAccount,
    DeleteAccount,
    ModifyAccount,
    SwitchRecord,
)
from models.session_state import STAGE_LINKS, SessionContext
from tools.enum_normalizer import STATUS_OPTIONS, normalize, title_case
from tools.record_store import RecordNotFoundError, RecordStoreError, RecordStoreGateway

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "There's a problem executing the request. Please try again. Error details: {details}"


def normalize_enum_fields(
    fields: dict[str, Any],
    gateway: RecordStoreGateway,
    logs: list[str],
) -> dict[str, Any]:
    """Snap Status and Industry onto their allowed values. Returns a new dict."""
    normalized = dict(fields)
    if normalized.get(FIELD_STATUS):
        normalized[FIELD_STATUS] = normalize(str(normalized[FIELD_STATUS]), STATUS_OPTIONS)
    if normalized.get(FIELD_INDUSTRY):
        options = gateway.list_field_values(FIELD_INDUSTRY)
        if options:
            normalized[FIELD_INDUSTRY] = normalize(str(normalized[FIELD_INDUSTRY]), options)
    changed = {k: v for k, v in normalized.items() if fields.get(k) != v}
    if changed:
        logs.append(f"[TOOL] Normalized {format_fields(changed)}")
    return normalized


# =============================================================================
# Per-variant handlers
# =============================================================================

def _create(action: CreateAccount, session: SessionContext, gateway: RecordStoreGateway, logs: list[str]) -> ActionResult:
    name = action.fields.get(FIELD_NAME) or action.fields.get(FIELD_CLIENT_COMPANY_NAME)
    if not name:
        return ActionResult(
            message="What name should the new account have?",
            success=False,
        )
    extra = {k: v for k, v in action.fields.items() if k != FIELD_NAME}
    record_id = reconcile_draft(gateway, name, extra, logs)
    session.activate(record_id, title_case(name), start_creation=True)
    return ActionResult(
        message=f'Account "{session.active_record_name}" has been created as a draft. {question_for(STAGE_LINKS)}',
        record_id=record_id,
    )


def _modify(action: ModifyAccount, session: SessionContext, gateway: RecordStoreGateway, logs: list[str]) -> ActionResult:
    authorize(action.record_id, session.active_record_id)
    if not action.fields:
        return ActionResult(
            message="At least one field must be provided to update.",
            record_id=action.record_id,
            success=False,
        )
    record = gateway.find(action.record_id)
    fields = normalize_enum_fields(action.fields, gateway, logs)
    if fields.get(FIELD_STATUS) and record.status == AccountStatus.DELETED.value:
        return ActionResult(
            message=f"Account {record.id} is deleted and its status can no longer change.",
            record_id=record.id,
            success=False,
        )
    logs.append(f"[TOOL] Updating account {record.id} with {format_fields(fields)}")
    updated = gateway.update(record.id, fields)
    if fields.get(FIELD_NAME):
        session.active_record_name = str(fields[FIELD_NAME])
    return ActionResult(
        message=f"Account successfully updated. Updated fields: {format_fields(fields)}.",
        record_id=updated.id,
    )


def _delete(action: DeleteAccount, session: SessionContext, gateway: RecordStoreGateway, logs: list[str]) -> ActionResult:
    authorize(action.record_id, session.active_record_id)
    record = gateway.find(action.record_id)
    logs.append(f"[TOOL] Changing status of {record.id} to 'Deleted'")
    gateway.update(record.id, {FIELD_STATUS: AccountStatus.DELETED.value})
    session.clear_active()
    return ActionResult(
        message=f"Account with record ID {record.id} has been successfully marked as 'Deleted'.",
        record_id=record.id,
    )


def _switch(action: SwitchRecord, session: SessionContext, gateway: RecordStoreGateway, logs: list[str]) -> ActionResult:
    record = gateway.find(action.record_id)
    if record.status == AccountStatus.DELETED.value:
        return ActionResult(
            message=f"Account {record.id} has been deleted and can't be selected.",
            record_id=record.id,
            success=False,
        )
    session.activate(record.id, record.name or None)
    logs.append(f"[TOOL] Active record is now {record.id}")
    label = f'"{record.name}" ({record.id})' if record.name else record.id
    return ActionResult(message=f"Switched to account {label}.", record_id=record.id)


# =============================================================================
# Dispatch
# =============================================================================

def execute_action(
    action: AccountAction,
    session: SessionContext,
    gateway: RecordStoreGateway,
    logs: list[str] | None = None,
) -> ActionResult:
    """Run one account action against the store, updating `session` in place."""
    if logs is None:
        logs = []
    logs.append(f"[TOOL] {action.kind} {action.model_dump(exclude={'kind'})}")
    try:
        if isinstance(action, CreateAccount):
            return _create(action, session, gateway, logs)
        elif isinstance(action, ModifyAccount):
            return _modify(action, session, gateway, logs)
        elif isinstance(action, DeleteAccount):
            return _delete(action, session, gateway, logs)
        elif isinstance(action, SwitchRecord):
            return _switch(action, session, gateway, logs)
        else:
            raise TypeError(f"Unsupported account action: {type(action).__name__}")
    except RecordMismatchError as e:
        logs.append(f"[GUARD] {e}")
        return ActionResult(message=str(e), record_id=e.target_id, success=False)
    except RecordNotFoundError:
        record_id = getattr(action, "record_id", None)
        logs.append(f"[STORE] Record not found: {record_id}")
        return ActionResult(
            message=f"No account found with the record ID: {record_id or '(none)'}",
            record_id=record_id,
            success=False,
        )
    except (RecordStoreError, DraftCreationError) as e:
        logger.error("%s failed: %s", action.kind, e)
        logs.append(f"[TOOL] Error executing {action.kind}: {e}")
        return ActionResult(message=ERROR_MESSAGE.format(details=e), success=False)
