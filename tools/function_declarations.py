"""
Native Gemini Function Declarations for the account tools.

The model only ever *selects* a tool. Its function call is translated into
one of the closed `AccountAction` variants here; anything that does not fit
a variant is rejected instead of being executed.
"""

from __future__ import annotations

import re
from typing import Any

from google.genai import types
from pydantic import ValidationError

from config.settings import PRODUCT_NAME
from models.schemas import (
    ACCOUNT_FIELDS,
    MODIFIABLE_FIELDS,
    AccountAction,
    CreateAccount,
    DeleteAccount,
    ModifyAccount,
    SwitchRecord,
    ToolCall,
)

CREATE_ACCOUNT = "createAccount"
MODIFY_ACCOUNT = "modifyAccount"
DELETE_ACCOUNT = "deleteAccount"
SWITCH_RECORD = "switchRecord"

TOOL_NAMES = (CREATE_ACCOUNT, MODIFY_ACCOUNT, DELETE_ACCOUNT, SWITCH_RECORD)


class ToolCallError(ValueError):
    """A function call that does not map onto any account action."""


def arg_name(field: str) -> str:
    """Store field name -> function argument name ("Client URL" -> "client_url")."""
    return re.sub(r"\W+", "_", field.strip().lower()).strip("_")


_FIELD_BY_ARG: dict[str, str] = {arg_name(f): f for f in ACCOUNT_FIELDS}


def _field_properties(fields: tuple[str, ...]) -> dict[str, types.Schema]:
    return {
        arg_name(field): types.Schema(type="STRING", description=f'Value for the "{field}" field.')
        for field in fields
    }


def _record_id_schema(purpose: str) -> types.Schema:
    return types.Schema(type="STRING", description=f"The record ID of the account to {purpose}.")


def get_tool_declarations() -> dict[str, types.Tool]:
    """
    Get Gemini-native tool declarations.

    Returns dict mapping tool names to their function declarations.
    These are passed to the Gemini API via GenerateContentConfig.tools.
    """
    return {
        CREATE_ACCOUNT: types.Tool(
            function_declarations=[
                types.FunctionDeclaration(
                    name=CREATE_ACCOUNT,
                    description=f"Create a new account in {PRODUCT_NAME} with comprehensive details.",
                    parameters=types.Schema(
                        type="OBJECT",
                        properties=_field_properties(ACCOUNT_FIELDS),
                        required=[arg_name("Name")],
                    ),
                ),
            ]
        ),
        MODIFY_ACCOUNT: types.Tool(
            function_declarations=[
                types.FunctionDeclaration(
                    name=MODIFY_ACCOUNT,
                    description=f"Modify any field of an existing account in {PRODUCT_NAME}.",
                    parameters=types.Schema(
                        type="OBJECT",
                        properties={
                            "record_id": _record_id_schema("modify"),
                            "fields": types.Schema(
                                type="OBJECT",
                                description="Only the fields that should change.",
                                properties=_field_properties(MODIFIABLE_FIELDS),
                            ),
                        },
                        required=["record_id", "fields"],
                    ),
                ),
            ]
        ),
        DELETE_ACCOUNT: types.Tool(
            function_declarations=[
                types.FunctionDeclaration(
                    name=DELETE_ACCOUNT,
                    description=(
                        f"Delete an existing account in {PRODUCT_NAME} by changing its status to 'Deleted'."
                    ),
                    parameters=types.Schema(
                        type="OBJECT",
                        properties={"record_id": _record_id_schema("delete")},
                        required=["record_id"],
                    ),
                ),
            ]
        ),
        SWITCH_RECORD: types.Tool(
            function_declarations=[
                types.FunctionDeclaration(
                    name=SWITCH_RECORD,
                    description="Make another existing account the one being worked on.",
                    parameters=types.Schema(
                        type="OBJECT",
                        properties={"record_id": _record_id_schema("switch to")},
                        required=["record_id"],
                    ),
                ),
            ]
        ),
    }


def get_account_tools() -> list[types.Tool]:
    """All account tools, in a stable order."""
    declarations = get_tool_declarations()
    return [declarations[name] for name in TOOL_NAMES]


# =============================================================================
# Function call -> AccountAction
# =============================================================================

def _to_fields(raw: Any, allowed: tuple[str, ...]) -> dict[str, str]:
    """Map argument names (or exact store field names) back to store fields."""
    if not isinstance(raw, dict):
        return {}
    fields: dict[str, str] = {}
    for key, value in raw.items():
        field = key if key in allowed else _FIELD_BY_ARG.get(arg_name(str(key)))
        if field not in allowed or value is None:
            continue
        text = str(value).strip()
        if text:
            fields[field] = text
    return fields


def _record_id(args: dict[str, Any]) -> str:
    value = args.get("record_id") or args.get("recordId") or ""
    return str(value).strip()


def to_account_action(call: ToolCall) -> AccountAction:
    """
    Translate one model function call into an AccountAction.

    Raises:
        ToolCallError: unknown tool name or unusable arguments.
    """
    args = call.args or {}
    try:
        if call.name == CREATE_ACCOUNT:
            return CreateAccount(fields=_to_fields(args, ACCOUNT_FIELDS))
        if call.name == MODIFY_ACCOUNT:
            # Some calls put the fields at the top level instead of under "fields"
            raw_fields = args["fields"] if isinstance(args.get("fields"), dict) else args
            return ModifyAccount(
                record_id=_record_id(args),
                fields=_to_fields(raw_fields, MODIFIABLE_FIELDS),
            )
        if call.name == DELETE_ACCOUNT:
            return DeleteAccount(record_id=_record_id(args))
        if call.name == SWITCH_RECORD:
            return SwitchRecord(record_id=_record_id(args))
    except ValidationError as e:
        raise ToolCallError(f"Invalid arguments for {call.name}: {e}") from e
    raise ToolCallError(f"Unknown tool: {call.name}")
