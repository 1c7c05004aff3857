"""
Draft Reconciler: find-or-create a Draft account by name.

A second creation request for the same name while the record is still a
Draft reuses the existing record instead of creating a duplicate.
"""

from __future__ import annotations

import logging
from typing import Any

from config.settings import DESCRIPTION_MIN_LENGTH, PRODUCT_NAME
from models.schemas import (
    FIELD_ABOUT_THE_CLIENT,
    FIELD_CLIENT_COMPANY_NAME,
    FIELD_CONTACT_INFORMATION,
    FIELD_DESCRIPTION,
    FIELD_INDUSTRY,
    FIELD_NAME,
    FIELD_PRIMARY_OBJECTIVE,
    FIELD_PRIORITY_IMAGE,
    FIELD_STATUS,
    FIELD_TALKING_POINTS,
    AccountStatus,
)
from tools.enum_normalizer import DEFAULT_INDUSTRY, guess_industry, title_case
from tools.record_store import RecordStoreError, RecordStoreGateway

logger = logging.getLogger(__name__)


class DraftCreationError(RuntimeError):
    pass


# =============================================================================
# Default field templates
# =============================================================================

def default_description(name: str, industry: str) -> str:
    """Auto-generated description, padded with '.' to the minimum length."""
    text = (
        f"This account is focused on {name.lower()}, ensuring tailored solutions for the "
        f"{industry} sector. Utilizing {PRODUCT_NAME}, it maximizes visibility and engagement "
        f"for strategic growth."
    )
    return text.ljust(DESCRIPTION_MIN_LENGTH, ".")


def default_about(name: str, description: str | None) -> str:
    subject = (description or name).rstrip(".").lower()
    return (
        f"The client specializes in {subject}. Utilizing {PRODUCT_NAME}, the account will automate "
        f"content creation and strategically distribute it across platforms to align with client "
        f"goals and target audience needs."
    )


def default_objective(name: str, industry: str) -> str:
    return (
        f"To enhance visibility for {name} in {industry}, ensuring alignment with client goals "
        f"through targeted marketing and AI-driven automation."
    )


def default_talking_points(name: str, description: str | None) -> str:
    subject = (description or name).rstrip(".").lower()
    return "\n".join([
        f"Showcase expertise in {subject}.",
        "Highlight innovative solutions for target audiences.",
        "Focus on building trust and brand identity.",
    ])


def default_contact(name: str) -> str:
    return f"Primary contact details for {name} to be confirmed."


def default_priority_image(name: str, industry: str) -> str:
    return f"Brand imagery for {name} that reflects the {industry} sector."


def build_draft_fields(
    name: str,
    extra_fields: dict[str, Any],
    industry_options: list[str] | None = None,
) -> dict[str, Any]:
    """Full field set for a new Draft: supplied values plus deterministic defaults."""
    fields: dict[str, Any] = {k: v for k, v in extra_fields.items() if v not in (None, "")}
    fields[FIELD_NAME] = name
    fields.setdefault(FIELD_CLIENT_COMPANY_NAME, name)
    fields[FIELD_STATUS] = AccountStatus.DRAFT.value

    description = fields.get(FIELD_DESCRIPTION)
    if not fields.get(FIELD_INDUSTRY):
        info = description or fields.get(FIELD_ABOUT_THE_CLIENT) or ""
        fields[FIELD_INDUSTRY] = guess_industry(info, industry_options or [])
    industry = fields[FIELD_INDUSTRY] or DEFAULT_INDUSTRY

    fields.setdefault(FIELD_ABOUT_THE_CLIENT, default_about(name, description))
    fields.setdefault(FIELD_PRIMARY_OBJECTIVE, default_objective(name, industry))
    fields.setdefault(FIELD_TALKING_POINTS, default_talking_points(name, description))
    fields.setdefault(FIELD_CONTACT_INFORMATION, default_contact(name))
    fields.setdefault(FIELD_PRIORITY_IMAGE, default_priority_image(name, industry))
    if not description:
        fields[FIELD_DESCRIPTION] = default_description(name, industry)
    return fields


# =============================================================================
# Reconciliation
# =============================================================================

def reconcile_draft(
    gateway: RecordStoreGateway,
    name: str,
    extra_fields: dict[str, Any] | None = None,
    logs: list[str] | None = None,
) -> str:
    """
    Return the record id of the Draft named `name`, creating it if needed.

    Raises:
        DraftCreationError: the lookup or the create call failed. Nothing
            should be pointed at in that case.
    """
    if logs is None:
        logs = []
    normalized = title_case(name)
    if not normalized:
        raise DraftCreationError("An account name is required to create a draft.")

    try:
        existing = gateway.find_by_name_and_status(normalized, AccountStatus.DRAFT.value)
    except RecordStoreError as e:
        logs.append(f"[STORE] Draft lookup failed for \"{normalized}\": {e}")
        raise DraftCreationError(f"Could not look up drafts for \"{normalized}\": {e}") from e

    if existing is not None:
        logs.append(f"[TOOL] Reusing existing draft \"{normalized}\" ({existing.id})")
        return existing.id

    try:
        industry_options = gateway.list_field_values(FIELD_INDUSTRY)
    except RecordStoreError as e:
        logger.warning("Industry options unavailable, using default: %s", e)
        logs.append(f"[STORE] Industry options unavailable: {e}")
        industry_options = []

    fields = build_draft_fields(normalized, extra_fields or {}, industry_options)
    logs.append(f"[TOOL] Creating draft \"{normalized}\" with fields: {', '.join(fields)}")
    try:
        record = gateway.create(fields)
    except RecordStoreError as e:
        logs.append(f"[TOOL] Error during account creation: {e}")
        raise DraftCreationError(f"Account creation failed for \"{normalized}\": {e}") from e

    logs.append(f"[TOOL] Account created successfully with Record ID: {record.id}")
    return record.id
