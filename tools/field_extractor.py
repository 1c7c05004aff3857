"""
Field Extractor: free text → candidate Account fields via one LLM call.
"""

from __future__ import annotations

import logging

from config.settings import AGENT_MODELS, AGENT_TEMPERATURES, AGENT_THINKING_BUDGETS
from core.llm_client import call_llm
from core.parsers import safe_extract_json
from core.prompts import extraction_prompt
from core.tracing import TraceStore
from models.schemas import (
    ACCOUNT_FIELDS,
    FIELD_CLIENT_COMPANY_NAME,
    FIELD_NAME,
    ExtractionResult,
)

logger = logging.getLogger(__name__)


def coerce_fields(payload: dict) -> dict[str, str]:
    """Keep known, non-empty fields; stringify numbers; drop everything else."""
    fields: dict[str, str] = {}
    for key in ACCOUNT_FIELDS:
        value = payload.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (int, float)):
            value = str(value)
        if not isinstance(value, str):
            continue
        value = value.strip()
        if value:
            fields[key] = value

    # Name and Client Company Name mirror each other when only one is given
    if FIELD_NAME not in fields and FIELD_CLIENT_COMPANY_NAME in fields:
        fields[FIELD_NAME] = fields[FIELD_CLIENT_COMPANY_NAME]
    elif FIELD_CLIENT_COMPANY_NAME not in fields and FIELD_NAME in fields:
        fields[FIELD_CLIENT_COMPANY_NAME] = fields[FIELD_NAME]
    return fields


def extract(
    message: str,
    prior_message: str | None = None,
    logs: list[str] | None = None,
    tracer: TraceStore | None = None,
) -> ExtractionResult:
    """
    Extract Account fields from one user message.

    A failed call or unparseable output degrades to an empty result plus a
    log entry; no retry is attempted here.
    """
    if logs is None:
        logs = []

    try:
        result = call_llm(
            prompt=extraction_prompt(message, prior_message),
            model=AGENT_MODELS["field_extractor"],
            temperature=AGENT_TEMPERATURES["field_extractor"],
            max_tokens=1024,
            thinking_budget=AGENT_THINKING_BUDGETS["field_extractor"],
            agent_name="FieldExtractor",
            tracer=tracer,
        )
    except Exception as e:
        # Transient errors that outlived the client's retries
        logger.warning("Field extraction call raised: %s", e)
        logs.append(f"[EXTRACT] Extraction call failed: {e}")
        return ExtractionResult(error=str(e))
    if not result.success:
        logs.append(f"[EXTRACT] Extraction call failed: {result.error}")
        return ExtractionResult(error=result.error)

    payload = safe_extract_json(result.text)
    if not isinstance(payload, dict):
        logs.append(f"[EXTRACT] Failed to parse extraction output: {result.text[:200]!r}")
        logger.warning("Field extraction returned unparseable output (%d chars)", len(result.text))
        return ExtractionResult(error="parse_failure")

    fields = coerce_fields(payload)
    logs.append(f"[EXTRACT] Detected fields: {', '.join(fields) or '(none)'}")
    return ExtractionResult(fields=fields)
