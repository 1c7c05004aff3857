"""
LLM Output Parsers for the Wonderland Account Assistant.

Robust JSON extraction from model text (markdown fences, XML tags,
preamble text, trailing commas) and intent-label parsing.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from models.schemas import Intent

logger = logging.getLogger(__name__)


# =============================================================================
# Intent label parsing
# =============================================================================

def parse_intent_label(text: str | None) -> Intent:
    """
    Map classifier output onto an Intent.

    The label is compared verbatim after trimming whitespace; anything else
    (including a failed call) is treated as a general query.
    """
    label = (text or "").strip()
    for intent in Intent:
        if label == intent.value:
            return intent
    return Intent.GENERAL_QUERY


# =============================================================================
# Robust JSON extraction
# =============================================================================

def safe_extract_json(text: str, expect_type: str = "object") -> Any:
    """
    Safely extract JSON from LLM output.

    Handles common issues: markdown fences, XML tags, preamble text,
    trailing content and trailing commas.

    Args:
        text: Raw LLM output
        expect_type: "object" for {}, "array" for []

    Returns:
        Parsed JSON or None on failure
    """
    if not text or not isinstance(text, str):
        logger.warning("safe_extract_json received invalid input: %s", type(text))
        return None

    xml_match = re.search(r"<json_output>\s*([\s\S]*?)\s*</json_output>", text, re.IGNORECASE)
    if xml_match:
        text = xml_match.group(1).strip()

    # Strip markdown code fences (```json ... ```)
    cleaned = re.sub(r"```\s*(?:json|JSON)?\s*\n?", "", text)
    cleaned = cleaned.replace("```", "").strip()

    if expect_type == "array":
        start_char, end_char = "[", "]"
    else:
        start_char, end_char = "{", "}"

    start = cleaned.find(start_char)
    if start < 0:
        logger.warning(
            "No %s found in LLM output (%d chars). First 200 chars: %s",
            start_char, len(text), text[:200]
        )
        return None

    # Find the matching end, tracking strings so braces inside values don't count
    depth = 0
    in_str = False
    escape_next = False
    for i in range(start, len(cleaned)):
        ch = cleaned[i]
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_str:
            escape_next = True
            continue
        if ch == '"':
            in_str = not in_str
        if in_str:
            continue
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
        if depth == 0:
            result = _try_parse_json(cleaned[start:i + 1])
            if result is not None:
                return result
            break

    # Fallback: widest slice
    end = cleaned.rfind(end_char)
    if end > start:
        result = _try_parse_json(cleaned[start:end + 1])
        if result is not None:
            return result

    logger.error(
        "Could not parse JSON from LLM output (%d chars). First 300 chars:\n%s",
        len(text), text[:300]
    )
    return None


def _try_parse_json(json_str: str) -> Any:
    """Try to parse a JSON string, with fixups for common LLM mistakes. None on failure."""
    try:
        return json.loads(json_str)
    except json.JSONDecodeError:
        pass

    # Trailing commas
    fixed = re.sub(r",\s*([}\]])", r"\1", json_str)
    try:
        return json.loads(fixed)
    except json.JSONDecodeError:
        pass

    # Unquoted keys ({key: "value"} → {"key": "value"})
    fixed2 = re.sub(r'(\{|,)\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*:', r'\1"\2":', fixed)
    try:
        return json.loads(fixed2)
    except json.JSONDecodeError as e:
        logger.warning(
            "All JSON parse attempts failed. Last error: %s. JSON string (first 300 chars): %s",
            e, json_str[:300]
        )
    return None


# =============================================================================
# Formatting helpers
# =============================================================================

def format_fields(fields: dict[str, Any]) -> str:
    """Compact `Key: value` list for log entries and confirmations."""
    if not fields:
        return "(none)"
    parts = []
    for key, value in fields.items():
        text = str(value)
        if len(text) > 60:
            text = text[:57] + "..."
        parts.append(f"{key}: {text}")
    return "; ".join(parts)
