"""
Progressive Field Collector.

Walks a freshly created Draft through three questions (links, description,
talking points), writing what each answer yields to the record straight away.
The stage only moves forward once its answer is usable.
"""

from __future__ import annotations

import logging
import re

from models.schemas import (
    FIELD_BLOG,
    FIELD_CLIENT_URL,
    FIELD_DESCRIPTION,
    FIELD_FACEBOOK,
    FIELD_INSTAGRAM,
    FIELD_TALKING_POINTS,
    CollectorStep,
    ExtractionResult,
)
from models.session_state import (
    FINAL_STAGE,
    STAGE_DESCRIPTION,
    STAGE_LINKS,
    STAGE_TALKING_POINTS,
    SessionContext,
)
from tools.record_store import RecordStoreGateway

logger = logging.getLogger(__name__)

QUESTIONS: dict[int, str] = {
    STAGE_LINKS: "Can you share any of the following for the company: Website, Instagram, Facebook, or Blog?",
    STAGE_DESCRIPTION: "Can you tell me more about the company, including its industry, purpose, or mission?",
    STAGE_TALKING_POINTS: "What are the major objectives or talking points you'd like to achieve with Wonderland?",
}

MIN_DESCRIPTION_CHARS = 20
MIN_TALKING_POINTS_CHARS = 10

_TOKEN_SPLIT = re.compile(r"[,\s]+")
_TOKEN_STRIP = "\"'.;:!?()<>[]"


def question_for(stage: int) -> str:
    return QUESTIONS[stage]


def _tokens(text: str) -> list[str]:
    return [t.strip(_TOKEN_STRIP) for t in _TOKEN_SPLIT.split(text or "") if t.strip(_TOKEN_STRIP)]


def classify_links(text: str) -> dict[str, str]:
    """
    Sort the URLs in `text` into Instagram / Facebook / Client URL / Blog.

    Only tokens containing "http" count. A plain URL becomes the Website
    while that slot is free, after that the Blog. First value per slot wins.
    """
    links: dict[str, str] = {}
    for token in _tokens(text):
        lowered = token.lower()
        if "http" not in lowered:
            continue
        if "instagram.com" in lowered:
            slot = FIELD_INSTAGRAM
        elif "facebook.com" in lowered:
            slot = FIELD_FACEBOOK
        elif "www" in lowered:
            slot = FIELD_CLIENT_URL
        elif FIELD_CLIENT_URL not in links:
            slot = FIELD_CLIENT_URL
        else:
            slot = FIELD_BLOG
        links.setdefault(slot, token)
    return links


def is_link_list(text: str) -> bool:
    """True when every token of the message is a URL."""
    tokens = _tokens(text)
    return bool(tokens) and all("http" in t.lower() for t in tokens)


class ProgressiveFieldCollector:
    """Stage machine over `SessionContext.creation_progress`."""

    def __init__(self, gateway: RecordStoreGateway):
        self.gateway = gateway

    def _fields_for_stage(self, stage: int, message: str, extraction: ExtractionResult) -> dict[str, str]:
        if stage == STAGE_LINKS:
            return classify_links(message)

        if stage == STAGE_DESCRIPTION:
            description = extraction.get(FIELD_DESCRIPTION)
            if not description:
                text = (message or "").strip()
                if len(text) >= MIN_DESCRIPTION_CHARS and not is_link_list(text):
                    description = text
            return {FIELD_DESCRIPTION: description} if description else {}

        if stage == STAGE_TALKING_POINTS:
            points = extraction.get(FIELD_TALKING_POINTS)
            if not points:
                text = (message or "").strip()
                if len(text) >= MIN_TALKING_POINTS_CHARS:
                    points = text
            return {FIELD_TALKING_POINTS: points} if points else {}

        raise ValueError(f"Unknown creation stage: {stage}")

    def advance(
        self,
        session: SessionContext,
        record_id: str,
        message: str,
        extraction: ExtractionResult | None = None,
        logs: list[str] | None = None,
    ) -> CollectorStep:
        """
        Handle one answer for the current stage.

        Writes the stage's fields to `record_id`, moves the session at most
        one stage forward and returns the next question (None once done).
        """
        if logs is None:
            logs = []
        extraction = extraction or ExtractionResult()
        stage = session.creation_progress
        if stage is None:
            return CollectorStep()

        fields = self._fields_for_stage(stage, message, extraction)
        if not fields:
            logs.append(f"[COLLECT] Stage {stage}: nothing usable yet, asking again")
            return CollectorStep(stage_before=stage, stage_after=stage, question=question_for(stage))

        try:
            self.gateway.update(record_id, fields)
        except Exception as e:
            logger.warning("Stage %d write to %s failed: %s", stage, record_id, e)
            logs.append(f"[COLLECT] Failed to save {', '.join(fields)} on {record_id}: {e}")
            return CollectorStep(stage_before=stage, stage_after=stage, question=question_for(stage))

        logs.append(f"[COLLECT] Stage {stage}: saved {', '.join(fields)} on {record_id}")
        next_stage = stage + 1 if stage < FINAL_STAGE else None
        session.creation_progress = next_stage
        return CollectorStep(
            stage_before=stage,
            stage_after=next_stage,
            written_fields=fields,
            question=question_for(next_stage) if next_stage is not None else None,
        )
