"""
Enum fuzzy-matching for constrained Account fields (Status, Industry).
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

STATUS_OPTIONS: tuple[str, ...] = ("Active", "Disabled", "New")
DEFAULT_INDUSTRY = "General"

_WORD_RE = re.compile(r"\w+")


def normalize(candidate: str, allowed: Sequence[str]) -> str:
    """
    Map free text onto the closest member of `allowed`.

    The first allowed value (in the order given) whose case-folded form is
    contained in the case-folded candidate wins. When nothing matches the
    first element of `allowed` is returned; this fallback is kept for
    compatibility with existing records.
    """
    if not allowed:
        raise ValueError("allowed must contain at least one value")
    folded = (candidate or "").casefold()
    for value in allowed:
        if value.casefold() in folded:
            return value
    return allowed[0]


def title_case(text: str) -> str:
    """Capitalize the first letter of each word and lower-case the rest."""
    return _WORD_RE.sub(lambda m: m.group(0).capitalize(), (text or "").strip())


def guess_industry(info: str, options: Iterable[str]) -> str:
    """First known industry mentioned in `info`, else the default bucket."""
    folded = (info or "").casefold()
    for industry in options:
        if industry and industry.casefold() in folded:
            return industry
    return DEFAULT_INDUSTRY


def unique_options(values: Iterable[object]) -> list[str]:
    """De-duplicate string values from a store column, keeping first-seen order."""
    seen: set[str] = set()
    options: list[str] = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            continue
        if value not in seen:
            seen.add(value)
            options.append(value)
    return options
