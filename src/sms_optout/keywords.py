from __future__ import annotations

from enum import Enum
from typing import Final

OPT_OUT_KEYWORDS: Final[frozenset[str]] = frozenset({"OPT OUT"})
OPT_IN_KEYWORDS: Final[frozenset[str]] = frozenset({"OPT IN"})


class Classification(str, Enum):
    OPT_OUT = "opt_out"
    OPT_IN = "opt_in"
    IGNORED = "ignored"

    @property
    def action(self) -> str | None:
        """Action name reported to callers, or None for ignored messages."""
        if self is Classification.IGNORED:
            return None
        return self.value

    @property
    def opt_out_value(self) -> bool | None:
        """Value to write to the contact's ``sms_opt_out`` flag."""
        if self is Classification.IGNORED:
            return None
        return self is Classification.OPT_OUT


def _contains_any(text: str, keywords: frozenset[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def classify(body: str | None) -> Classification:
    """
    Classify an inbound SMS body.

    Matching is a case-insensitive substring test, not a whole-word one:
    "please opt out now" is an opt-out, "optional outing" is not.

    Opt-out is checked first, so a body containing both phrases resolves
    to OPT_OUT.
    """
    if not body:
        return Classification.IGNORED

    text = body.upper().strip()

    if _contains_any(text, OPT_OUT_KEYWORDS):
        return Classification.OPT_OUT
    if _contains_any(text, OPT_IN_KEYWORDS):
        return Classification.OPT_IN
    return Classification.IGNORED
