from __future__ import annotations

import re
from typing import Final

# North American Numbering Plan is the only plan we know how to complete.
DEFAULT_COUNTRY_CODE: Final[str] = "1"

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(raw: str | None, *, lenient: bool = False) -> str | None:
    """
    Normalize a sender number to ``+1XXXXXXXXXX``.

    - ``None`` / empty input returns ``None``.
    - Every non-digit is stripped; a leading ``1`` on an 11-digit number is
      treated as the country code.
    - Numbers that don't fit the 10/11-digit NANP shape are returned verbatim,
      so callers must not assume the output is always E.164.

    With ``lenient=True`` a leading ``+`` marks the number as already
    international: shapes we can't complete come back as the compacted
    ``+<digits>`` form instead of the raw input.
    """
    if not raw:
        return None

    has_plus = lenient and raw.strip().startswith("+")
    cleaned = _NON_DIGITS.sub("", raw)

    if len(cleaned) == 11 and cleaned.startswith(DEFAULT_COUNTRY_CODE):
        cleaned = cleaned[1:]

    if len(cleaned) == 10:
        return f"+{DEFAULT_COUNTRY_CODE}{cleaned}"

    # Unreachable after the strip above; kept so the 11-digit shape is explicit.
    if len(cleaned) == 11 and cleaned.startswith(DEFAULT_COUNTRY_CODE):
        return f"+{cleaned}"

    if has_plus and cleaned:
        return f"+{cleaned}"

    return raw
