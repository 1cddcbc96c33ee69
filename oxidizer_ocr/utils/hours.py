"""
Hour-column labels.

Hours are carried internally as canonical ``HHMM`` strings ("0000".."2359"),
the form printed in the log's header row.
"""

from __future__ import annotations

import re
from typing import Any

from oxidizer_ocr.core.exceptions import InvalidTargetHourError

_HOUR_RE = re.compile(
    r"^(?:(?P<h4>[01]\d|2[0-3])(?P<m4>[0-5]\d)|(?P<hc>[01]?\d|2[0-3]):(?P<mc>[0-5]\d))$"
)

# OCR misreads seen in printed hour labels
_HOUR_CONFUSABLES = str.maketrans({"O": "0", "o": "0", "D": "0", "l": "1", "I": "1", "|": "1"})


def parse_hour_token(token: str, repair: bool = False) -> str | None:
    """Return ``HHMM`` if ``token`` is an hour label, else None."""
    text = token.strip().strip(".,;")
    if repair:
        text = text.translate(_HOUR_CONFUSABLES)
    match = _HOUR_RE.match(text)
    if not match:
        return None
    if match.group("h4") is not None:
        return f"{match.group('h4')}{match.group('m4')}"
    return f"{int(match.group('hc')):02d}{match.group('mc')}"


def normalize_hour(value: Any) -> str:
    """
    Accept an int 0-23, ``"HHMM"`` or ``"HH:MM"`` and return ``"HHMM"``.

    Raises:
        InvalidTargetHourError: for anything else.
    """
    if isinstance(value, bool):
        raise InvalidTargetHourError(value)
    if isinstance(value, int):
        if 0 <= value <= 23:
            return f"{value:02d}00"
        raise InvalidTargetHourError(value)
    if isinstance(value, str):
        hour = parse_hour_token(value)
        if hour is not None:
            return hour
    raise InvalidTargetHourError(value)


def shift_hour(hour: str, delta: int) -> str:
    """Move an ``HHMM`` label by ``delta`` hours, wrapping at midnight."""
    return f"{(int(hour[:2]) + delta) % 24:02d}{hour[2:]}"


def neighbours(hour: str) -> tuple[str, str]:
    return shift_hour(hour, -1), shift_hour(hour, 1)


def display_hour(hour: str) -> str:
    return f"{hour[:2]}:{hour[2:]}"
