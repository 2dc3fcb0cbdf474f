# src/smart_todo/core/duration.py

"""
Free-text duration parsing ("1h 30m", "45m", "90") into comparable minutes.

Durations come from the oracle as short labels, so parsing is best-effort:
anything that cannot be read degrades to UNKNOWN_DURATION, which sorts last.
"""

from __future__ import annotations

import re
import sys
from typing import Final

UNKNOWN_DURATION: Final[int] = sys.maxsize

_HOURS_RE = re.compile(r"(\d+)\s*h")
_MINUTES_RE = re.compile(r"(\d+)\s*m")
_DIGITS_RE = re.compile(r"\d+")


def parse_duration(text: str | None) -> int:
    """
    Convert a duration label to minutes.

    - "1h 30m" -> 90, "2h" -> 120, "45m" -> 45
    - "90" (no unit) -> 90, the first digit run is taken as minutes
    - None / "" / no digits / zero total -> UNKNOWN_DURATION
    """
    if not text:
        return UNKNOWN_DURATION

    low = text.lower()
    total = 0

    hours = _HOURS_RE.search(low)
    minutes = _MINUTES_RE.search(low)

    if hours:
        total += int(hours.group(1)) * 60
    if minutes:
        total += int(minutes.group(1))

    if total == 0:
        digits = _DIGITS_RE.search(low)
        if digits:
            total = int(digits.group(0))

    return total or UNKNOWN_DURATION
