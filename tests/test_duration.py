# tests/test_duration.py

from __future__ import annotations

import pytest

from smart_todo.core.duration import UNKNOWN_DURATION, parse_duration


@pytest.mark.parametrize(
    ("text", "minutes"),
    [
        ("1h 30m", 90),
        ("2h", 120),
        ("45m", 45),
        ("1H30M", 90),
        ("2 h 15 m", 135),
        ("90", 90),
        ("about 20 minutes", 20),
        ("0h 5m", 5),
    ],
)
def test_parse_duration_known_values(text: str, minutes: int) -> None:
    assert parse_duration(text) == minutes


@pytest.mark.parametrize("text", [None, "", "soon", "0", "0m", "0h 0m"])
def test_parse_duration_unknown_is_sentinel(text) -> None:
    assert parse_duration(text) == UNKNOWN_DURATION


def test_sentinel_sorts_after_any_known_duration() -> None:
    assert parse_duration("") > parse_duration("999h 59m")
    assert parse_duration(None) == parse_duration("no digits") == parse_duration("0m")
