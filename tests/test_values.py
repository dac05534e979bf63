from __future__ import annotations

from datetime import datetime

import pytest

from planner.domain.enums import Priority
from planner.domain.values import decode_value, encode_value


def test_none_is_stored_as_null_not_text() -> None:
    assert encode_value(None) is None
    assert decode_value(None) is None


@pytest.mark.parametrize(
    ("value", "encoded"),
    [
        ("Buy milk", '"Buy milk"'),
        (45, "45"),
        (True, "true"),
        (False, "false"),
        (Priority.HIGH, '"high"'),
        (datetime(2026, 1, 5, 9, 30), '"2026-01-05T09:30:00"'),
    ],
)
def test_values_are_json_encoded(value, encoded) -> None:
    assert encode_value(value) == encoded


def test_decode_keeps_the_json_type() -> None:
    assert decode_value("false") is False
    assert decode_value("45") == 45
    assert decode_value('"null"') == "null"


def test_unsupported_values_are_rejected() -> None:
    with pytest.raises(TypeError):
        encode_value(object())
