"""Key table and read-time coercion tests.

Covers case-insensitive key handling plus the ``ValueKind`` dispatch that turns
type mismatches into "not found" instead of errors.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_layered_settings.adapters.serializers.default import DEFAULT_SERIALIZER
from lib_layered_settings.domain.keys import KeyTable, require_key, unique_keys
from lib_layered_settings.domain.values import ValueKind, coerce, kind_of, kind_of_value, to_text
from tests.support import Window


class Color(Enum):
    RED = "red"
    BLUE = "blue"


@pytest.mark.parametrize("bad", ["", None, 42])
def test_require_key_rejects_non_strings_and_empty(bad) -> None:
    with pytest.raises(ValueError):
        require_key(bad)


def test_key_table_keeps_first_spelling() -> None:
    table = KeyTable()
    table["Database.Host"] = "a"
    table["database.HOST"] = "b"
    assert len(table) == 1
    assert list(table) == ["Database.Host"]
    assert table["DATABASE.host"] == "b"
    del table["database.host"]
    assert "Database.Host" not in table


@given(st.lists(st.text(alphabet="abcXYZ.", min_size=1, max_size=6), max_size=20))
def test_unique_keys_matches_casefolded_set(keys) -> None:
    """De-duplication must keep exactly one spelling per case-folded key."""

    result = unique_keys(keys)
    assert len(result) == len({key.casefold() for key in keys})
    assert len({key.casefold() for key in result}) == len(result)


def test_kind_dispatch() -> None:
    assert kind_of(str) is ValueKind.STRING
    assert kind_of(int) is ValueKind.INTEGER
    assert kind_of(float) is ValueKind.FLOAT
    assert kind_of(bool) is ValueKind.BOOLEAN
    assert kind_of(Window) is ValueKind.BLOB
    assert kind_of(list[int]) is ValueKind.BLOB
    assert kind_of_value(True) is ValueKind.BOOLEAN
    assert kind_of_value({"a": 1}) is ValueKind.BLOB


@pytest.mark.parametrize(
    ("raw", "target", "expected"),
    [
        ("42", int, (True, 42)),
        (" 7 ", int, (True, 7)),
        (42, int, (True, 42)),
        ("text", int, (False, None)),
        (True, int, (False, None)),
        (3, float, (True, 3.0)),
        ("2.5", float, (True, 2.5)),
        ("TRUE", bool, (True, True)),
        ("false", bool, (True, False)),
        ("yes", bool, (False, None)),
        (1, bool, (False, None)),
        ("x", str, (True, "x")),
        (5, str, (False, None)),
        ("raw", None, (True, "raw")),
    ],
)
def test_coerce_primitives(raw, target, expected) -> None:
    assert coerce(raw, target, DEFAULT_SERIALIZER) == expected


def test_coerce_blobs_through_serializer() -> None:
    assert coerce('{"width": 1, "height": 2}', Window, DEFAULT_SERIALIZER) == (True, Window(1, 2))
    assert coerce({"width": 3}, Window, DEFAULT_SERIALIZER) == (True, Window(width=3))
    assert coerce("blue", Color, DEFAULT_SERIALIZER) == (True, Color.BLUE)
    assert coerce("2024-05-01T10:00:00", datetime, DEFAULT_SERIALIZER) == (True, datetime(2024, 5, 1, 10))
    assert coerce("not json", Window, DEFAULT_SERIALIZER) == (False, None)
    assert coerce("purple", Color, DEFAULT_SERIALIZER) == (False, None)
    assert coerce('["8080", "8081"]', list[int], DEFAULT_SERIALIZER) == (True, [8080, 8081])
    assert coerce('["a", "b"]', list[int], DEFAULT_SERIALIZER) == (False, None)
    assert coerce(["a", "b"], list[int], DEFAULT_SERIALIZER) == (False, None)


def test_to_text_canonical_forms() -> None:
    assert to_text(False, DEFAULT_SERIALIZER) == "false"
    assert to_text(2.5, DEFAULT_SERIALIZER) == "2.5"
    assert to_text(Window(1, 2, "t"), DEFAULT_SERIALIZER) == '{"width": 1, "height": 2, "title": "t"}'


@given(st.integers())
def test_integer_text_round_trip(value: int) -> None:
    """Any integer written as text reads back as the same integer."""

    assert coerce(to_text(value, DEFAULT_SERIALIZER), int, DEFAULT_SERIALIZER) == (True, value)
