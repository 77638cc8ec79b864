from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

import pytest
from pydantic import ValidationError

from lib_layered_settings import InvalidFormat, JsonSettingsSerializer, SettingsSerializer
from tests.support import Layout, Window


class Mode(Enum):
    FAST = "fast"


def test_serializer_satisfies_port() -> None:
    assert isinstance(JsonSettingsSerializer(), SettingsSerializer)


def test_to_plain_reduces_rich_values() -> None:
    serializer = JsonSettingsSerializer()
    plain = serializer.to_plain(
        {
            "window": Window(1, 2),
            "mode": Mode.FAST,
            "when": date(2024, 1, 2),
            "price": Decimal("1.50"),
            "tags": ("a", "b"),
        }
    )
    assert plain == {
        "window": {"width": 1, "height": 2, "title": "main"},
        "mode": "fast",
        "when": "2024-01-02",
        "price": "1.50",
        "tags": ["a", "b"],
    }


def test_to_plain_rejects_unknown_objects() -> None:
    with pytest.raises(TypeError):
        JsonSettingsSerializer().to_plain(object())


def test_deserialize_targets() -> None:
    serializer = JsonSettingsSerializer()
    assert serializer.deserialize('"2024-01-02T03:04:05"', datetime) == datetime(2024, 1, 2, 3, 4, 5)
    assert serializer.deserialize('"12345678-1234-5678-1234-567812345678"', UUID) == UUID(
        "12345678-1234-5678-1234-567812345678"
    )
    assert serializer.deserialize("[1, 2]", tuple) == (1, 2)
    assert serializer.deserialize("3", float) == 3.0
    assert serializer.deserialize("") is None


def test_deserialize_rejects_bad_json_and_mismatches() -> None:
    serializer = JsonSettingsSerializer()
    with pytest.raises(InvalidFormat):
        serializer.deserialize("{broken")
    with pytest.raises(TypeError):
        serializer.deserialize("true", int)


def test_indent_and_sort_keys_are_honoured() -> None:
    text = JsonSettingsSerializer(indent=2, sort_keys=True).serialize({"b": 1, "a": 2})
    assert text == '{\n  "a": 2,\n  "b": 1\n}'


def test_nested_dataclasses_are_rebuilt() -> None:
    serializer = JsonSettingsSerializer()
    text = serializer.serialize(Layout(Window(1, 2), [Window(title="tool")], [0.5]))
    restored = serializer.deserialize(text, Layout)
    assert restored == Layout(Window(1, 2), [Window(title="tool")], [0.5])
    assert isinstance(restored.main, Window)
    assert isinstance(restored.panels[0], Window)


def test_container_items_are_validated() -> None:
    serializer = JsonSettingsSerializer()
    assert serializer.convert('["1", "2"]', list[int]) == [1, 2]
    assert serializer.convert({"a": "1.5"}, dict[str, float]) == {"a": 1.5}
    with pytest.raises(ValidationError):
        serializer.convert('["a", "b"]', list[int])
    with pytest.raises(ValidationError):
        serializer.convert('{"main": 5}', Layout)


def test_timedelta_round_trips_as_iso_duration() -> None:
    serializer = JsonSettingsSerializer()
    text = serializer.serialize(timedelta(hours=1, minutes=30))
    assert text.startswith('"P')
    assert serializer.deserialize(text, timedelta) == timedelta(hours=1, minutes=30)
    assert serializer.convert(90, timedelta) == timedelta(seconds=90)
