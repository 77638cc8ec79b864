"""JSON serializer for complex settings values.

Purpose
-------
Implement :class:`lib_layered_settings.application.ports.SettingsSerializer`
with the standard :mod:`json` module for text and :mod:`pydantic` for the
object graph. Complex values are reduced to plain data (``dict``/``list``/
scalars) before encoding and validated back into the requested type on the way
out.

Rebuild targets are anything a :class:`pydantic.TypeAdapter` accepts:
dataclasses (nested ones included), :class:`enum.Enum` subclasses, dates and
times, :class:`datetime.timedelta` (ISO 8601 durations), :class:`decimal.Decimal`,
:class:`uuid.UUID` and parametrised containers such as ``list[int]`` whose
items are checked one by one.
"""

from __future__ import annotations

import json
from decimal import Decimal
from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter
from pydantic_core import PydanticSerializationError, to_jsonable_python

from ...domain.errors import InvalidFormat


@lru_cache(maxsize=256)
def _adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


class JsonSettingsSerializer:
    """Serialize settings values as JSON text.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Window:
    ...     width: int = 800
    ...     height: int = 600
    >>> serializer = JsonSettingsSerializer()
    >>> text = serializer.serialize(Window(1024, 768))
    >>> text
    '{"width": 1024, "height": 768}'
    >>> serializer.deserialize(text, Window)
    Window(width=1024, height=768)
    >>> serializer.convert('["1", "2"]', list[int])
    [1, 2]
    """

    def __init__(self, *, indent: int | None = None, sort_keys: bool = False) -> None:
        self._indent = indent
        self._sort_keys = sort_keys

    def serialize(self, value: Any) -> str:
        return json.dumps(self.to_plain(value), indent=self._indent, sort_keys=self._sort_keys)

    def deserialize(self, text: str, target: Any = None) -> Any:
        """Decode *text* and rebuild it as *target*; raises ``InvalidFormat`` on bad JSON."""

        if not text:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidFormat(f"Invalid JSON value: {exc}") from exc
        return self.from_plain(data, target)

    def convert(self, raw: Any, target: Any) -> Any:
        """Rebuild a stored value as *target*.

        Text is decoded as JSON first; text that is not JSON is used verbatim so
        ISO timestamps and enum values written by hand still convert. Numbers
        requested as :class:`~decimal.Decimal` keep every written digit.
        """

        if isinstance(raw, str):
            try:
                raw = json.loads(raw, parse_float=Decimal if target is Decimal else None)
            except json.JSONDecodeError:
                pass
        return self.from_plain(raw, target)

    def to_plain(self, value: Any) -> Any:
        """Reduce *value* to JSON-compatible data; raises ``TypeError`` for unknown objects."""

        if value is None or isinstance(value, (str, bool, int, float)):
            return value
        try:
            return to_jsonable_python(value)
        except PydanticSerializationError as exc:
            raise TypeError(f"Cannot serialize value of type {type(value).__name__}") from exc

    def from_plain(self, data: Any, target: Any) -> Any:
        """Rebuild plain *data* as *target*.

        Raises :class:`pydantic.ValidationError` (a ``ValueError``) when the data
        does not fit and ``TypeError`` when ``bool`` is offered for a number.
        """

        if target is None or target is Any or target is object:
            return data
        if target in (int, float) and isinstance(data, bool):
            raise TypeError(f"bool is not a {target.__name__} setting")
        return _adapter(target).validate_python(data)


DEFAULT_SERIALIZER = JsonSettingsSerializer()
"""Shared serializer used when neither the builder nor the options supply one."""
