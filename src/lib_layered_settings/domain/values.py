"""Value kinds and read-time coercion.

Purpose
-------
Turn whatever a provider has stored into the type a caller asked for without
ever raising. Primitive kinds convert directly; everything else is a *blob*
handed to the configured serializer.

Contents
--------
* :class:`ValueKind` – closed set of storage kinds.
* :func:`kind_of` – map a requested type onto its kind.
* :func:`coerce` – ``(ok, value)`` conversion used by every provider's
  ``try_get``.
* :func:`to_text` – canonical text form used by text-only backends (INI,
  environment, XML, SQLite).

System Role
-----------
Providers call :func:`coerce` on the read path. A ``False`` flag means "treat
as not found", which is how type mismatches turn into caller defaults.
"""

from __future__ import annotations

import typing
from enum import Enum
from typing import Any, Callable, Protocol

from pydantic import ValidationError

from .errors import InvalidFormat


class ValueConverter(Protocol):
    """Subset of the serializer port needed for blob conversion."""

    def serialize(self, value: Any) -> str: ...

    def convert(self, raw: Any, target: Any) -> Any: ...


class ValueKind(Enum):
    """Storage kinds; the first four are native to most formats."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    BLOB = "blob"


_NATIVE_KINDS: dict[type, ValueKind] = {
    str: ValueKind.STRING,
    int: ValueKind.INTEGER,
    float: ValueKind.FLOAT,
    bool: ValueKind.BOOLEAN,
}

_TRUE_WORDS = frozenset({"true"})
_FALSE_WORDS = frozenset({"false"})


def kind_of(target: Any) -> ValueKind:
    """Return the :class:`ValueKind` for a requested type.

    Examples
    --------
    >>> kind_of(bool), kind_of(str), kind_of(dict)
    (<ValueKind.BOOLEAN: 'boolean'>, <ValueKind.STRING: 'string'>, <ValueKind.BLOB: 'blob'>)
    """

    if isinstance(target, type):
        return _NATIVE_KINDS.get(target, ValueKind.BLOB)
    return ValueKind.BLOB


def kind_of_value(value: Any) -> ValueKind:
    """Return the :class:`ValueKind` describing a stored value."""

    return _NATIVE_KINDS.get(type(value), ValueKind.BLOB)


def _as_string(raw: Any) -> tuple[bool, Any]:
    if isinstance(raw, str):
        return True, raw
    return False, None


def _as_integer(raw: Any) -> tuple[bool, Any]:
    kind = kind_of_value(raw)
    if kind is ValueKind.INTEGER:
        return True, raw
    if kind is ValueKind.STRING:
        try:
            return True, int(raw.strip())
        except ValueError:
            return False, None
    return False, None


def _as_float(raw: Any) -> tuple[bool, Any]:
    kind = kind_of_value(raw)
    if kind in (ValueKind.FLOAT, ValueKind.INTEGER):
        return True, float(raw)
    if kind is ValueKind.STRING:
        try:
            return True, float(raw.strip())
        except ValueError:
            return False, None
    return False, None


def _as_boolean(raw: Any) -> tuple[bool, Any]:
    kind = kind_of_value(raw)
    if kind is ValueKind.BOOLEAN:
        return True, raw
    if kind is ValueKind.STRING:
        lowered = raw.strip().lower()
        if lowered in _TRUE_WORDS:
            return True, True
        if lowered in _FALSE_WORDS:
            return True, False
    return False, None


_CONVERTERS: dict[ValueKind, Callable[[Any], tuple[bool, Any]]] = {
    ValueKind.STRING: _as_string,
    ValueKind.INTEGER: _as_integer,
    ValueKind.FLOAT: _as_float,
    ValueKind.BOOLEAN: _as_boolean,
}


def coerce(raw: Any, target: Any, converter: ValueConverter) -> tuple[bool, Any]:
    """Convert *raw* to *target*, returning ``(ok, value)`` and never raising.

    ``target`` of ``None`` (or :class:`object`) accepts the raw value as is.

    Examples
    --------
    >>> from lib_layered_settings.adapters.serializers.default import JsonSettingsSerializer
    >>> serializer = JsonSettingsSerializer()
    >>> coerce("42", int, serializer)
    (True, 42)
    >>> coerce("hello", int, serializer)
    (False, None)
    >>> coerce(True, int, serializer)
    (False, None)
    >>> coerce('["a", "b"]', list[int], serializer)
    (False, None)
    >>> coerce('{"a": 1}', dict, serializer)
    (True, {'a': 1})
    """

    if target is None or target is object or target is Any:
        return True, raw
    kind = kind_of(target)
    native = _CONVERTERS.get(kind)
    if native is not None:
        return native(raw)
    origin = typing.get_origin(target) or target
    if isinstance(origin, type) and isinstance(raw, origin) and origin is target:
        return True, raw
    try:
        return True, converter.convert(raw, target)
    except (ValidationError, ValueError, TypeError, KeyError, AttributeError, InvalidFormat):
        return False, None


def to_text(value: Any, converter: ValueConverter) -> str:
    """Return the canonical text form of *value* for text-only backends.

    Examples
    --------
    >>> from lib_layered_settings.adapters.serializers.default import JsonSettingsSerializer
    >>> serializer = JsonSettingsSerializer()
    >>> to_text(True, serializer), to_text(3, serializer), to_text("x", serializer)
    ('true', '3', 'x')
    >>> to_text({"a": [1, 2]}, serializer)
    '{"a": [1, 2]}'
    """

    kind = kind_of_value(value)
    if kind is ValueKind.STRING:
        return value
    if kind is ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind in (ValueKind.INTEGER, ValueKind.FLOAT):
        return repr(value)
    return converter.serialize(value)
