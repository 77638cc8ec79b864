"""Structured diagnostics for settings stores.

Purpose
    Every component that touches settings (providers, the composite, the
    builder, the path resolver) reports through one :class:`SettingsLog` bound
    to its own name, so each record carries the same fields no matter where it
    came from.

Contents
    - ``TRACE_ID``: context variable storing the active trace identifier.
    - ``get_logger``: returns the shared package logger (quiet by default).
    - ``bind_trace_id`` / ``traced``: bind a trace identifier globally for the
      current context or for the duration of a ``with`` block.
    - ``SettingsLog``: per-component emitter with ``debug``/``info`` for key and
      lifecycle events, ``storage`` for file and database activity, and
      ``failure`` for errors.
    - ``settings_record``: builds the record payload attached to every entry.

Record shape
    The log message is the event name. ``record.settings`` is a dictionary with
    exactly the keys ``trace_id``, ``source``, ``key``, ``location``, ``error``
    and ``details``; fields an event does not use are ``None`` (``details`` is
    an empty dictionary).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from os import PathLike
from typing import Any, Final, Iterator, Mapping

LOGGER_NAME: Final[str] = "lib_layered_settings"

TRACE_ID: ContextVar[str | None] = ContextVar("lib_layered_settings_trace_id", default=None)
"""Trace identifier stamped on every settings record emitted in this context."""

_LOGGER: Final[logging.Logger] = logging.getLogger(LOGGER_NAME)
_LOGGER.addHandler(logging.NullHandler())


def get_logger() -> logging.Logger:
    """Expose the package logger so applications may attach handlers."""

    return _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Bind or clear the active trace identifier.

    Examples
    --------
    >>> bind_trace_id('abc123')
    >>> TRACE_ID.get()
    'abc123'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


@contextmanager
def traced(trace_id: str) -> Iterator[None]:
    """Stamp *trace_id* on records emitted inside the block, then restore the previous one.

    Examples
    --------
    >>> with traced('req-7'):
    ...     TRACE_ID.get()
    'req-7'
    >>> TRACE_ID.get() is None
    True
    """

    token = TRACE_ID.set(trace_id)
    try:
        yield
    finally:
        TRACE_ID.reset(token)


def settings_record(
    source: str,
    *,
    key: str | None = None,
    location: str | PathLike[str] | None = None,
    error: BaseException | None = None,
    details: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the payload attached to a settings log record.

    Examples
    --------
    >>> settings_record('InMemory', key='theme', details={'change': 'added'})
    {'trace_id': None, 'source': 'InMemory', 'key': 'theme', 'location': None, 'error': None, 'details': {'change': 'added'}}
    >>> settings_record('JsonFile:app.json', error=OSError('busy'))['error']
    "OSError('busy')"
    """

    return {
        "trace_id": TRACE_ID.get(),
        "source": source,
        "key": key,
        "location": None if location is None else str(location),
        "error": None if error is None else repr(error),
        "details": dict(details or {}),
    }


class SettingsLog:
    """Emit settings records on behalf of one named component.

    Examples
    --------
    >>> log = SettingsLog('InMemory')
    >>> log.source
    'InMemory'
    >>> log.debug('setting_written', key='theme', change='added')
    """

    __slots__ = ("source",)

    def __init__(self, source: str) -> None:
        self.source = source

    def __repr__(self) -> str:
        return f"SettingsLog({self.source!r})"

    def debug(self, event: str, *, key: str | None = None, **details: Any) -> None:
        self._emit(logging.DEBUG, event, key=key, details=details)

    def info(self, event: str, *, key: str | None = None, **details: Any) -> None:
        self._emit(logging.INFO, event, key=key, details=details)

    def storage(self, event: str, location: str | PathLike[str], **details: Any) -> None:
        """Record file or database activity at *location*."""

        self._emit(logging.DEBUG, event, location=location, details=details)

    def failure(
        self,
        event: str,
        error: BaseException,
        *,
        key: str | None = None,
        location: str | PathLike[str] | None = None,
        **details: Any,
    ) -> None:
        """Record *error* against this component at ERROR level."""

        self._emit(logging.ERROR, event, key=key, location=location, error=error, details=details)

    def _emit(self, level: int, event: str, **fields: Any) -> None:
        if not _LOGGER.isEnabledFor(level):
            return
        _LOGGER.log(level, event, extra={"settings": settings_record(self.source, **fields)})
