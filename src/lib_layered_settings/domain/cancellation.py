"""Cooperative cancellation signal for asynchronous settings operations."""

from __future__ import annotations

import threading

from .errors import OperationCancelled


class CancellationToken:
    """Thread-safe flag that asynchronous operations poll at their boundaries.

    Operations check the token before doing any work and again after every
    suspension point; a fired token raises :class:`OperationCancelled`.

    Examples
    --------
    >>> token = CancellationToken()
    >>> token.cancelled
    False
    >>> token.cancel()
    >>> token.raise_if_cancelled()
    Traceback (most recent call last):
    ...
    lib_layered_settings.domain.errors.OperationCancelled: operation was cancelled
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("operation was cancelled")


def check_cancelled(cancel: CancellationToken | None) -> None:
    """Raise :class:`OperationCancelled` when *cancel* has fired; ``None`` never cancels."""

    if cancel is not None:
        cancel.raise_if_cancelled()
