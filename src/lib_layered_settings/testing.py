"""Testing doubles that keep failure scenarios observable and predictable.

Purpose
    Provide intentionally failing providers that exercise the error-handling
    paths of the composite (flush, reload, and close aggregation) without
    relying on brittle filesystem tricks.

Contents
    - ``FAILURE_MESSAGE``: stable message used when forcing a failure.
    - ``FailingSettingsProvider``: in-memory provider whose selected lifecycle
      operations raise ``RuntimeError``.

System Integration
    Used by the application and end-to-end suites; applications may reuse it to
    test their own shutdown handling.
"""

from __future__ import annotations

from typing import Any, Final, Iterable, Mapping

from .adapters.providers.memory import InMemorySettingsProvider
from .domain.options import ProviderOptions

FAILURE_MESSAGE: Final[str] = "i should fail"
"""Stable message prefix emitted by :class:`FailingSettingsProvider`.

Why
    Tests assert on the exact wording to guarantee deterministic output.
"""

FAILABLE_OPERATIONS: Final[frozenset[str]] = frozenset({"flush", "reload", "close"})


class FailingSettingsProvider(InMemorySettingsProvider):
    """In-memory provider that raises on the lifecycle operations named in *fail_on*.

    The operation is still counted in :attr:`calls` before the failure, so tests
    can verify that every member was attempted.

    Examples
    --------
    >>> provider = FailingSettingsProvider(fail_on=["flush"])
    >>> provider.flush()
    Traceback (most recent call last):
    ...
    RuntimeError: i should fail: flush
    >>> provider.calls
    ['flush']
    """

    def __init__(
        self,
        name: str = "Failing",
        priority: int = 0,
        *,
        fail_on: Iterable[str] = ("flush",),
        read_only: bool = False,
        initial: Mapping[str, Any] | None = None,
    ) -> None:
        requested = frozenset(fail_on)
        unknown = requested - FAILABLE_OPERATIONS
        if unknown:
            raise ValueError(f"unsupported operations: {sorted(unknown)}")
        self.fail_on = requested
        self.calls: list[str] = []
        super().__init__(name, ProviderOptions(priority=priority, read_only=read_only), initial=initial)

    def _maybe_fail(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise RuntimeError(f"{FAILURE_MESSAGE}: {operation}")

    def flush(self) -> None:
        self._maybe_fail("flush")
        super().flush()

    def reload(self) -> None:
        self._maybe_fail("reload")
        super().reload()

    def close(self) -> None:
        if self.closed:
            return
        self._closed = True
        self._notifier.clear()
        self._maybe_fail("close")
