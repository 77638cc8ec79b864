"""Application-layer ports describing provider responsibilities.

Purpose
-------
Define the structural contracts every backend must satisfy so the composite and
the builder can orchestrate behaviour without depending on concrete
implementations. The same contract is consumed *and* implemented by the
composite, which makes recursive composition possible.

Contents
--------
* :class:`SettingsSerializer` – encodes complex values for storage.
* :class:`SettingsStore` – key-value data surface (sync and async).
* :class:`ObservableSettingsStore` – store that publishes change events.
* :class:`SettingsProvider` – observable store with metadata and ``reload``.

System Role
-----------
These protocols enforce Dependency Inversion (DIP). Each provider implements
:class:`SettingsProvider`; the builder only ever hands out objects typed by
these ports. All protocols are ``runtime_checkable`` so
:meth:`lib_layered_settings.core.SettingsBuilder.build_provider` can verify a
custom provider before returning it.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable, Protocol, TypeVar, runtime_checkable

from ..domain.cancellation import CancellationToken
from ..domain.events import ChangeHandler, Subscription
from ..domain.options import SettingsScope

T = TypeVar("T")

Factory = Callable[[], "T | Awaitable[T]"]


@runtime_checkable
class SettingsSerializer(Protocol):
    """Encode complex values to text and rebuild them into requested types.

    Why
    ----
    Text-only backends (INI, environment, SQLite, XML) and typed reads of
    structured values need one shared, replaceable conversion strategy.
    """

    def serialize(self, value: Any) -> str:
        """Return the text form of *value*."""

    def deserialize(self, text: str, target: Any = None) -> Any:
        """Decode *text* and rebuild it as *target* (raw data when ``None``)."""

    def convert(self, raw: Any, target: Any) -> Any:
        """Rebuild a stored value (text or plain data) as *target*."""

    def to_plain(self, value: Any) -> Any:
        """Reduce *value* to JSON-compatible data."""


@runtime_checkable
class SettingsStore(Protocol):
    """Key-value data surface shared by every provider and the composite.

    Why
    ----
    Application code reads and writes settings without knowing which backend
    (or combination of backends) answers.

    Read Semantics
    --------------
    Reads never raise for a missing key or a type mismatch; they fall back to
    the caller default (``get``), ``None`` (``get_or_default``), or
    ``(False, None)`` (``try_get``). When ``as_type`` is omitted, ``get`` uses
    ``type(default)``; without a default the raw stored value is returned.

    Write Semantics
    ---------------
    ``set`` fires ``ADDED`` or ``MODIFIED``, ``remove`` fires ``REMOVED`` when
    something was deleted, ``clear`` fires exactly one ``CLEARED``. Read-only
    providers raise :class:`~lib_layered_settings.domain.errors.UnsupportedOperation`.
    """

    def get(self, key: str, default: Any = None, *, as_type: Any = None) -> Any:
        """Return the value under *key* coerced to the target type, or *default*."""

    def get_or_default(self, key: str, *, as_type: Any = None) -> Any:
        """Return the coerced value or ``None``."""

    def try_get(self, key: str, *, as_type: Any = None) -> tuple[bool, Any]:
        """Return ``(found, value)`` where *found* also requires a successful coercion."""

    def get_or_create(self, key: str, factory: Callable[[], Any], *, as_type: Any = None) -> Any:
        """Return the existing value or store and return ``factory()``."""

    def set(self, key: str, value: Any) -> None:
        """Insert or overwrite *key*."""

    def remove(self, key: str) -> bool:
        """Delete *key*; return whether a deletion occurred."""

    def clear(self) -> None:
        """Delete every key held by this store."""

    def contains_key(self, key: str) -> bool:
        """Return whether *key* is present."""

    def get_all_keys(self) -> list[str]:
        """Return the case-insensitively unique keys currently held."""

    @property
    def count(self) -> int:
        """Number of distinct keys."""

    def flush(self) -> None:
        """Persist buffered writes; a no-op for write-through or volatile stores."""

    async def get_async(
        self, key: str, default: Any = None, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> Any:
        """Asynchronous :meth:`get`."""

    async def get_or_default_async(
        self, key: str, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> Any:
        """Asynchronous :meth:`get_or_default`."""

    async def try_get_async(
        self, key: str, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> tuple[bool, Any]:
        """Asynchronous :meth:`try_get`."""

    async def get_or_create_async(
        self, key: str, factory: Factory, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> Any:
        """Asynchronous :meth:`get_or_create`; *factory* may return an awaitable."""

    async def set_async(self, key: str, value: Any, *, cancel: CancellationToken | None = None) -> None:
        """Asynchronous :meth:`set`."""

    async def remove_async(self, key: str, *, cancel: CancellationToken | None = None) -> bool:
        """Asynchronous :meth:`remove`."""

    async def clear_async(self, *, cancel: CancellationToken | None = None) -> None:
        """Asynchronous :meth:`clear`."""

    async def flush_async(self, *, cancel: CancellationToken | None = None) -> None:
        """Asynchronous :meth:`flush`."""

    def close(self) -> None:
        """Flush pending writes and release native resources."""


@runtime_checkable
class ObservableSettingsStore(SettingsStore, Protocol):
    """Store that publishes :class:`~lib_layered_settings.domain.events.SettingsChanged` records."""

    def subscribe(self, handler: ChangeHandler) -> Subscription:
        """Register *handler*; close the returned subscription to detach it."""

    def unsubscribe(self, handler: ChangeHandler) -> bool:
        """Detach *handler*; return whether it was registered."""


@runtime_checkable
class SettingsProvider(ObservableSettingsStore, Protocol):
    """Named, prioritised, scoped backend.

    Why
    ----
    The composite needs metadata to order members (``priority``), to pick a
    write target (``is_read_only``), and to explain events (``name``).
    ``name`` and ``priority`` never change after construction.
    """

    @property
    def name(self) -> str:
        """Stable identifier used in diagnostics and events."""

    @property
    def priority(self) -> int:
        """Read-resolution rank; higher is consulted first."""

    @property
    def is_read_only(self) -> bool:
        """Whether writes raise."""

    @property
    def scope(self) -> SettingsScope:
        """Storage tier of the backing location."""

    def reload(self) -> None:
        """Discard the in-memory view and re-read the backing medium."""

    async def reload_async(self, *, cancel: CancellationToken | None = None) -> None:
        """Asynchronous :meth:`reload`."""


def providers_by_priority(providers: Iterable[SettingsProvider]) -> list[SettingsProvider]:
    """Return *providers* sorted by descending priority; ties keep their input order.

    Examples
    --------
    >>> from types import SimpleNamespace
    >>> members = [SimpleNamespace(name=n, priority=p) for n, p in [("a", 1), ("b", 5), ("c", 1)]]
    >>> [m.name for m in providers_by_priority(members)]
    ['b', 'a', 'c']
    """

    return sorted(providers, key=lambda provider: provider.priority, reverse=True)
