"""Shared implementation of the provider contract for leaf backends.

Purpose
-------
Implement :class:`lib_layered_settings.application.ports.SettingsProvider` once
so every leaf only has to describe how its backing medium is read and written.

Contents
--------
* :class:`BaseSettingsProvider` – case-insensitive table, locking, dirty
  tracking, read coercion, change events, async wrappers, and disposal.

Extension Points
----------------
Subclasses override a handful of hooks:

``_load()``
    Return the backing contents as a mapping (called at construction and on
    ``reload``).
``_persist(snapshot)``
    Write the whole table back (called by ``flush`` when dirty).
``_encode(value)``
    Convert a caller value into its stored form.
``_storage_key(key)`` / ``_public_key(stored)``
    Translate between caller keys and backend keys.
``_check_writable_key(key)``
    Reject keys the backing format cannot hold; runs before ``set`` changes
    anything.
``_on_set`` / ``_on_remove`` / ``_on_clear``
    Per-write hooks for write-through backends.
``_release()``
    Free native handles on ``close``.

System Role
-----------
The composite never sees this class; it only relies on the port. The base
guards its table with a re-entrant lock and publishes events outside the lock
so handlers may call back into the provider.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from typing import Any, Callable, ClassVar, Mapping

from ...domain.cancellation import CancellationToken, check_cancelled
from ...domain.errors import ProviderClosed, UnsupportedOperation
from ...domain.events import ChangeHandler, ChangeNotifier, ChangeType, SettingsChanged, Subscription
from ...domain.keys import KeyTable, require_key
from ...domain.options import ProviderOptions, SettingsScope
from ...domain.values import coerce
from ...observability import SettingsLog
from ..serializers.default import DEFAULT_SERIALIZER


class BaseSettingsProvider:
    """Leaf provider skeleton backed by an in-memory :class:`KeyTable`.

    Class Attributes
    ----------------
    buffered:
        ``True`` when writes stay in memory until :meth:`flush`; write-through
        backends set it to ``False``.
    blocking_io:
        ``True`` when ``flush``/``reload`` touch the disk, in which case their
        async forms run in a worker thread.
    """

    buffered: ClassVar[bool] = True
    blocking_io: ClassVar[bool] = False

    def __init__(self, name: str, options: ProviderOptions | None = None, serializer: Any = None) -> None:
        self._options = options if options is not None else ProviderOptions()
        self._name = name
        self._log = SettingsLog(name)
        self._serializer = serializer or self._options.serializer or DEFAULT_SERIALIZER
        self._entries = KeyTable()
        self._lock = threading.RLock()
        self._notifier = ChangeNotifier()
        self._dirty = False
        self._closed = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, priority={self.priority}, read_only={self.is_read_only})"

    # -- metadata ---------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def priority(self) -> int:
        return self._options.priority

    @property
    def is_read_only(self) -> bool:
        return self._options.read_only

    @property
    def scope(self) -> SettingsScope:
        return self._options.scope

    @property
    def options(self) -> ProviderOptions:
        return self._options

    @property
    def serializer(self) -> Any:
        return self._serializer

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def has_pending_changes(self) -> bool:
        return self._dirty

    @property
    def closed(self) -> bool:
        return self._closed

    # -- hooks ------------------------------------------------------------

    def _load(self) -> Mapping[str, Any]:
        return {}

    def _persist(self, snapshot: dict[str, Any]) -> None:
        return None

    def _encode(self, value: Any) -> Any:
        return value

    def _storage_key(self, key: str) -> str:
        return key

    def _public_key(self, stored: str) -> str:
        return stored

    def _check_writable_key(self, key: str) -> None:
        return None

    def _on_set(self, key: str, stored: Any) -> None:
        return None

    def _on_remove(self, key: str) -> None:
        return None

    def _on_clear(self) -> None:
        return None

    def _release(self) -> None:
        return None

    # -- lifecycle --------------------------------------------------------

    def _initialise(self) -> None:
        """Load the backing medium; subclasses call this at the end of ``__init__``."""

        with self._lock:
            self._entries = KeyTable(self._load())
            self._dirty = False
            loaded = len(self._entries)
        self._log.debug("provider_loaded", keys=loaded, priority=self.priority)

    def _ensure_open(self) -> None:
        if self._closed:
            raise ProviderClosed(f"Provider '{self._name}' has been closed.")

    def _ensure_writable(self) -> None:
        if self.is_read_only:
            raise UnsupportedOperation(f"Provider '{self._name}' is read-only.")

    def _mark_dirty(self) -> None:
        if self.buffered:
            self._dirty = True

    def _publish(self, event: SettingsChanged) -> None:
        self._notifier.publish(event)

    def close(self) -> None:
        """Flush pending writes, drop subscribers, and release native handles."""

        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._closed = True
            self._notifier.clear()
            self._release()
            self._log.debug("provider_closed")

    def __enter__(self) -> "BaseSettingsProvider":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- observation ------------------------------------------------------

    def subscribe(self, handler: ChangeHandler) -> Subscription:
        return self._notifier.subscribe(handler)

    def unsubscribe(self, handler: ChangeHandler) -> bool:
        return self._notifier.unsubscribe(handler)

    # -- reads ------------------------------------------------------------

    def try_get(self, key: str, *, as_type: Any = None) -> tuple[bool, Any]:
        require_key(key)
        self._ensure_open()
        with self._lock:
            raw = self._entries.get(self._storage_key(key))
        if raw is None:
            return False, None
        ok, value = coerce(raw, as_type, self._serializer)
        if not ok:
            return False, None
        return True, value

    def get(self, key: str, default: Any = None, *, as_type: Any = None) -> Any:
        target = as_type if as_type is not None else _type_of(default)
        found, value = self.try_get(key, as_type=target)
        return value if found else default

    def get_or_default(self, key: str, *, as_type: Any = None) -> Any:
        _, value = self.try_get(key, as_type=as_type)
        return value

    def get_or_create(self, key: str, factory: Callable[[], Any], *, as_type: Any = None) -> Any:
        if not callable(factory):
            raise TypeError("factory must be callable")
        found, existing = self.try_get(key, as_type=as_type)
        if found:
            return existing
        value = factory()
        if self.is_read_only:
            return value
        self.set(key, value)
        return value

    def contains_key(self, key: str) -> bool:
        require_key(key)
        self._ensure_open()
        with self._lock:
            return self._storage_key(key) in self._entries

    def get_all_keys(self) -> list[str]:
        self._ensure_open()
        with self._lock:
            return [self._public_key(stored) for stored in self._entries]

    # -- writes -----------------------------------------------------------

    def set(self, key: str, value: Any) -> None:
        require_key(key)
        self._ensure_open()
        self._ensure_writable()
        self._check_writable_key(key)
        storage_key = self._storage_key(key)
        stored = self._encode(value)
        with self._lock:
            existed = storage_key in self._entries
            old_value = self._entries.get(storage_key)
            self._on_set(storage_key, stored)
            self._entries[storage_key] = stored
            self._mark_dirty()
        change = ChangeType.MODIFIED if existed else ChangeType.ADDED
        self._log.debug("setting_written", key=key, change=change.value)
        self._publish(SettingsChanged(key, change, old_value, stored, self._name))

    def remove(self, key: str) -> bool:
        require_key(key)
        self._ensure_open()
        self._ensure_writable()
        storage_key = self._storage_key(key)
        with self._lock:
            if storage_key not in self._entries:
                return False
            self._on_remove(storage_key)
            old_value = self._entries.pop(storage_key)
            self._mark_dirty()
        self._log.debug("setting_removed", key=key)
        self._publish(SettingsChanged(key, ChangeType.REMOVED, old_value, None, self._name))
        return True

    def clear(self) -> None:
        self._ensure_open()
        self._ensure_writable()
        with self._lock:
            self._on_clear()
            removed = len(self._entries)
            self._entries.clear()
            self._mark_dirty()
        self._log.debug("settings_cleared", keys=removed)
        self._publish(SettingsChanged.cleared(self._name))

    # -- persistence ------------------------------------------------------

    def flush(self) -> None:
        self._ensure_open()
        with self._lock:
            if not self._dirty:
                return
            self._persist(self._entries.snapshot())
            self._dirty = False
        self._log.debug("provider_flushed")

    def reload(self) -> None:
        self._ensure_open()
        with self._lock:
            self._entries = KeyTable(self._load())
            self._dirty = False
            loaded = len(self._entries)
        self._log.debug("provider_reloaded", keys=loaded)

    # -- async ------------------------------------------------------------

    async def get_async(
        self, key: str, default: Any = None, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> Any:
        check_cancelled(cancel)
        return self.get(key, default, as_type=as_type)

    async def get_or_default_async(
        self, key: str, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> Any:
        check_cancelled(cancel)
        return self.get_or_default(key, as_type=as_type)

    async def try_get_async(
        self, key: str, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> tuple[bool, Any]:
        check_cancelled(cancel)
        return self.try_get(key, as_type=as_type)

    async def get_or_create_async(
        self,
        key: str,
        factory: Callable[[], Any],
        *,
        as_type: Any = None,
        cancel: CancellationToken | None = None,
    ) -> Any:
        check_cancelled(cancel)
        if not callable(factory):
            raise TypeError("factory must be callable")
        found, existing = self.try_get(key, as_type=as_type)
        if found:
            return existing
        value = factory()
        if inspect.isawaitable(value):
            value = await value
        check_cancelled(cancel)
        if self.is_read_only:
            return value
        self.set(key, value)
        return value

    async def set_async(self, key: str, value: Any, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        self.set(key, value)

    async def remove_async(self, key: str, *, cancel: CancellationToken | None = None) -> bool:
        check_cancelled(cancel)
        return self.remove(key)

    async def clear_async(self, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        self.clear()

    async def flush_async(self, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        if self.blocking_io:
            await asyncio.to_thread(self.flush)
            check_cancelled(cancel)
        else:
            self.flush()

    async def reload_async(self, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        if self.blocking_io:
            await asyncio.to_thread(self.reload)
            check_cancelled(cancel)
        else:
            self.reload()


def _type_of(default: Any) -> Any:
    """Return the coercion target implied by a caller default (``None`` means raw)."""

    return None if default is None else type(default)
