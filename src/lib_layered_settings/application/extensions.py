"""Convenience helpers layered over any settings store.

Purpose
-------
Offer the small, frequently repeated patterns (typed getters, whole-object
settings, key-scoped subscriptions, prefix housekeeping) as plain functions
that accept any :class:`~lib_layered_settings.application.ports.SettingsStore`.

Contents
--------
* Typed getters: :func:`get_string`, :func:`get_int`, :func:`get_float`,
  :func:`get_bool`, :func:`get_datetime`, :func:`get_decimal`,
  :func:`get_uuid`, :func:`get_timedelta`.
* Object settings: :func:`get_settings`, :func:`save_settings` and their async
  forms; the key defaults to the class name.
* Subscriptions: :func:`on_change`, :func:`on_any_change`.
* Housekeeping: :func:`get_or_set`, :func:`remove_range`,
  :func:`remove_by_prefix`, :func:`keys_by_prefix`.

System Role
-----------
Nothing here touches provider internals; every helper is expressed through the
public port so it works the same for leaves and composites.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable, TypeVar
from uuid import UUID

from ..domain.cancellation import CancellationToken
from ..domain.errors import UnsupportedOperation
from ..domain.events import ChangeHandler, SettingsChanged, Subscription
from .ports import ObservableSettingsStore, SettingsStore

T = TypeVar("T")

_EPOCH = datetime(1, 1, 1)
_NIL_UUID = UUID(int=0)


def get_string(store: SettingsStore, key: str, default: str = "") -> str:
    """Return the text under *key*, or *default*.

    Examples
    --------
    >>> from lib_layered_settings.adapters.providers.memory import InMemorySettingsProvider
    >>> store = InMemorySettingsProvider(initial={"name": "demo", "port": 8080})
    >>> get_string(store, "name"), get_string(store, "port"), get_string(store, "missing")
    ('demo', '', '')
    """

    return store.get(key, default, as_type=str)


def get_int(store: SettingsStore, key: str, default: int = 0) -> int:
    """Return the integer under *key*, or *default*.

    >>> from lib_layered_settings.adapters.providers.memory import InMemorySettingsProvider
    >>> get_int(InMemorySettingsProvider(initial={"port": "8080"}), "port")
    8080
    """

    return store.get(key, default, as_type=int)


def get_float(store: SettingsStore, key: str, default: float = 0.0) -> float:
    return store.get(key, default, as_type=float)


def get_bool(store: SettingsStore, key: str, default: bool = False) -> bool:
    return store.get(key, default, as_type=bool)


def get_datetime(store: SettingsStore, key: str, default: datetime = _EPOCH) -> datetime:
    """Return the datetime under *key* (ISO-8601 text is parsed), or *default*."""

    return store.get(key, default, as_type=datetime)


def get_decimal(store: SettingsStore, key: str, default: Decimal = Decimal(0)) -> Decimal:
    """Return the decimal under *key* without a round trip through ``float``, or *default*.

    >>> from lib_layered_settings.adapters.providers.memory import InMemorySettingsProvider
    >>> get_decimal(InMemorySettingsProvider(initial={"price": "19.990"}), "price")
    Decimal('19.990')
    """

    return store.get(key, default, as_type=Decimal)


def get_uuid(store: SettingsStore, key: str, default: UUID = _NIL_UUID) -> UUID:
    return store.get(key, default, as_type=UUID)


def get_timedelta(store: SettingsStore, key: str, default: timedelta = timedelta(0)) -> timedelta:
    """Return the duration under *key*, or *default*.

    ISO 8601 durations (``PT1H30M``), ``HH:MM:SS`` text and plain numbers of
    seconds are accepted.
    """

    return store.get(key, default, as_type=timedelta)


def get_settings(store: SettingsStore, cls: type[T], key: str | None = None) -> T:
    """Return the object stored under *key* (default: the class name) rebuilt as *cls*.

    A fresh ``cls()`` is returned when nothing usable is stored.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> from lib_layered_settings.adapters.providers.memory import InMemorySettingsProvider
    >>> @dataclass
    ... class Window:
    ...     width: int = 800
    ...     height: int = 600
    >>> store = InMemorySettingsProvider()
    >>> get_settings(store, Window)
    Window(width=800, height=600)
    >>> save_settings(store, Window(1024, 768))
    >>> get_settings(store, Window)
    Window(width=1024, height=768)
    """

    found, value = store.try_get(key or cls.__name__, as_type=cls)
    if found and value is not None:
        return value
    return cls()


def save_settings(store: SettingsStore, settings: Any, key: str | None = None) -> None:
    """Store *settings* under *key* (default: its class name)."""

    store.set(key or type(settings).__name__, settings)


async def get_settings_async(
    store: SettingsStore, cls: type[T], key: str | None = None, *, cancel: CancellationToken | None = None
) -> T:
    found, value = await store.try_get_async(key or cls.__name__, as_type=cls, cancel=cancel)
    if found and value is not None:
        return value
    return cls()


async def save_settings_async(
    store: SettingsStore, settings: Any, key: str | None = None, *, cancel: CancellationToken | None = None
) -> None:
    await store.set_async(key or type(settings).__name__, settings, cancel=cancel)


def _require_observable(store: SettingsStore) -> ObservableSettingsStore:
    if not isinstance(store, ObservableSettingsStore):
        raise UnsupportedOperation("This store does not support change notifications.")
    return store


def on_change(store: SettingsStore, key: str, handler: ChangeHandler) -> Subscription:
    """Call *handler* for changes to *key* (case-insensitive) and for every ``CLEARED``.

    Examples
    --------
    >>> from lib_layered_settings.adapters.providers.memory import InMemorySettingsProvider
    >>> store = InMemorySettingsProvider()
    >>> seen = []
    >>> subscription = on_change(store, "Theme", lambda event: seen.append(event.change_type.value))
    >>> store.set("theme", "dark"); store.set("other", 1); store.clear()
    >>> seen
    ['added', 'cleared']
    >>> subscription.close()
    """

    observable = _require_observable(store)

    def _filtered(event: SettingsChanged) -> None:
        if event.affects(key):
            handler(event)

    return observable.subscribe(_filtered)


def on_any_change(store: SettingsStore, handler: ChangeHandler) -> Subscription:
    """Call *handler* for every change published by *store*."""

    return _require_observable(store).subscribe(handler)


def get_or_set(store: SettingsStore, key: str, default: T) -> T:
    """Return the value under *key*, storing *default* first when it is absent."""

    return store.get_or_create(key, lambda: default, as_type=None if default is None else type(default))


def remove_range(store: SettingsStore, keys: Iterable[str]) -> int:
    """Remove each of *keys*; return how many were actually deleted."""

    return sum(1 for key in list(keys) if store.remove(key))


def keys_by_prefix(store: SettingsStore, prefix: str) -> list[str]:
    """Return the keys starting with *prefix* (case-insensitive).

    >>> from lib_layered_settings.adapters.providers.memory import InMemorySettingsProvider
    >>> store = InMemorySettingsProvider(initial={"db.host": "x", "DB.port": 1, "ui.theme": "dark"})
    >>> sorted(keys_by_prefix(store, "db."))
    ['DB.port', 'db.host']
    """

    folded = prefix.casefold()
    return [key for key in store.get_all_keys() if key.casefold().startswith(folded)]


def remove_by_prefix(store: SettingsStore, prefix: str) -> int:
    """Remove every key starting with *prefix*; return how many were deleted."""

    return remove_range(store, keys_by_prefix(store, prefix))
