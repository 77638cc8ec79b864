"""Change notification records and the observer list that delivers them.

Purpose
-------
Describe a single mutation of a provider as an immutable value and give every
provider (leaf or composite) the same explicit observer list to publish it.

Contents
--------
* :class:`ChangeType` – the four kinds of mutation.
* :class:`SettingsChanged` – frozen record delivered to subscribers.
* :class:`Subscription` – disposable handle returned by ``subscribe``.
* :class:`ChangeNotifier` – thread-safe observer list.

System Role
-----------
Leaf providers publish through their own notifier. The composite registers one
forwarding callback per member and re-publishes each record unmodified, so a
subscriber on the composite sees every member mutation with the originating
``provider_name`` intact.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

ChangeHandler = Callable[["SettingsChanged"], None]


class ChangeType(Enum):
    """Kind of mutation carried by :class:`SettingsChanged`."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    CLEARED = "cleared"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class SettingsChanged:
    """Immutable description of one mutation.

    Attributes
    ----------
    key:
        Affected key; ``""`` for :attr:`ChangeType.CLEARED`.
    change_type:
        The mutation kind.
    old_value / new_value:
        Values before and after the change, both in the form the provider
        stores them (text for the INI, XML and SQLite backends;
        ``None`` when not applicable).
    provider_name:
        Name of the provider whose contents changed.
    timestamp:
        Aware UTC timestamp taken when the record was created.

    Examples
    --------
    >>> event = SettingsChanged.cleared("InMemory")
    >>> (event.key, event.change_type.value, event.old_value, event.provider_name)
    ('', 'cleared', None, 'InMemory')
    """

    key: str
    change_type: ChangeType
    old_value: Any = None
    new_value: Any = None
    provider_name: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    @classmethod
    def cleared(cls, provider_name: str | None = None) -> "SettingsChanged":
        """Return the bulk-wipe record for *provider_name*."""

        return cls("", ChangeType.CLEARED, provider_name=provider_name)

    def affects(self, key: str) -> bool:
        """Return ``True`` when this record concerns *key*.

        Keys match case-insensitively; a clear affects every key.
        """

        if self.change_type is ChangeType.CLEARED:
            return True
        return self.key.casefold() == key.casefold()


class Subscription:
    """Handle that removes its handler when closed; closing twice is a no-op."""

    __slots__ = ("_unsubscribe", "_lock")

    def __init__(self, unsubscribe: Callable[[], None]) -> None:
        self._unsubscribe: Callable[[], None] | None = unsubscribe
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def close(self) -> None:
        with self._lock:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ChangeNotifier:
    """Observer list publishing :class:`SettingsChanged` records.

    Handlers run synchronously on the publishing thread, in registration
    order. The handler list is copied before delivery so handlers may
    unsubscribe themselves while being called.

    Examples
    --------
    >>> notifier = ChangeNotifier()
    >>> seen = []
    >>> handle = notifier.subscribe(seen.append)
    >>> notifier.publish(SettingsChanged("theme", ChangeType.ADDED, None, "dark", "InMemory"))
    >>> [event.key for event in seen]
    ['theme']
    >>> handle.close()
    >>> len(notifier)
    0
    """

    def __init__(self) -> None:
        self._handlers: list[ChangeHandler] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    def subscribe(self, handler: ChangeHandler) -> Subscription:
        if not callable(handler):
            raise TypeError("handler must be callable")
        with self._lock:
            self._handlers.append(handler)
        return Subscription(lambda: self.unsubscribe(handler))

    def unsubscribe(self, handler: ChangeHandler) -> bool:
        """Remove the first registration of *handler*; return whether one existed."""

        with self._lock:
            try:
                self._handlers.remove(handler)
            except ValueError:
                return False
            return True

    def publish(self, event: SettingsChanged) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            handler(event)

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()
