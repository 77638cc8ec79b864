"""Composite provider: priority-ordered resolution over several providers.

Purpose
-------
Bind several providers into one logical store. Reads fall through members in
descending priority until one answers; writes go to a single write target;
change events from every member are forwarded to composite subscribers.

Contents
--------
* :class:`CompositeSettingsProvider` – the resolution engine.
* :data:`COMPOSITE_NAME` – the fixed provider name.

Priority Conventions
--------------------
``>= 100``  overrides (environment variables)
``50–99``   user-writable stores
``0–49``    shipped defaults

System Role
-----------
The composite satisfies the same port it consumes
(:class:`~lib_layered_settings.application.ports.SettingsProvider`), so a
composite can itself be a member of another composite. Members are sorted once
at construction and never change afterwards, so the composite needs no lock of
its own; thread safety is delegated to the members.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Iterable

from ..domain.cancellation import CancellationToken, check_cancelled
from ..domain.errors import (
    NoWritableProvider,
    OperationCancelled,
    ProviderClosed,
    ReadOnlyWriteTarget,
)
from ..domain.events import ChangeHandler, ChangeNotifier, SettingsChanged, Subscription
from ..domain.keys import require_key, unique_keys
from ..domain.options import SettingsScope
from ..observability import SettingsLog
from .ports import Factory, SettingsProvider, providers_by_priority

COMPOSITE_NAME = "Composite"

_LOG = SettingsLog(COMPOSITE_NAME)


class CompositeSettingsProvider:
    """Priority-ordered view over several providers.

    Why
    ----
    Applications want one store where environment overrides beat user files,
    which in turn beat shipped defaults, without each call site knowing about
    the layers.

    Examples
    --------
    >>> from lib_layered_settings.adapters.providers.memory import InMemorySettingsProvider
    >>> from lib_layered_settings.domain.options import ProviderOptions
    >>> defaults = InMemorySettingsProvider("defaults", ProviderOptions(priority=0), initial={"theme": "light", "lang": "en"})
    >>> user = InMemorySettingsProvider("user", ProviderOptions(priority=50), initial={"theme": "dark"})
    >>> store = CompositeSettingsProvider([defaults, user])
    >>> store.get("theme"), store.get("lang")
    ('dark', 'en')
    >>> store.set("lang", "de")
    >>> user.get("lang")
    'de'
    """

    def __init__(self, providers: Iterable[SettingsProvider], write_target: SettingsProvider | None = None) -> None:
        ordered = providers_by_priority(providers)
        if not ordered:
            raise ValueError("At least one provider is required.")
        self._providers: tuple[SettingsProvider, ...] = tuple(ordered)
        self._write_target = write_target
        self._notifier = ChangeNotifier()
        self._closed = False
        self._subscriptions = [provider.subscribe(self._forward) for provider in self._providers]
        _LOG.debug(
            "composite_created",
            members=[provider.name for provider in self._providers],
            write_target=write_target.name if write_target is not None else None,
        )

    def __repr__(self) -> str:
        members = ", ".join(provider.name for provider in self._providers)
        return f"CompositeSettingsProvider([{members}])"

    # -- metadata ---------------------------------------------------------

    @property
    def name(self) -> str:
        return COMPOSITE_NAME

    @property
    def providers(self) -> tuple[SettingsProvider, ...]:
        """Members in resolution order (highest priority first)."""

        return self._providers

    @property
    def write_target(self) -> SettingsProvider | None:
        """The explicitly configured write target, if any."""

        return self._write_target

    @property
    def priority(self) -> int:
        return max(provider.priority for provider in self._providers)

    @property
    def is_read_only(self) -> bool:
        if self._write_target is not None:
            return self._write_target.is_read_only
        return all(provider.is_read_only for provider in self._providers)

    @property
    def scope(self) -> SettingsScope:
        if self._write_target is not None:
            return self._write_target.scope
        return self._providers[0].scope

    @property
    def count(self) -> int:
        return len(self.get_all_keys())

    @property
    def closed(self) -> bool:
        return self._closed

    # -- observation ------------------------------------------------------

    def subscribe(self, handler: ChangeHandler) -> Subscription:
        return self._notifier.subscribe(handler)

    def unsubscribe(self, handler: ChangeHandler) -> bool:
        return self._notifier.unsubscribe(handler)

    def _forward(self, event: SettingsChanged) -> None:
        self._notifier.publish(event)

    # -- resolution -------------------------------------------------------

    def resolve_write_target(self) -> SettingsProvider:
        """Return the provider that receives writes right now.

        Raises
        ------
        ReadOnlyWriteTarget
            The explicit write target is read-only.
        NoWritableProvider
            No explicit target is configured and every member is read-only.
        """

        self._ensure_open()
        if self._write_target is not None:
            if self._write_target.is_read_only:
                raise ReadOnlyWriteTarget(f"The configured write target '{self._write_target.name}' is read-only.")
            return self._write_target
        for provider in self._providers:
            if not provider.is_read_only:
                _LOG.debug("write_target_resolved", target=provider.name)
                return provider
        raise NoWritableProvider("No writable provider is available in the composite.")

    def _ensure_open(self) -> None:
        if self._closed:
            raise ProviderClosed(f"Provider '{COMPOSITE_NAME}' has been closed.")

    # -- reads ------------------------------------------------------------

    def try_get(self, key: str, *, as_type: Any = None) -> tuple[bool, Any]:
        require_key(key)
        self._ensure_open()
        for provider in self._providers:
            found, value = provider.try_get(key, as_type=as_type)
            if found and value is not None:
                return True, value
        return False, None

    def get(self, key: str, default: Any = None, *, as_type: Any = None) -> Any:
        target = as_type if as_type is not None else (None if default is None else type(default))
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
        self.set(key, value)
        return value

    def contains_key(self, key: str) -> bool:
        require_key(key)
        self._ensure_open()
        return any(provider.contains_key(key) for provider in self._providers)

    def get_all_keys(self) -> list[str]:
        self._ensure_open()
        return unique_keys(key for provider in self._providers for key in provider.get_all_keys())

    # -- writes -----------------------------------------------------------

    def set(self, key: str, value: Any) -> None:
        require_key(key)
        self.resolve_write_target().set(key, value)

    def remove(self, key: str) -> bool:
        require_key(key)
        return self.resolve_write_target().remove(key)

    def clear(self) -> None:
        self.resolve_write_target().clear()

    # -- persistence and lifecycle ----------------------------------------

    def flush(self) -> None:
        """Flush every member; the first failure is raised after all were attempted."""

        self._ensure_open()
        self._for_each_member("flush", lambda provider: provider.flush())

    def reload(self) -> None:
        """Reload every member; the first failure is raised after all were attempted."""

        self._ensure_open()
        self._for_each_member("reload", lambda provider: provider.reload())

    def close(self) -> None:
        """Detach from every member, then close each of them.

        Every member is attempted; the first failure is raised afterwards. Any
        later operation raises :class:`ProviderClosed`.
        """

        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions.clear()
        self._notifier.clear()
        self._for_each_member("close", lambda provider: provider.close())
        _LOG.debug("provider_closed")

    def __enter__(self) -> "CompositeSettingsProvider":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _for_each_member(self, operation: str, action: Callable[[SettingsProvider], None]) -> None:
        first_error: Exception | None = None
        for provider in self._providers:
            try:
                action(provider)
            except OperationCancelled:
                raise
            except Exception as exc:
                _LOG.failure(f"member_{operation}_failed", exc, member=provider.name)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    async def _for_each_member_async(
        self,
        operation: str,
        action: Callable[[SettingsProvider], Awaitable[None]],
        cancel: CancellationToken | None,
    ) -> None:
        first_error: Exception | None = None
        for provider in self._providers:
            check_cancelled(cancel)
            try:
                await action(provider)
            except OperationCancelled:
                raise
            except Exception as exc:
                _LOG.failure(f"member_{operation}_failed", exc, member=provider.name)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    # -- async ------------------------------------------------------------

    async def try_get_async(
        self, key: str, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> tuple[bool, Any]:
        require_key(key)
        self._ensure_open()
        for provider in self._providers:
            check_cancelled(cancel)
            found, value = await provider.try_get_async(key, as_type=as_type, cancel=cancel)
            if found and value is not None:
                return True, value
        return False, None

    async def get_async(
        self, key: str, default: Any = None, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> Any:
        target = as_type if as_type is not None else (None if default is None else type(default))
        found, value = await self.try_get_async(key, as_type=target, cancel=cancel)
        return value if found else default

    async def get_or_default_async(
        self, key: str, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> Any:
        _, value = await self.try_get_async(key, as_type=as_type, cancel=cancel)
        return value

    async def get_or_create_async(
        self, key: str, factory: Factory, *, as_type: Any = None, cancel: CancellationToken | None = None
    ) -> Any:
        check_cancelled(cancel)
        if not callable(factory):
            raise TypeError("factory must be callable")
        found, existing = await self.try_get_async(key, as_type=as_type, cancel=cancel)
        if found:
            return existing
        value = factory()
        if inspect.isawaitable(value):
            value = await value
        await self.set_async(key, value, cancel=cancel)
        return value

    async def set_async(self, key: str, value: Any, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        require_key(key)
        await self.resolve_write_target().set_async(key, value, cancel=cancel)

    async def remove_async(self, key: str, *, cancel: CancellationToken | None = None) -> bool:
        check_cancelled(cancel)
        require_key(key)
        return await self.resolve_write_target().remove_async(key, cancel=cancel)

    async def clear_async(self, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        await self.resolve_write_target().clear_async(cancel=cancel)

    async def flush_async(self, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        self._ensure_open()
        await self._for_each_member_async(
            "flush", lambda provider: provider.flush_async(cancel=cancel), cancel
        )

    async def reload_async(self, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        self._ensure_open()
        await self._for_each_member_async(
            "reload", lambda provider: provider.reload_async(cancel=cancel), cancel
        )
