"""Composition root for ``lib_layered_settings``.

Purpose
-------
Provide the single entry point that wires providers, shared defaults, and the
composite resolution engine together. Applications describe their layers with
:class:`SettingsBuilder` and receive an object typed by the provider port.

Contents
--------
* :class:`SettingsBuilder` – fluent accumulator of providers and shared
  defaults.
* :func:`create_builder` – convenience factory.
* :func:`configure_default_store` / :func:`default_store` /
  :func:`reset_default_store` – explicit, single-assignment process-wide store.

System Role
-----------
This module connects adapters (files, SQLite, environment, memory) with the
composite while emitting structured observability signals. It is the canonical
location for adjusting defaults or wiring new adapters.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Mapping, TypeVar

from .adapters.env.default import ENVIRONMENT_PRIORITY, EnvironmentSettingsProvider
from .adapters.file_providers.ini import IniFileSettingsProvider
from .adapters.file_providers.structured import (
    BaseFileSettingsProvider,
    JsonFileSettingsProvider,
    TomlFileSettingsProvider,
    XmlFileSettingsProvider,
    YamlFileSettingsProvider,
)
from .adapters.providers.memory import InMemorySettingsProvider
from .adapters.sqlite.default import SqliteSettingsProvider
from .application.composite import CompositeSettingsProvider
from .application.ports import SettingsProvider, SettingsSerializer, SettingsStore
from .domain.errors import InvalidOperation
from .domain.options import (
    FileProviderOptions,
    IniProviderOptions,
    ProviderOptions,
    SettingsScope,
    SqliteProviderOptions,
    XmlProviderOptions,
)
from .observability import SettingsLog

O = TypeVar("O", bound=ProviderOptions)

Configure = Callable[[O], None]

DEFAULT_FILE_NAME = "settings.json"
IN_MEMORY_PRIORITY = 50

_LOG = SettingsLog("SettingsBuilder")


class SettingsBuilder:
    """Accumulate providers and shared defaults, then build a store.

    Why
    ----
    Hide adapter wiring behind a fluent surface so call sites only state which
    layers exist and how they rank.

    Examples
    --------
    >>> store = (
    ...     SettingsBuilder()
    ...     .use_in_memory("defaults", priority=0, initial={"theme": "light", "retries": 3})
    ...     .use_environment_variables(prefix="DEMO_", environ={"DEMO_THEME": "dark"})
    ...     .use_in_memory("session", priority=50)
    ...     .build()
    ... )
    >>> store.name, [provider.name for provider in store.providers]
    ('Composite', ['Environment:DEMO_', 'session', 'defaults'])
    >>> store.get("theme"), store.get("retries", 0)
    ('dark', 3)
    >>> store.set("theme", "blue")
    >>> store.get("theme")
    'dark'
    """

    def __init__(self) -> None:
        self._providers: list[SettingsProvider] = []
        self._write_target: SettingsProvider | None = None
        self._application_name: str | None = None
        self._organization_name: str | None = None
        self._serializer: SettingsSerializer | None = None

    # -- shared defaults --------------------------------------------------

    def with_application_name(self, name: str) -> "SettingsBuilder":
        """Set the application name used for file locations when options leave it unset."""

        self._application_name = _require_name(name, "application name")
        return self

    def with_organization_name(self, name: str) -> "SettingsBuilder":
        """Set the organization name used for file locations when options leave it unset."""

        self._organization_name = _require_name(name, "organization name")
        return self

    def with_serializer(self, serializer: SettingsSerializer) -> "SettingsBuilder":
        """Set the serializer handed to providers whose options leave it unset."""

        if serializer is None:
            raise ValueError("serializer must not be None")
        self._serializer = serializer
        return self

    # -- file providers ---------------------------------------------------

    def use_json_file(
        self,
        file_path: str = DEFAULT_FILE_NAME,
        *,
        scope: SettingsScope = SettingsScope.USER,
        priority: int = 0,
        configure: Configure[FileProviderOptions] | None = None,
    ) -> "SettingsBuilder":
        """Register a JSON document provider.

        Parameters
        ----------
        file_path:
            File name resolved under the *scope* directory, or an absolute path.
        scope:
            Storage tier that picks the base directory.
        priority:
            Read-resolution rank (higher wins).
        configure:
            Optional callback tuning the options before shared defaults apply.
        """

        options = FileProviderOptions(file_path=file_path, scope=scope, priority=priority)
        return self._add_file(JsonFileSettingsProvider, options, configure)

    def use_yaml_file(
        self,
        file_path: str = "settings.yaml",
        *,
        scope: SettingsScope = SettingsScope.USER,
        priority: int = 0,
        configure: Configure[FileProviderOptions] | None = None,
    ) -> "SettingsBuilder":
        options = FileProviderOptions(file_path=file_path, scope=scope, priority=priority)
        return self._add_file(YamlFileSettingsProvider, options, configure)

    def use_toml_file(
        self,
        file_path: str = "settings.toml",
        *,
        scope: SettingsScope = SettingsScope.USER,
        priority: int = 0,
        configure: Configure[FileProviderOptions] | None = None,
    ) -> "SettingsBuilder":
        options = FileProviderOptions(file_path=file_path, scope=scope, priority=priority)
        return self._add_file(TomlFileSettingsProvider, options, configure)

    def use_xml_file(
        self,
        file_path: str = "settings.xml",
        *,
        scope: SettingsScope = SettingsScope.USER,
        priority: int = 0,
        configure: Configure[XmlProviderOptions] | None = None,
    ) -> "SettingsBuilder":
        options = XmlProviderOptions(file_path=file_path, scope=scope, priority=priority)
        return self._add_file(XmlFileSettingsProvider, options, configure)

    def use_ini_file(
        self,
        file_path: str = "settings.ini",
        *,
        scope: SettingsScope = SettingsScope.USER,
        priority: int = 0,
        configure: Configure[IniProviderOptions] | None = None,
    ) -> "SettingsBuilder":
        options = IniProviderOptions(file_path=file_path, scope=scope, priority=priority)
        return self._add_file(IniFileSettingsProvider, options, configure)

    def use_sqlite(
        self,
        database_path: str = "settings.db",
        *,
        scope: SettingsScope = SettingsScope.USER,
        priority: int = 0,
        configure: Configure[SqliteProviderOptions] | None = None,
    ) -> "SettingsBuilder":
        """Register an SQLite provider (write-through, table ``Settings`` by default)."""

        options = SqliteProviderOptions(database_path=database_path, scope=scope, priority=priority)
        self._prepare(options, configure)
        return self.use_provider(SqliteSettingsProvider(options))

    # -- other providers --------------------------------------------------

    def use_environment_variables(
        self,
        prefix: str | None = None,
        priority: int = ENVIRONMENT_PRIORITY,
        environ: Mapping[str, str] | None = None,
    ) -> "SettingsBuilder":
        """Register the read-only, machine-scoped environment provider."""

        options = ProviderOptions(priority=priority, read_only=True, scope=SettingsScope.MACHINE)
        self._prepare(options, None)
        return self.use_provider(EnvironmentSettingsProvider(prefix, options, environ=environ))

    def use_in_memory(
        self,
        name: str | None = None,
        priority: int = IN_MEMORY_PRIORITY,
        initial: Mapping[str, Any] | None = None,
    ) -> "SettingsBuilder":
        """Register a session-scoped in-memory provider."""

        options = ProviderOptions(priority=priority, scope=SettingsScope.SESSION)
        self._prepare(options, None)
        return self.use_provider(InMemorySettingsProvider(name, options, initial=initial))

    def use_provider(self, provider: SettingsProvider) -> "SettingsBuilder":
        """Register an already constructed provider."""

        if provider is None:
            raise ValueError("provider must not be None")
        self._providers.append(provider)
        _LOG.debug("provider_registered", provider=provider.name, priority=provider.priority)
        return self

    def write_target(self, provider: SettingsProvider) -> "SettingsBuilder":
        """Route every composite write to *provider*."""

        if provider is None:
            raise ValueError("provider must not be None")
        self._write_target = provider
        return self

    @property
    def providers(self) -> tuple[SettingsProvider, ...]:
        """Registered providers in registration order."""

        return tuple(self._providers)

    # -- build ------------------------------------------------------------

    def build(self) -> SettingsStore:
        """Return the configured store.

        Zero providers registers the default user-scoped JSON file first. One
        provider without a write target is returned as is; anything else is
        wrapped in a :class:`CompositeSettingsProvider`.
        """

        if not self._providers:
            self.use_json_file(DEFAULT_FILE_NAME, scope=SettingsScope.USER)
        if len(self._providers) == 1 and self._write_target is None:
            store: SettingsStore = self._providers[0]
        else:
            store = CompositeSettingsProvider(self._providers, self._write_target)
        _LOG.info("store_built", store=store.name, providers=len(self._providers))  # type: ignore[attr-defined]
        return store

    def build_provider(self) -> SettingsProvider:
        """Like :meth:`build`, but guarantee the result satisfies :class:`SettingsProvider`."""

        store = self.build()
        if not isinstance(store, SettingsProvider):
            raise InvalidOperation("Could not build provider.")
        return store

    # -- helpers ----------------------------------------------------------

    def _add_file(
        self,
        provider_cls: type[BaseFileSettingsProvider],
        options: FileProviderOptions,
        configure: Callable[[Any], None] | None,
    ) -> "SettingsBuilder":
        self._prepare(options, configure)
        return self.use_provider(provider_cls(options))

    def _prepare(self, options: ProviderOptions, configure: Callable[[Any], None] | None) -> None:
        """Run *configure*, then fill option fields that are still unset from the shared defaults."""

        if configure is not None:
            configure(options)
        if options.application_name is None:
            options.application_name = self._application_name
        if options.organization_name is None:
            options.organization_name = self._organization_name
        if options.serializer is None:
            options.serializer = self._serializer


def _require_name(name: str, what: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"{what} must not be blank")
    return name


def create_builder() -> SettingsBuilder:
    """Return a fresh :class:`SettingsBuilder`."""

    return SettingsBuilder()


_DEFAULT_LOCK = threading.Lock()
_DEFAULT_STORE: SettingsStore | None = None


def configure_default_store(store: SettingsStore) -> None:
    """Install *store* as the process-wide default.

    Allowed once, before the default has been configured or used; afterwards
    :class:`InvalidOperation` is raised. Call :func:`reset_default_store` first
    to replace it.
    """

    global _DEFAULT_STORE
    if store is None:
        raise ValueError("store must not be None")
    with _DEFAULT_LOCK:
        if _DEFAULT_STORE is not None:
            raise InvalidOperation("The default settings store has already been configured.")
        _DEFAULT_STORE = store


def default_store() -> SettingsStore:
    """Return the process-wide store, building the default JSON store on first use."""

    global _DEFAULT_STORE
    with _DEFAULT_LOCK:
        if _DEFAULT_STORE is None:
            _DEFAULT_STORE = create_builder().use_json_file(DEFAULT_FILE_NAME, scope=SettingsScope.USER).build()
        return _DEFAULT_STORE


def reset_default_store() -> SettingsStore | None:
    """Detach and return the current default store so the caller can close it."""

    global _DEFAULT_STORE
    with _DEFAULT_LOCK:
        store, _DEFAULT_STORE = _DEFAULT_STORE, None
    return store
