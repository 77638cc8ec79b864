"""Public package surface for ``lib_layered_settings``.

One key-value abstraction over several local backends (JSON, YAML, TOML, XML,
INI, SQLite, environment variables, in-memory) plus a composite that resolves
reads by priority and routes writes to a single target. Start with
:func:`create_builder`.
"""

from __future__ import annotations

from .adapters.env.default import EnvironmentSettingsProvider, default_env_prefix
from .adapters.file_providers.ini import IniFileSettingsProvider
from .adapters.file_providers.structured import (
    JsonFileSettingsProvider,
    TomlFileSettingsProvider,
    XmlFileSettingsProvider,
    YamlFileSettingsProvider,
)
from .adapters.path_resolvers.default import DefaultPathResolver
from .adapters.providers.base import BaseSettingsProvider
from .adapters.providers.memory import InMemorySettingsProvider
from .adapters.serializers.default import DEFAULT_SERIALIZER, JsonSettingsSerializer
from .adapters.sqlite.default import SqliteSettingsProvider
from .application.composite import CompositeSettingsProvider
from .application.extensions import (
    get_bool,
    get_datetime,
    get_decimal,
    get_float,
    get_int,
    get_or_set,
    get_settings,
    get_settings_async,
    get_string,
    get_timedelta,
    get_uuid,
    keys_by_prefix,
    on_any_change,
    on_change,
    remove_by_prefix,
    remove_range,
    save_settings,
    save_settings_async,
)
from .application.ports import ObservableSettingsStore, SettingsProvider, SettingsSerializer, SettingsStore
from .core import (
    SettingsBuilder,
    configure_default_store,
    create_builder,
    default_store,
    reset_default_store,
)
from .domain.cancellation import CancellationToken
from .domain.errors import (
    InvalidFormat,
    InvalidOperation,
    NoWritableProvider,
    NotFound,
    OperationCancelled,
    ProviderClosed,
    ReadOnlyWriteTarget,
    SettingsError,
    UnsupportedOperation,
)
from .domain.events import ChangeType, SettingsChanged, Subscription
from .domain.options import (
    FileProviderOptions,
    IniProviderOptions,
    ProviderOptions,
    SettingsScope,
    SqliteProviderOptions,
    XmlProviderOptions,
)
from .observability import bind_trace_id, get_logger, traced

__all__ = [
    "BaseSettingsProvider",
    "CancellationToken",
    "ChangeType",
    "CompositeSettingsProvider",
    "DEFAULT_SERIALIZER",
    "DefaultPathResolver",
    "EnvironmentSettingsProvider",
    "FileProviderOptions",
    "InMemorySettingsProvider",
    "IniFileSettingsProvider",
    "IniProviderOptions",
    "InvalidFormat",
    "InvalidOperation",
    "JsonFileSettingsProvider",
    "JsonSettingsSerializer",
    "NoWritableProvider",
    "NotFound",
    "ObservableSettingsStore",
    "OperationCancelled",
    "ProviderClosed",
    "ProviderOptions",
    "ReadOnlyWriteTarget",
    "SettingsBuilder",
    "SettingsChanged",
    "SettingsError",
    "SettingsProvider",
    "SettingsScope",
    "SettingsSerializer",
    "SettingsStore",
    "SqliteProviderOptions",
    "SqliteSettingsProvider",
    "Subscription",
    "TomlFileSettingsProvider",
    "UnsupportedOperation",
    "XmlFileSettingsProvider",
    "XmlProviderOptions",
    "YamlFileSettingsProvider",
    "bind_trace_id",
    "configure_default_store",
    "create_builder",
    "default_env_prefix",
    "default_store",
    "get_bool",
    "get_datetime",
    "get_decimal",
    "get_float",
    "get_int",
    "get_logger",
    "get_or_set",
    "get_settings",
    "get_settings_async",
    "get_string",
    "get_timedelta",
    "get_uuid",
    "keys_by_prefix",
    "on_any_change",
    "on_change",
    "remove_by_prefix",
    "remove_range",
    "reset_default_store",
    "save_settings",
    "save_settings_async",
    "traced",
]
