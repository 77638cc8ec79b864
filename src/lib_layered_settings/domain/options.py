"""Provider options and the storage scope enumeration.

Purpose
-------
Hold the knobs each provider is constructed with. Options are plain mutable
dataclasses so builder ``configure`` callbacks can adjust them in place before
the provider is created.

Contents
--------
* :class:`SettingsScope` – logical storage tier of a provider.
* :class:`ProviderOptions` – fields shared by every provider.
* :class:`FileProviderOptions` – file location, creation, retry and atomic
  write behaviour for file-backed providers.
* :class:`XmlProviderOptions` / :class:`IniProviderOptions` – format specifics.
* :class:`SqliteProviderOptions` – database location and table name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..application.ports import SettingsSerializer


class SettingsScope(Enum):
    """Storage tier a provider's backing location corresponds to.

    The composite never inspects the scope; file providers use it to pick a
    base directory (see :mod:`lib_layered_settings.adapters.path_resolvers.default`).
    """

    USER = "user"
    MACHINE = "machine"
    APPLICATION = "application"
    SESSION = "session"


@dataclass
class ProviderOptions:
    """Fields shared by every provider.

    ``application_name``, ``organization_name`` and ``serializer`` left as
    ``None`` are filled from the builder's shared defaults.
    """

    priority: int = 0
    read_only: bool = False
    scope: SettingsScope = SettingsScope.USER
    application_name: str | None = None
    organization_name: str | None = None
    serializer: "SettingsSerializer | None" = None


@dataclass
class FileProviderOptions(ProviderOptions):
    """Options for providers backed by a single document on disk.

    ``watch_for_changes`` reloads the provider when another process edits the
    file; ``reload_debounce`` is the quiet period in seconds before it does.
    """

    file_path: str = "settings.json"
    create_if_not_exists: bool = True
    max_retry_attempts: int = 3
    retry_delay: float = 0.1
    atomic_writes: bool = True
    encoding: str = "utf-8"
    watch_for_changes: bool = False
    reload_debounce: float = 0.1


@dataclass
class XmlProviderOptions(FileProviderOptions):
    file_path: str = "settings.xml"
    root_element: str = "Settings"


@dataclass
class IniProviderOptions(FileProviderOptions):
    file_path: str = "settings.ini"
    default_section: str = "Settings"


@dataclass
class SqliteProviderOptions(ProviderOptions):
    database_path: str = "settings.db"
    table_name: str = "Settings"
    create_if_not_exists: bool = True
    timeout: float = 5.0
