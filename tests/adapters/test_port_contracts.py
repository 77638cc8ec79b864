"""Adapter contract tests for the application-layer ports.

Every shipped provider (and the composite) must satisfy
:class:`~lib_layered_settings.application.ports.SettingsProvider` so the
builder can hand them out interchangeably and nest composites.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from lib_layered_settings import (
    CompositeSettingsProvider,
    EnvironmentSettingsProvider,
    FileProviderOptions,
    IniFileSettingsProvider,
    IniProviderOptions,
    InMemorySettingsProvider,
    JsonFileSettingsProvider,
    JsonSettingsSerializer,
    ProviderOptions,
    SqliteProviderOptions,
    SqliteSettingsProvider,
    TomlFileSettingsProvider,
    XmlFileSettingsProvider,
    XmlProviderOptions,
    YamlFileSettingsProvider,
)
from lib_layered_settings.application import ports
from lib_layered_settings.testing import FailingSettingsProvider

FACTORIES: dict[str, Callable[[Path], object]] = {
    "memory": lambda tmp: InMemorySettingsProvider(),
    "environment": lambda tmp: EnvironmentSettingsProvider(environ={}),
    "json": lambda tmp: JsonFileSettingsProvider(FileProviderOptions(file_path=str(tmp / "s.json"))),
    "yaml": lambda tmp: YamlFileSettingsProvider(FileProviderOptions(file_path=str(tmp / "s.yaml"))),
    "toml": lambda tmp: TomlFileSettingsProvider(FileProviderOptions(file_path=str(tmp / "s.toml"))),
    "xml": lambda tmp: XmlFileSettingsProvider(XmlProviderOptions(file_path=str(tmp / "s.xml"))),
    "ini": lambda tmp: IniFileSettingsProvider(IniProviderOptions(file_path=str(tmp / "s.ini"))),
    "sqlite": lambda tmp: SqliteSettingsProvider(SqliteProviderOptions(database_path=str(tmp / "s.db"))),
    "failing": lambda tmp: FailingSettingsProvider(fail_on=()),
    "composite": lambda tmp: CompositeSettingsProvider([InMemorySettingsProvider()]),
}


@pytest.mark.parametrize("kind", sorted(FACTORIES))
def test_provider_satisfies_ports(kind: str, tmp_path: Path) -> None:
    provider = FACTORIES[kind](tmp_path)
    try:
        assert isinstance(provider, ports.SettingsStore)
        assert isinstance(provider, ports.ObservableSettingsStore)
        assert isinstance(provider, ports.SettingsProvider)
        assert isinstance(provider.name, str) and provider.name
    finally:
        provider.close()  # type: ignore[attr-defined]


def test_default_serializer_satisfies_port() -> None:
    assert isinstance(JsonSettingsSerializer(), ports.SettingsSerializer)


def test_plain_object_is_not_a_provider() -> None:
    assert not isinstance(object(), ports.SettingsProvider)
    assert not isinstance({"a": 1}, ports.SettingsStore)


def test_providers_by_priority_is_stable() -> None:
    low = InMemorySettingsProvider("low", ProviderOptions(priority=1))
    first = InMemorySettingsProvider("first", ProviderOptions(priority=5))
    second = InMemorySettingsProvider("second", ProviderOptions(priority=5))
    ordered = ports.providers_by_priority([low, first, second])
    assert [provider.name for provider in ordered] == ["first", "second", "low"]
