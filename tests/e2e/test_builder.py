"""End-to-end builder scenarios wiring real providers into a store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from lib_layered_settings import (
    CompositeSettingsProvider,
    FileProviderOptions,
    InMemorySettingsProvider,
    InvalidOperation,
    JsonFileSettingsProvider,
    JsonSettingsSerializer,
    ReadOnlyWriteTarget,
    SettingsBuilder,
    SettingsScope,
    SettingsProvider,
    configure_default_store,
    create_builder,
    default_store,
    reset_default_store,
)
from tests.support import Window


def test_empty_builder_yields_default_json_store(isolated_roots: dict[str, Path]) -> None:
    store = create_builder().with_application_name("Demo").build()
    assert isinstance(store, JsonFileSettingsProvider)
    assert store.file_path == isolated_roots["user"] / "Demo" / "settings.json"
    store.set("theme", "dark")
    assert store.get("theme") == "dark"
    store.close()
    assert json.loads(store.file_path.read_text(encoding="utf-8")) == {"theme": "dark"}


def test_single_provider_without_target_is_returned_as_is() -> None:
    provider = InMemorySettingsProvider("only")
    assert SettingsBuilder().use_provider(provider).build() is provider


def test_single_provider_with_target_is_wrapped() -> None:
    provider = InMemorySettingsProvider("only")
    store = SettingsBuilder().use_provider(provider).write_target(provider).build()
    assert isinstance(store, CompositeSettingsProvider)
    assert store.write_target is provider


def test_type_mismatch_returns_caller_default() -> None:
    store = create_builder().use_in_memory().build()
    store.set("k", "text")
    assert store.get("k", 42) == 42


def test_layered_store_across_formats(tmp_path: Path) -> None:
    defaults = tmp_path / "defaults.toml"
    defaults.write_text('[database]\nhost = "localhost"\nport = 5432\n\n[ui]\ntheme = "light"\n', encoding="utf-8")
    user = tmp_path / "user.json"
    environ = {"DEMO_DATABASE_HOST": "db.prod"}

    store = (
        create_builder()
        .use_toml_file(str(defaults), priority=0)
        .use_json_file(str(user), priority=50)
        .use_environment_variables(prefix="DEMO_", environ=environ)
        .build()
    )
    assert [provider.name for provider in store.providers] == [
        "Environment:DEMO_",
        "JsonFile:user.json",
        "TomlFile:defaults.toml",
    ]
    assert store.get("database.host") == "db.prod"
    assert store.get("database.port", 0) == 5432

    store.set("ui.theme", "dark")
    assert store.get("ui.theme") == "dark"
    store.close()

    assert json.loads(user.read_text(encoding="utf-8")) == {"ui.theme": "dark"}
    assert "light" in defaults.read_text(encoding="utf-8")


def test_every_format_persists_through_builder(tmp_path: Path) -> None:
    builder = (
        create_builder()
        .use_json_file(str(tmp_path / "s.json"), priority=6)
        .use_yaml_file(str(tmp_path / "s.yaml"), priority=5)
        .use_toml_file(str(tmp_path / "s.toml"), priority=4)
        .use_xml_file(str(tmp_path / "s.xml"), priority=3)
        .use_ini_file(str(tmp_path / "s.ini"), priority=2)
        .use_sqlite(str(tmp_path / "s.db"), priority=1)
    )
    for provider in builder.providers:
        provider.set("window", Window(320, 240))
        provider.set("retries", 4)
    store = builder.build()
    store.close()

    reopened = (
        create_builder()
        .use_json_file(str(tmp_path / "s.json"))
        .use_yaml_file(str(tmp_path / "s.yaml"))
        .use_toml_file(str(tmp_path / "s.toml"))
        .use_xml_file(str(tmp_path / "s.xml"))
        .use_ini_file(str(tmp_path / "s.ini"))
        .use_sqlite(str(tmp_path / "s.db"))
    )
    for provider in reopened.providers:
        assert provider.get("window", as_type=Window) == Window(320, 240), provider.name
        assert provider.get("retries", 0) == 4, provider.name
        provider.close()


def test_read_only_write_target_blocks_writes() -> None:
    locked = InMemorySettingsProvider("locked")
    locked.options.read_only = True
    store = create_builder().use_in_memory("session").use_provider(locked).write_target(locked).build()
    with pytest.raises(ReadOnlyWriteTarget):
        store.set("k", 1)


def test_configure_callback_runs_before_shared_defaults(isolated_roots: dict[str, Path]) -> None:
    serializer = JsonSettingsSerializer(sort_keys=True)

    def configure(options: FileProviderOptions) -> None:
        options.organization_name = "Custom"
        options.create_if_not_exists = False

    builder = (
        create_builder()
        .with_application_name("Demo")
        .with_organization_name("Acme")
        .with_serializer(serializer)
        .use_json_file("a.json", configure=configure)
        .use_json_file("b.json", scope=SettingsScope.MACHINE)
    )
    first, second = builder.providers
    assert first.options.organization_name == "Custom"
    assert first.options.application_name == "Demo"
    assert first.serializer is serializer
    assert not first.file_path.exists()
    assert second.file_path == isolated_roots["machine"] / "Acme" / "Demo" / "b.json"
    assert second.file_path.exists()


def test_in_memory_and_environment_defaults() -> None:
    builder = create_builder().use_in_memory().use_environment_variables(environ={})
    memory_provider, env_provider = builder.providers
    assert (memory_provider.priority, memory_provider.scope) == (50, SettingsScope.SESSION)
    assert (env_provider.priority, env_provider.scope, env_provider.is_read_only) == (100, SettingsScope.MACHINE, True)


def test_blank_names_and_missing_providers_rejected() -> None:
    builder = create_builder()
    with pytest.raises(ValueError):
        builder.with_application_name("  ")
    with pytest.raises(ValueError):
        builder.with_organization_name("")
    with pytest.raises(ValueError):
        builder.use_provider(None)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        builder.write_target(None)  # type: ignore[arg-type]


def test_build_provider_checks_the_port() -> None:
    built = create_builder().use_in_memory().build_provider()
    assert isinstance(built, SettingsProvider)

    class HalfStore(InMemorySettingsProvider):
        reload = None  # type: ignore[assignment]

    builder = create_builder().use_provider(HalfStore())
    with pytest.raises(InvalidOperation, match="Could not build provider"):
        builder.build_provider()


def test_default_store_is_single_assignment() -> None:
    store = InMemorySettingsProvider("process")
    configure_default_store(store)
    assert default_store() is store
    with pytest.raises(InvalidOperation):
        configure_default_store(InMemorySettingsProvider())
    assert reset_default_store() is store
    configure_default_store(InMemorySettingsProvider("replacement"))
    assert default_store().name == "replacement"


def test_default_store_builds_json_store_lazily(isolated_roots: dict[str, Path]) -> None:
    store = default_store()
    assert default_store() is store
    assert isinstance(store, JsonFileSettingsProvider)
    assert store.file_path.parent.parent == isolated_roots["user"]
    with pytest.raises(InvalidOperation):
        configure_default_store(InMemorySettingsProvider())
