"""Environment provider scenarios: prefix filtering, key mapping, read-only guard."""

from __future__ import annotations

import pytest

from lib_layered_settings import (
    EnvironmentSettingsProvider,
    ProviderOptions,
    SettingsScope,
    UnsupportedOperation,
    default_env_prefix,
)
from lib_layered_settings.adapters.env.default import env_name_for


@pytest.fixture()
def environ() -> dict[str, str]:
    return {
        "MYAPP_DATABASE_HOST": "db.local",
        "MYAPP_DATABASE_PORT": "5432",
        "MYAPP_FEATURE_ENABLED": "true",
        "myapp_lower": "kept",
        "OTHER_VALUE": "ignored",
    }


def test_prefix_filters_and_strips(environ: dict[str, str]) -> None:
    provider = EnvironmentSettingsProvider("MYAPP_", environ=environ)
    assert sorted(provider.get_all_keys()) == [
        "database.host",
        "database.port",
        "feature.enabled",
        "lower",
    ]
    assert not provider.contains_key("other.value")


def test_dotted_keys_map_to_upper_snake_case(environ: dict[str, str]) -> None:
    provider = EnvironmentSettingsProvider("MYAPP_", environ=environ)
    assert provider.get("database.host") == "db.local"
    assert provider.get("Database.Port", 0) == 5432
    assert provider.get("feature:enabled", False) is True
    assert provider.get("LOWER") == "kept"


def test_without_prefix_every_variable_is_visible(environ: dict[str, str]) -> None:
    provider = EnvironmentSettingsProvider(environ=environ)
    assert provider.name == "Environment"
    assert provider.get("other.value") == "ignored"
    assert provider.count == len(environ)


def test_metadata_forces_read_only_machine_scope() -> None:
    provider = EnvironmentSettingsProvider("X_", ProviderOptions(priority=5, scope=SettingsScope.USER), environ={})
    assert provider.name == "Environment:X_"
    assert provider.priority == 5
    assert provider.is_read_only is True
    assert provider.scope is SettingsScope.MACHINE


def test_default_priority_is_one_hundred() -> None:
    assert EnvironmentSettingsProvider(environ={}).priority == 100


def test_writes_are_rejected(environ: dict[str, str]) -> None:
    provider = EnvironmentSettingsProvider("MYAPP_", environ=environ)
    with pytest.raises(UnsupportedOperation, match="read-only"):
        provider.set("database.host", "elsewhere")
    with pytest.raises(UnsupportedOperation):
        provider.remove("database.host")
    with pytest.raises(UnsupportedOperation):
        provider.clear()
    assert environ["MYAPP_DATABASE_HOST"] == "db.local"


def test_get_or_create_returns_factory_value_without_storing(environ: dict[str, str]) -> None:
    provider = EnvironmentSettingsProvider("MYAPP_", environ=environ)
    assert provider.get_or_create("cache.size", lambda: 64) == 64
    assert not provider.contains_key("cache.size")


def test_reload_picks_up_new_variables(environ: dict[str, str]) -> None:
    provider = EnvironmentSettingsProvider("MYAPP_", environ=environ)
    environ["MYAPP_LATE_VALUE"] = "arrived"
    assert provider.get("late.value") is None
    provider.reload()
    assert provider.get("late.value") == "arrived"


def test_reads_process_environment_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLS_TEST_ONLY_FLAG", "on")
    provider = EnvironmentSettingsProvider("LLS_TEST_ONLY_")
    assert provider.get("flag") == "on"


@pytest.mark.parametrize(
    "slug, expected",
    [("my-app", "MY_APP_"), ("tool", "TOOL_"), ("a-b-c", "A_B_C_")],
)
def test_default_env_prefix(slug: str, expected: str) -> None:
    assert default_env_prefix(slug) == expected


@pytest.mark.parametrize(
    "key, expected",
    [("database.host", "DATABASE_HOST"), ("Logging:Level", "LOGGING_LEVEL"), ("plain", "PLAIN")],
)
def test_env_name_for(key: str, expected: str) -> None:
    assert env_name_for(key) == expected
