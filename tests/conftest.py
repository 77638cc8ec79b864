"""Shared fixtures keeping every test away from real user and machine directories."""

from __future__ import annotations

from pathlib import Path

import pytest

from lib_layered_settings import reset_default_store
from lib_layered_settings.adapters.path_resolvers.default import SCOPE_OVERRIDES


@pytest.fixture(autouse=True)
def isolated_roots(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Point every scope root at a per-test sandbox directory."""

    roots: dict[str, Path] = {}
    for scope, variable in SCOPE_OVERRIDES.items():
        root = tmp_path / "roots" / scope.value
        monkeypatch.setenv(variable, str(root))
        roots[scope.value] = root
    return roots


@pytest.fixture(autouse=True)
def fresh_default_store():
    """Detach and close whatever default store a test configured or built."""

    reset_default_store()
    yield
    store = reset_default_store()
    if store is not None:
        store.close()
