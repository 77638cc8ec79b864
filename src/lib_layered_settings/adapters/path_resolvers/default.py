"""Filesystem path resolution for settings scopes.

Purpose
-------
Map a :class:`~lib_layered_settings.domain.options.SettingsScope` plus the
application and organisation names onto a concrete directory. The adapter is
the only component that understands operating-system conventions.

Contents
--------
* :class:`DefaultPathResolver` – resolves base directories and file paths.
* :func:`sanitize_name` – strips characters that are invalid in file names.

System Role
-----------
File and SQLite providers call :meth:`DefaultPathResolver.file_path` for
relative paths. Environment overrides (``LIB_LAYERED_SETTINGS_USER_ROOT`` and
friends) let tests and portable deployments relocate every scope.
"""

from __future__ import annotations

import os
import re
import sys
import tempfile
from pathlib import Path

from ...domain.options import SettingsScope
from ...observability import SettingsLog

DEFAULT_APPLICATION_NAME = "lib_layered_settings"

#: Environment variables overriding the base directory of each scope.
SCOPE_OVERRIDES: dict[SettingsScope, str] = {
    SettingsScope.USER: "LIB_LAYERED_SETTINGS_USER_ROOT",
    SettingsScope.MACHINE: "LIB_LAYERED_SETTINGS_MACHINE_ROOT",
    SettingsScope.APPLICATION: "LIB_LAYERED_SETTINGS_APP_ROOT",
    SettingsScope.SESSION: "LIB_LAYERED_SETTINGS_SESSION_ROOT",
}

_LOG = SettingsLog("PathResolver")

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]+')


def sanitize_name(name: str | None) -> str:
    """Return *name* with path-hostile characters collapsed to underscores.

    Examples
    --------
    >>> sanitize_name('Acme: Tools/Beta')
    'Acme_ Tools_Beta'
    >>> sanitize_name('')
    'App'
    """

    if not name:
        return "App"
    parts = [part for part in _INVALID_CHARS.split(name) if part]
    return "_".join(parts) or "App"


class DefaultPathResolver:
    """Resolve directories for each settings scope.

    Why
    ----
    Centralise path discovery so providers stay platform-agnostic and easy to
    test.
    """

    def __init__(
        self,
        *,
        application_name: str | None = None,
        organization_name: str | None = None,
        env: dict[str, str] | None = None,
        platform: str | None = None,
    ) -> None:
        """Store context required to resolve filesystem locations.

        Parameters
        ----------
        application_name / organization_name:
            Naming context injected into platform-specific directory structures.
            The application name defaults to the entry script name.
        env:
            Optional environment mapping that overrides ``os.environ`` values
            (useful for deterministic tests).
        platform:
            Platform identifier (``sys.platform`` clone). Defaults to the
            current interpreter platform.
        """

        self.application_name = application_name or _default_application_name()
        self.organization_name = organization_name
        self.env = {**os.environ, **(env or {})}
        self.platform = platform or sys.platform

    def base_path(self, scope: SettingsScope) -> Path:
        """Return the directory that holds settings for *scope*.

        Examples
        --------
        >>> resolver = DefaultPathResolver(application_name="Demo", organization_name="Acme",
        ...     env={"LIB_LAYERED_SETTINGS_USER_ROOT": "/srv/cfg"}, platform="linux")
        >>> resolver.base_path(SettingsScope.USER).as_posix()
        '/srv/cfg/Acme/Demo'
        """

        override = self.env.get(SCOPE_OVERRIDES[scope])
        if scope is SettingsScope.USER:
            root = Path(override) if override else self._user_root()
            return self._app_dir(root)
        if scope is SettingsScope.MACHINE:
            root = Path(override) if override else self._machine_root()
            return self._app_dir(root)
        if scope is SettingsScope.APPLICATION:
            return Path(override) if override else _entry_directory()
        if scope is SettingsScope.SESSION:
            return Path(override) if override else Path(tempfile.gettempdir())
        raise ValueError(f"Unknown settings scope: {scope!r}")

    def file_path(self, file_name: str | os.PathLike[str], scope: SettingsScope) -> Path:
        """Return *file_name* resolved under the base directory of *scope*.

        Absolute paths are returned unchanged.

        Examples
        --------
        >>> resolver = DefaultPathResolver(application_name="Demo",
        ...     env={"LIB_LAYERED_SETTINGS_SESSION_ROOT": "/tmp/session"}, platform="linux")
        >>> resolver.file_path("settings.json", SettingsScope.SESSION).as_posix()
        '/tmp/session/settings.json'
        >>> resolver.file_path("/etc/demo.json", SettingsScope.USER).as_posix()
        '/etc/demo.json'
        """

        candidate = Path(file_name)
        if candidate.is_absolute():
            return candidate
        resolved = self.base_path(scope) / candidate
        _LOG.storage("path_resolved", resolved, scope=scope.value)
        return resolved

    @staticmethod
    def ensure_parent(path: Path) -> None:
        """Create the parent directory of *path* when it does not exist yet."""

        path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def _is_macos(self) -> bool:
        return self.platform == "darwin"

    @property
    def _is_windows(self) -> bool:
        return self.platform.startswith("win")

    def _user_root(self) -> Path:
        """Return the per-user configuration root (AppData, Application Support, or XDG)."""

        if self._is_windows:
            return Path(self.env.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        if self._is_macos:
            return Path.home() / "Library" / "Application Support"
        xdg = self.env.get("XDG_CONFIG_HOME")
        return Path(xdg) if xdg else Path.home() / ".config"

    def _machine_root(self) -> Path:
        """Return the machine-wide configuration root."""

        if self._is_windows:
            return Path(self.env.get("ProgramData", r"C:\ProgramData"))
        if self._is_macos:
            return Path("/Library/Application Support")
        return Path("/etc")

    def _app_dir(self, root: Path) -> Path:
        if self.organization_name:
            return root / sanitize_name(self.organization_name) / sanitize_name(self.application_name)
        return root / sanitize_name(self.application_name)


def _default_application_name() -> str:
    """Return the entry script stem, falling back to the package name."""

    main = sys.modules.get("__main__")
    script = getattr(main, "__file__", None)
    if script:
        return Path(script).stem
    return DEFAULT_APPLICATION_NAME


def _entry_directory() -> Path:
    """Return the directory of the entry script, or the working directory for interactive sessions."""

    main = sys.modules.get("__main__")
    script = getattr(main, "__file__", None)
    if script:
        return Path(script).resolve().parent
    return Path.cwd()
