"""Environment variable adapter.

Purpose
-------
Expose process environment variables as a read-only provider. It usually sits
at the top of a composite (priority ``100``) so deployment overrides win over
files and defaults.

Key behaviours
--------------
* An optional prefix (``default_env_prefix``) restricts which variables are
  captured; the prefix is stripped from the stored names and matched
  case-insensitively.
* Dotted keys map onto upper snake-case names (``database.host`` →
  ``DATABASE_HOST``); colons are treated like dots.
* Values stay text; typed reads go through the shared coercion rules so
  ``"5432"`` reads as ``5432`` when an ``int`` is requested.
* ``reload`` re-reads the environment, picking up variables set after
  construction.
"""

from __future__ import annotations

import os
from typing import Any, Mapping

from ...domain.options import ProviderOptions, SettingsScope
from ..providers.base import BaseSettingsProvider

ENVIRONMENT_PRIORITY = 100


def default_env_prefix(slug: str) -> str:
    """Return the canonical environment prefix for *slug*.

    Why
    ----
    Namespacing prevents unrelated environment variables from leaking into the
    settings keyspace.

    Parameters
    ----------
    slug:
        Package/application slug (typically ``kebab-case``).

    Returns
    -------
    str
        Upper-case prefix with dashes converted to underscores and a trailing
        underscore.

    Examples
    --------
    >>> default_env_prefix('my-app')
    'MY_APP_'
    """

    return slug.replace("-", "_").upper() + "_"


class EnvironmentSettingsProvider(BaseSettingsProvider):
    """Read-only provider over environment variables.

    Examples
    --------
    >>> env = {'DEMO_DATABASE_HOST': 'db.local', 'DEMO_DATABASE_PORT': '5432', 'OTHER': 'x'}
    >>> provider = EnvironmentSettingsProvider(prefix='DEMO_', environ=env)
    >>> provider.name, provider.priority, provider.is_read_only
    ('Environment:DEMO_', 100, True)
    >>> provider.get('database.host')
    'db.local'
    >>> provider.get('database.port', 0)
    5432
    >>> sorted(provider.get_all_keys())
    ['database.host', 'database.port']
    """

    buffered = False

    def __init__(
        self,
        prefix: str | None = None,
        options: ProviderOptions | None = None,
        serializer: Any = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialise the provider with a specific ``environ`` mapping for testability.

        Parameters
        ----------
        prefix:
            Optional variable-name prefix; only matching variables are exposed.
        options:
            Provider options. ``read_only`` is forced on and the scope is always
            machine; ``priority`` defaults to ``100`` when no options are given.
        environ:
            Mapping to read from. Defaults to :data:`os.environ`.
        """

        if options is None:
            options = ProviderOptions(priority=ENVIRONMENT_PRIORITY)
        options.read_only = True
        options.scope = SettingsScope.MACHINE
        self._prefix = prefix or ""
        self._environ = environ if environ is not None else os.environ
        super().__init__(f"Environment:{prefix}" if prefix else "Environment", options, serializer)
        self._initialise()

    @property
    def prefix(self) -> str:
        return self._prefix

    def _load(self) -> Mapping[str, Any]:
        folded_prefix = self._prefix.casefold()
        collected: dict[str, str] = {}
        for name, value in self._environ.items():
            if not name or value is None:
                continue
            if folded_prefix:
                if not name.casefold().startswith(folded_prefix):
                    continue
                name = name[len(self._prefix) :]
                if not name:
                    continue
            collected[name] = value
        return collected

    def _storage_key(self, key: str) -> str:
        return env_name_for(key)

    def _public_key(self, stored: str) -> str:
        return stored.replace("_", ".").lower()


def env_name_for(key: str) -> str:
    """Return the environment variable name (without prefix) for a settings key.

    Examples
    --------
    >>> env_name_for('database.host'), env_name_for('Logging:Level')
    ('DATABASE_HOST', 'LOGGING_LEVEL')
    """

    return key.replace(".", "_").replace(":", "_").upper()
