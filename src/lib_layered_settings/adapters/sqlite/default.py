"""Embedded database provider backed by :mod:`sqlite3`.

Purpose
-------
Persist settings in a single table ``(Key, Value, UpdatedAt)``. Every write is
committed immediately (write-through), so ``flush`` has nothing to do and a
crash never loses acknowledged writes.

Contents
--------
* :class:`SqliteSettingsProvider` – the provider.
* :func:`quote_identifier` – validates and quotes the configured table name.

System Role
-----------
Values are stored as text using the shared canonical text form; typed reads go
through the usual coercion rules. Keys compare case-insensitively both in
memory and in the table (``COLLATE NOCASE``). ``sqlite3.Error`` propagates
unchanged.
"""

from __future__ import annotations

import re
import sqlite3
from pathlib import Path
from typing import Any, Mapping

from ...domain.options import SqliteProviderOptions
from ...domain.values import to_text

from ..path_resolvers.default import DefaultPathResolver
from ..providers.base import BaseSettingsProvider

MEMORY_DATABASE = ":memory:"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    """Return *name* quoted for use as an SQL identifier.

    Examples
    --------
    >>> quote_identifier("Settings")
    '"Settings"'
    >>> quote_identifier("x; DROP TABLE y")
    Traceback (most recent call last):
    ...
    ValueError: invalid table name: 'x; DROP TABLE y'
    """

    if not _IDENTIFIER.match(name):
        raise ValueError(f"invalid table name: {name!r}")
    return f'"{name}"'


class SqliteSettingsProvider(BaseSettingsProvider):
    """Write-through provider over an SQLite database file.

    Examples
    --------
    >>> provider = SqliteSettingsProvider(SqliteProviderOptions(database_path=":memory:"))
    >>> provider.set("retries", 3)
    >>> provider.get("RETRIES", 0), provider.name
    (3, 'Sqlite::memory:')
    >>> provider.close()
    """

    buffered = False
    blocking_io = True

    def __init__(
        self,
        options: SqliteProviderOptions | None = None,
        serializer: Any = None,
        *,
        resolver: DefaultPathResolver | None = None,
    ) -> None:
        if options is None:
            options = SqliteProviderOptions()
        self._table = quote_identifier(options.table_name)
        if options.database_path == MEMORY_DATABASE:
            self._path: Path | None = None
            name = f"Sqlite:{MEMORY_DATABASE}"
        else:
            if resolver is None:
                resolver = DefaultPathResolver(
                    application_name=options.application_name,
                    organization_name=options.organization_name,
                )
            self._path = resolver.file_path(options.database_path, options.scope)
            name = f"Sqlite:{self._path.name}"
        super().__init__(name, options, serializer)
        self._connection = self._connect(options)
        self._initialise()

    @property
    def database_path(self) -> Path | None:
        """Resolved database file, or ``None`` for an in-memory database."""

        return self._path

    @property
    def table_name(self) -> str:
        return self._table.strip('"')

    def _connect(self, options: SqliteProviderOptions) -> sqlite3.Connection:
        if self._path is None:
            connection = sqlite3.connect(MEMORY_DATABASE, timeout=options.timeout, check_same_thread=False)
        elif options.create_if_not_exists:
            DefaultPathResolver.ensure_parent(self._path)
            connection = sqlite3.connect(str(self._path), timeout=options.timeout, check_same_thread=False)
        else:
            uri = f"{self._path.as_uri()}?mode=rw"
            connection = sqlite3.connect(uri, timeout=options.timeout, check_same_thread=False, uri=True)
        if options.create_if_not_exists or self._path is None:
            with connection:
                connection.execute(
                    f"CREATE TABLE IF NOT EXISTS {self._table} ("
                    "Key TEXT PRIMARY KEY NOT NULL COLLATE NOCASE, "
                    "Value TEXT, "
                    "UpdatedAt TEXT DEFAULT CURRENT_TIMESTAMP)"
                )
        self._log.storage("sqlite_connected", self._path or MEMORY_DATABASE, table=self.table_name)
        return connection

    def _load(self) -> Mapping[str, Any]:
        rows = self._connection.execute(f"SELECT Key, Value FROM {self._table}").fetchall()
        return {key: value for key, value in rows if value is not None}

    def _encode(self, value: Any) -> Any:
        if value is None:
            return None
        return to_text(value, self._serializer)

    def _on_set(self, key: str, stored: Any) -> None:
        with self._connection:
            self._connection.execute(
                f"INSERT INTO {self._table} (Key, Value, UpdatedAt) VALUES (?, ?, CURRENT_TIMESTAMP) "
                "ON CONFLICT(Key) DO UPDATE SET Value = excluded.Value, UpdatedAt = CURRENT_TIMESTAMP",
                (key, stored),
            )

    def _on_remove(self, key: str) -> None:
        with self._connection:
            self._connection.execute(f"DELETE FROM {self._table} WHERE Key = ?", (key,))

    def _on_clear(self) -> None:
        with self._connection:
            self._connection.execute(f"DELETE FROM {self._table}")

    def _release(self) -> None:
        self._connection.close()
