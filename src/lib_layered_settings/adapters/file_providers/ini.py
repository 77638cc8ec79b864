"""INI file provider built on :mod:`configparser`.

Keys map onto ``section.option``: the text before the first dot names the
section, the rest the option. Undotted keys live in the default section
(``Settings`` unless configured otherwise), and entries that appear before any
section header are read into it as well. A key whose first segment names the
default section itself (``Settings.theme``) is kept whole as an option of that
section so it reads back unchanged.

Values are kept as text; interpolation is disabled and option names keep their
spelling. Text that :mod:`configparser` would alter (surrounding whitespace,
line breaks, or a leading double quote) is written as a JSON string literal and
decoded on read, so ``"  padded  "`` in the file means the value
``  padded  ``.
"""

from __future__ import annotations

import configparser
import io
import json
import re
from typing import Any, Mapping

from ...domain.errors import InvalidFormat
from ...domain.options import IniProviderOptions
from ...domain.values import to_text
from .structured import BaseFileSettingsProvider

_UNSAFE_SECTION = re.compile(r"^\s|\s$|[\]\r\n]")
_UNSAFE_OPTION = re.compile(r"^[\s#;\[]|\s$|[=:\r\n]")


class IniFileSettingsProvider(BaseFileSettingsProvider):
    """Settings stored in an INI document.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> path = f"{tmp.name}/app.ini"
    >>> with IniFileSettingsProvider(IniProviderOptions(file_path=path)) as provider:
    ...     provider.set("theme", "dark")
    ...     provider.set("database.port", 5432)
    >>> print(open(path, encoding="utf-8").read().strip())
    [Settings]
    theme = dark
    <BLANKLINE>
    [database]
    port = 5432
    >>> IniFileSettingsProvider(IniProviderOptions(file_path=path)).get("database.port", 0)
    5432
    >>> tmp.cleanup()
    """

    format_name = "ini"
    name_prefix = "IniFile"
    default_file_name = "settings.ini"
    options_type = IniProviderOptions

    @property
    def default_section(self) -> str:
        return getattr(self._options, "default_section", "Settings")

    def _parser(self) -> configparser.ConfigParser:
        parser = configparser.ConfigParser(interpolation=None, strict=False)
        parser.optionxform = str  # type: ignore[assignment,method-assign]
        return parser

    def _parse(self, text: str) -> Mapping[str, Any]:
        parser = self._parser()
        try:
            parser.read_string(f"[{self.default_section}]\n{text}", source=str(self._path))
        except configparser.Error as exc:
            raise InvalidFormat(f"Invalid INI in {self._path}: {exc}") from exc
        flat: dict[str, str] = {}
        for section in parser.sections():
            for option, value in parser.items(section, raw=True):
                key = option if section.casefold() == self.default_section.casefold() else f"{section}.{option}"
                flat[key] = _unquote(value)
        return flat

    def _render(self, snapshot: dict[str, Any]) -> str:
        parser = self._parser()
        parser.add_section(self.default_section)
        for key in sorted(snapshot, key=lambda item: ("." in item, item.casefold())):
            value = snapshot[key]
            if value is None:
                continue
            section, option = self._split(key)
            if not parser.has_section(section):
                parser.add_section(section)
            parser.set(section, option, _quote(value))
        buffer = io.StringIO()
        parser.write(buffer)
        return buffer.getvalue()

    def _empty_document(self) -> str:
        return f"[{self.default_section}]\n"

    def _encode(self, value: Any) -> Any:
        if value is None:
            return None
        return to_text(value, self._serializer)

    def _check_writable_key(self, key: str) -> None:
        section, option = self._split(key)
        if section == configparser.DEFAULTSECT or _UNSAFE_SECTION.search(section):
            raise ValueError(f"Key '{key}' cannot be stored as INI: '{section}' is not a usable section name.")
        if _UNSAFE_OPTION.search(option):
            raise ValueError(f"Key '{key}' cannot be stored as INI: '{option}' is not a usable option name.")

    def _split(self, key: str) -> tuple[str, str]:
        """Return ``(section, option)`` for *key*.

        >>> provider = IniFileSettingsProvider.__new__(IniFileSettingsProvider)
        >>> provider._options = IniProviderOptions()
        >>> provider._split("database.pool.size"), provider._split("theme")
        (('database', 'pool.size'), ('Settings', 'theme'))
        >>> provider._split("settings.theme")
        ('Settings', 'settings.theme')
        """

        section, dot, option = key.partition(".")
        if dot and section and option and section.casefold() != self.default_section.casefold():
            return section, option
        return self.default_section, key


def _quote(value: str) -> str:
    """Protect text that :mod:`configparser` would not read back verbatim.

    >>> _quote("dark"), _quote("  padded "), _quote('"quoted"')
    ('dark', '"  padded "', '"\\\\"quoted\\\\""')
    """

    if value != value.strip() or "\n" in value or "\r" in value or value.startswith('"'):
        return json.dumps(value, ensure_ascii=False)
    return value


def _unquote(value: str) -> str:
    """Decode a value written by :func:`_quote`; anything else is returned as is.

    >>> _unquote('"  padded "'), _unquote("dark"), _unquote('"unterminated')
    ('  padded ', 'dark', '"unterminated')
    """

    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return value
        if isinstance(decoded, str):
            return decoded
    return value
