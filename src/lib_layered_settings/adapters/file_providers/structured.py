"""Structured settings file providers.

Purpose
-------
Back a provider with a single document on disk. Adapters are small wrappers
around ``json``/``yaml.safe_load``/``tomllib``/``xml.etree`` so path
resolution, retries, atomic writes, error handling, and observability live in
one place.

Contents
--------
* :class:`BaseFileSettingsProvider` – shared reading, writing, and retry logic.
* :class:`JsonFileSettingsProvider` – flat top-level JSON object.
* :class:`YamlFileSettingsProvider` – flat top-level YAML mapping.
* :class:`TomlFileSettingsProvider` – tables flattened into dotted keys; read
  with ``tomllib`` (``tomli`` on older interpreters), written with ``tomlkit``.
* :class:`XmlFileSettingsProvider` – nested elements flattened into dotted keys.

System Role
-----------
Writes stay in memory until :meth:`flush` (or :meth:`close`); reloads discard
unflushed changes. Malformed documents raise
:class:`~lib_layered_settings.domain.errors.InvalidFormat`; I/O errors that
survive the retry budget bubble unchanged.

With ``watch_for_changes`` enabled a :mod:`watchdog` observer follows the
file's directory; external edits trigger a debounced :meth:`reload` while
the provider's own writes are recognised and ignored.
"""

from __future__ import annotations

import json
import os
import re
import threading
import time
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Callable, ClassVar, Mapping, TypeVar

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

import tomlkit
import yaml
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ...domain.errors import InvalidFormat, NotFound, ProviderClosed
from ...domain.options import FileProviderOptions, XmlProviderOptions
from ...domain.values import ValueKind, kind_of_value, to_text

from ..path_resolvers.default import DefaultPathResolver
from ..providers.base import BaseSettingsProvider

R = TypeVar("R")

_XML_NAME = re.compile(r"[^\W\d][\w\-]*")


class SettingsFileEventHandler(FileSystemEventHandler):
    """Forward watchdog events that touch one settings file to its provider."""

    def __init__(self, provider: BaseFileSettingsProvider) -> None:
        self.provider = provider
        self.target = provider.file_path.resolve()

    def on_modified(self, event: FileSystemEvent) -> None:
        self._notify(event.src_path, event)

    def on_created(self, event: FileSystemEvent) -> None:
        self._notify(event.src_path, event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._notify(event.dest_path, event)

    def _notify(self, path: str | bytes, event: FileSystemEvent) -> None:
        if event.is_directory or not path:
            return
        if Path(os.fsdecode(path)).resolve() == self.target:
            self.provider._file_changed()


class BaseFileSettingsProvider(BaseSettingsProvider):
    """Common behaviour shared by the document-backed providers.

    Subclasses set ``format_name`` and ``name_prefix`` and implement
    :meth:`_parse`, :meth:`_render`, and :meth:`_empty_document`.
    """

    blocking_io = True
    format_name: ClassVar[str] = ""
    name_prefix: ClassVar[str] = ""
    default_file_name: ClassVar[str] = "settings.json"
    options_type: ClassVar[type[FileProviderOptions]] = FileProviderOptions

    def __init__(
        self,
        options: FileProviderOptions | None = None,
        serializer: Any = None,
        *,
        resolver: DefaultPathResolver | None = None,
    ) -> None:
        if options is None:
            options = self.options_type(file_path=self.default_file_name)
        if resolver is None:
            resolver = DefaultPathResolver(
                application_name=options.application_name,
                organization_name=options.organization_name,
            )
        self._path = resolver.file_path(options.file_path, options.scope)
        self._last_text: str | None = None
        self._observer: Any = None
        self._reload_timer: threading.Timer | None = None
        self._watch_lock = threading.Lock()
        super().__init__(f"{self.name_prefix}:{self._path.name}", options, serializer)
        self._initialise()
        if options.watch_for_changes:
            self._start_watching()

    @property
    def file_path(self) -> Path:
        return self._path

    @property
    def file_options(self) -> FileProviderOptions:
        return self._options  # type: ignore[return-value]

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    # -- format hooks -----------------------------------------------------

    def _parse(self, text: str) -> Mapping[str, Any]:
        raise NotImplementedError

    def _render(self, snapshot: dict[str, Any]) -> str:
        raise NotImplementedError

    def _empty_document(self) -> str:
        raise NotImplementedError

    # -- storage ----------------------------------------------------------

    def _load(self) -> Mapping[str, Any]:
        try:
            text = self._with_retry(self._read)
        except NotFound:
            if self.file_options.create_if_not_exists:
                self._with_retry(lambda: self._write(self._empty_document()))
                self._log.storage("settings_file_created", self._path)
            return {}
        if not text.strip():
            return {}
        try:
            data = self._parse(text)
        except InvalidFormat as exc:
            self._log.failure("settings_file_invalid", exc, location=self._path, format=self.format_name)
            raise
        return data

    def _persist(self, snapshot: dict[str, Any]) -> None:
        text = self._render(snapshot)
        self._with_retry(lambda: self._write(text))

    def _read(self) -> str:
        """Read the backing document, raising :class:`NotFound` when it is missing.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> provider = JsonFileSettingsProvider(FileProviderOptions(file_path=f"{tmp.name}/demo.json"))
        >>> provider._read()
        '{}\\n'
        >>> provider.close()
        >>> tmp.cleanup()
        """

        if not self._path.is_file():
            raise NotFound(f"Settings file not found: {self._path}")
        text = self._path.read_text(encoding=self.file_options.encoding)
        self._last_text = text
        self._log.storage("settings_file_read", self._path, size=len(text))
        return text

    def _write(self, text: str) -> None:
        DefaultPathResolver.ensure_parent(self._path)
        encoding = self.file_options.encoding
        if self.file_options.atomic_writes:
            temp = self._path.with_name(self._path.name + ".tmp")
            temp.write_text(text, encoding=encoding)
            os.replace(temp, self._path)
        else:
            self._path.write_text(text, encoding=encoding)
        self._last_text = text
        self._log.storage("settings_file_written", self._path, size=len(text))

    def _with_retry(self, action: Callable[[], R]) -> R:
        """Run *action*, retrying transient ``OSError`` failures."""

        attempts = max(1, self.file_options.max_retry_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return action()
            except OSError as exc:
                if attempt >= attempts:
                    raise
                self._log.failure("settings_file_retry", exc, location=self._path, attempt=attempt)
                time.sleep(self.file_options.retry_delay)
        raise AssertionError("unreachable")  # pragma: no cover

    # -- watching ---------------------------------------------------------

    def _start_watching(self) -> None:
        directory = self._path.parent
        if not directory.is_dir():
            self._log.storage("settings_watch_skipped", directory, reason="missing directory")
            return
        observer = Observer()
        observer.schedule(SettingsFileEventHandler(self), str(directory), recursive=False)
        observer.start()
        self._observer = observer
        self._log.storage("settings_watch_started", self._path)

    def _file_changed(self) -> None:
        """Restart the debounce timer; the reload runs once events settle."""

        with self._watch_lock:
            if self._closed:
                return
            if self._reload_timer is not None:
                self._reload_timer.cancel()
            timer = threading.Timer(self.file_options.reload_debounce, self._reload_changed_file)
            timer.daemon = True
            self._reload_timer = timer
            timer.start()

    def _reload_changed_file(self) -> None:
        if self._closed:
            return
        try:
            if self._path.read_text(encoding=self.file_options.encoding) == self._last_text:
                return
            self.reload()
            self._log.storage("settings_file_changed", self._path, keys=self.count)
        except (InvalidFormat, OSError, ProviderClosed) as exc:
            self._log.failure("settings_file_reload_failed", exc, location=self._path)

    def _release(self) -> None:
        with self._watch_lock:
            if self._reload_timer is not None:
                self._reload_timer.cancel()
                self._reload_timer = None
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join()
            self._log.storage("settings_watch_stopped", self._path)

    @staticmethod
    def _ensure_mapping(data: object, *, path: Path) -> Mapping[str, Any]:
        """Ensure *data* behaves like a mapping, otherwise raise ``InvalidFormat``.

        Examples
        --------
        >>> BaseFileSettingsProvider._ensure_mapping({"key": 1}, path=Path("demo"))
        {'key': 1}
        >>> BaseFileSettingsProvider._ensure_mapping(42, path=Path("demo"))
        Traceback (most recent call last):
        ...
        lib_layered_settings.domain.errors.InvalidFormat: File demo did not produce a mapping
        """

        if not isinstance(data, Mapping):
            raise InvalidFormat(f"File {path} did not produce a mapping")
        return data

    def _encode(self, value: Any) -> Any:
        if value is None:
            return None
        return self._serializer.to_plain(value)


class JsonFileSettingsProvider(BaseFileSettingsProvider):
    """Settings stored as a flat, pretty-printed JSON object.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> path = f"{tmp.name}/app.json"
    >>> with JsonFileSettingsProvider(FileProviderOptions(file_path=path)) as provider:
    ...     provider.set("theme", "dark")
    >>> JsonFileSettingsProvider(FileProviderOptions(file_path=path)).get("theme")
    'dark'
    >>> tmp.cleanup()
    """

    format_name = "json"
    name_prefix = "JsonFile"
    default_file_name = "settings.json"

    def _parse(self, text: str) -> Mapping[str, Any]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidFormat(f"Invalid JSON in {self._path}: {exc}") from exc
        return self._ensure_mapping(data, path=self._path)

    def _render(self, snapshot: dict[str, Any]) -> str:
        return json.dumps(snapshot, indent=2, ensure_ascii=False) + "\n"

    def _empty_document(self) -> str:
        return "{}\n"


class YamlFileSettingsProvider(BaseFileSettingsProvider):
    """Settings stored as a flat YAML mapping (PyYAML ``safe_load``/``safe_dump``)."""

    format_name = "yaml"
    name_prefix = "YamlFile"
    default_file_name = "settings.yaml"

    def _parse(self, text: str) -> Mapping[str, Any]:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise InvalidFormat(f"Invalid YAML in {self._path}: {exc}") from exc
        if data is None:
            return {}
        return self._ensure_mapping(data, path=self._path)

    def _render(self, snapshot: dict[str, Any]) -> str:
        return yaml.safe_dump(snapshot, sort_keys=False, allow_unicode=True, default_flow_style=False)

    def _empty_document(self) -> str:
        return "{}\n"


class TomlFileSettingsProvider(BaseFileSettingsProvider):
    """Settings stored in TOML; tables become dotted key prefixes.

    Scalars native to TOML are stored as is; anything else is kept as
    serializer text so it survives the table flattening.
    """

    format_name = "toml"
    name_prefix = "TomlFile"
    default_file_name = "settings.toml"

    def _parse(self, text: str) -> Mapping[str, Any]:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise InvalidFormat(f"Invalid TOML in {self._path}: {exc}") from exc
        flat: dict[str, Any] = {}
        _flatten(data, "", flat)
        return flat

    def _render(self, snapshot: dict[str, Any]) -> str:
        document = tomlkit.document()
        entries = [(key, value) for key, value in snapshot.items() if value is not None]
        entries.sort(key=lambda item: (item[0].count("."), item[0]))
        for key, value in entries:
            _place_toml_value(document, key, value)
        return tomlkit.dumps(document)

    def _empty_document(self) -> str:
        return "# Settings\n"

    def _encode(self, value: Any) -> Any:
        if value is None:
            return None
        if kind_of_value(value) is ValueKind.BLOB:
            return self._serializer.serialize(value)
        return value


class XmlFileSettingsProvider(BaseFileSettingsProvider):
    """Settings stored as nested XML elements under a configurable root.

    ``database.host`` is written as ``<database><host>…</host></database>``.
    Every value is kept as element text. Each dotted segment of a key must be a
    valid element name; ``set`` raises ``ValueError`` otherwise and leaves the
    table untouched.
    """

    format_name = "xml"
    name_prefix = "XmlFile"
    default_file_name = "settings.xml"
    options_type = XmlProviderOptions

    @property
    def root_element(self) -> str:
        return getattr(self._options, "root_element", "Settings")

    def _parse(self, text: str) -> Mapping[str, Any]:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise InvalidFormat(f"Invalid XML in {self._path}: {exc}") from exc
        flat: dict[str, str] = {}
        for child in root:
            _flatten_element(child, "", flat)
        return flat

    def _render(self, snapshot: dict[str, Any]) -> str:
        root = ET.Element(self.root_element)
        for key in sorted(snapshot):
            value = snapshot[key]
            if value is None:
                continue
            _place_element(root, key.split("."), value)
        ET.indent(root)
        body = ET.tostring(root, encoding="unicode")
        return f'<?xml version="1.0" encoding="utf-8"?>\n{body}\n'

    def _empty_document(self) -> str:
        return f'<?xml version="1.0" encoding="utf-8"?>\n<{self.root_element} />\n'

    def _check_writable_key(self, key: str) -> None:
        for segment in key.split("."):
            if not is_xml_name(segment):
                raise ValueError(f"Key '{key}' cannot be stored as XML: '{segment}' is not a valid element name.")

    def _encode(self, value: Any) -> Any:
        if value is None:
            return None
        return to_text(value, self._serializer)


def _flatten(table: Mapping[str, Any], prefix: str, into: dict[str, Any]) -> None:
    """Collapse nested tables into dotted keys.

    Examples
    --------
    >>> flat: dict[str, object] = {}
    >>> _flatten({"a": 1, "db": {"host": "x", "pool": {"size": 2}}}, "", flat)
    >>> flat
    {'a': 1, 'db.host': 'x', 'db.pool.size': 2}
    """

    for name, value in table.items():
        key = f"{prefix}.{name}" if prefix else name
        if isinstance(value, Mapping):
            _flatten(value, key, into)
        else:
            into[key] = value


def _place_toml_value(document: Any, key: str, value: Any) -> None:
    """Insert *value* under its dotted *key*, creating tables as needed.

    A path that would pass through an existing scalar is written as a quoted
    top-level key instead.
    """

    parts = key.split(".")
    container = document
    for part in parts[:-1]:
        existing = container.get(part)
        if existing is None:
            existing = tomlkit.table()
            container.add(part, existing)
        elif not isinstance(existing, Mapping):
            document.add(key, value)
            return
        container = existing
    container.add(parts[-1], value)


def _flatten_element(element: ET.Element, prefix: str, into: dict[str, str]) -> None:
    key = f"{prefix}.{element.tag}" if prefix else element.tag
    children = list(element)
    if children:
        for child in children:
            _flatten_element(child, key, into)
    else:
        into[key] = element.text or ""


def _place_element(root: ET.Element, parts: list[str], value: Any) -> None:
    current = root
    for part in parts[:-1]:
        existing = next((child for child in current if child.tag == part), None)
        if existing is None:
            existing = ET.SubElement(current, part)
        current = existing
    leaf = ET.SubElement(current, parts[-1])
    leaf.text = str(value)


def is_xml_name(segment: str) -> bool:
    """Return ``True`` when *segment* can be used as an XML element name.

    Examples
    --------
    >>> is_xml_name("database"), is_xml_name("pool_size"), is_xml_name("x-forwarded")
    (True, True, True)
    >>> is_xml_name("my key"), is_xml_name("1st"), is_xml_name("a:b"), is_xml_name("")
    (False, False, False, False)
    """

    return _XML_NAME.fullmatch(segment) is not None
