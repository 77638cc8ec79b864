"""Case-insensitive key handling.

Keys compare with :meth:`str.casefold` while the spelling used on the first
insert is preserved for enumeration and persistence.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, MutableMapping


def require_key(key: object) -> str:
    """Return *key* when it is a non-empty string, otherwise raise ``ValueError``.

    Examples
    --------
    >>> require_key("database.host")
    'database.host'
    >>> require_key("")
    Traceback (most recent call last):
    ...
    ValueError: key must be a non-empty string
    """

    if not isinstance(key, str) or not key:
        raise ValueError("key must be a non-empty string")
    return key


class KeyTable(MutableMapping[str, Any]):
    """Mutable mapping with case-insensitive string keys.

    Examples
    --------
    >>> table = KeyTable({"Database.Host": "db"})
    >>> table["database.host"]
    'db'
    >>> table["DATABASE.HOST"] = "replica"
    >>> list(table)
    ['Database.Host']
    """

    def __init__(self, initial: Any = None) -> None:
        self._data: dict[str, tuple[str, Any]] = {}
        if initial:
            self.update(initial)

    def __getitem__(self, key: str) -> Any:
        return self._data[key.casefold()][1]

    def __setitem__(self, key: str, value: Any) -> None:
        folded = key.casefold()
        existing = self._data.get(folded)
        spelling = existing[0] if existing is not None else key
        self._data[folded] = (spelling, value)

    def __delitem__(self, key: str) -> None:
        del self._data[key.casefold()]

    def __iter__(self) -> Iterator[str]:
        return (spelling for spelling, _ in list(self._data.values()))

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._data

    def snapshot(self) -> dict[str, Any]:
        """Return a plain ``dict`` copy using the preserved spellings."""

        return {spelling: value for spelling, value in self._data.values()}


def unique_keys(keys: Iterable[str]) -> list[str]:
    """Return *keys* de-duplicated case-insensitively, keeping the first spelling.

    Examples
    --------
    >>> unique_keys(["a", "B", "b", "c", "A"])
    ['a', 'B', 'c']
    """

    seen: set[str] = set()
    result: list[str] = []
    for key in keys:
        folded = key.casefold()
        if folded in seen:
            continue
        seen.add(folded)
        result.append(key)
    return result
