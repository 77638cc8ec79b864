"""Volatile provider keeping values as live Python objects.

Useful for session overrides, tests, and as the writable top layer of a
composite. Nothing is persisted; ``flush`` and ``reload`` leave the table as is.
"""

from __future__ import annotations

from typing import Any, Mapping

from ...domain.options import ProviderOptions, SettingsScope
from .base import BaseSettingsProvider


class InMemorySettingsProvider(BaseSettingsProvider):
    """Dictionary-backed provider with session scope by default.

    Examples
    --------
    >>> provider = InMemorySettingsProvider(initial={"theme": "dark"})
    >>> provider.get("THEME")
    'dark'
    >>> provider.set("retries", 3)
    >>> provider.get("retries", 0), provider.count
    (3, 2)
    """

    buffered = False

    def __init__(
        self,
        name: str | None = None,
        options: ProviderOptions | None = None,
        serializer: Any = None,
        initial: Mapping[str, Any] | None = None,
    ) -> None:
        if options is None:
            options = ProviderOptions(scope=SettingsScope.SESSION)
        super().__init__(name or "InMemory", options, serializer)
        self._initial = dict(initial or {})
        self._initialise()

    def _load(self) -> Mapping[str, Any]:
        return self._initial

    def reload(self) -> None:
        """Keep the current values; there is no backing medium to re-read."""

        self._ensure_open()
