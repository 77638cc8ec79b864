"""Helpers shared by the provider and composite suites."""

from __future__ import annotations

from dataclasses import dataclass, field

from lib_layered_settings import ChangeType, InMemorySettingsProvider, ProviderOptions, SettingsChanged, Subscription


@dataclass
class EventRecorder:
    """Collect every event delivered to :meth:`__call__`."""

    events: list[SettingsChanged] = field(default_factory=list)

    def __call__(self, event: SettingsChanged) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[ChangeType]:
        return [event.change_type for event in self.events]

    @property
    def keys(self) -> list[str]:
        return [event.key for event in self.events]


def record(store) -> tuple[EventRecorder, Subscription]:
    """Subscribe a fresh :class:`EventRecorder` to *store*."""

    recorder = EventRecorder()
    return recorder, store.subscribe(recorder)


def memory(name: str, priority: int = 0, *, read_only: bool = False, **initial: object) -> InMemorySettingsProvider:
    """Build a named in-memory provider with the given priority and contents."""

    return InMemorySettingsProvider(name, ProviderOptions(priority=priority, read_only=read_only), initial=initial)


@dataclass
class Window:
    width: int = 800
    height: int = 600
    title: str = "main"


@dataclass
class Layout:
    main: Window = field(default_factory=Window)
    panels: list[Window] = field(default_factory=list)
    ratios: list[float] = field(default_factory=list)
