from __future__ import annotations

from datetime import timezone

import pytest

from lib_layered_settings.domain.cancellation import CancellationToken, check_cancelled
from lib_layered_settings.domain.errors import OperationCancelled
from lib_layered_settings.domain.events import ChangeNotifier, ChangeType, SettingsChanged
from tests.support import EventRecorder


def test_cleared_record_shape() -> None:
    event = SettingsChanged.cleared("InMemory")
    assert event.key == ""
    assert event.change_type is ChangeType.CLEARED
    assert event.old_value is None and event.new_value is None
    assert event.timestamp.tzinfo is timezone.utc
    assert event.affects("anything")


def test_affects_is_case_insensitive() -> None:
    event = SettingsChanged("Theme", ChangeType.MODIFIED, "a", "b", "p")
    assert event.affects("THEME")
    assert not event.affects("theme.color")


def test_subscription_close_is_idempotent() -> None:
    notifier = ChangeNotifier()
    recorder = EventRecorder()
    subscription = notifier.subscribe(recorder)
    notifier.publish(SettingsChanged("a", ChangeType.ADDED))
    subscription.close()
    subscription.close()
    notifier.publish(SettingsChanged("b", ChangeType.ADDED))
    assert recorder.keys == ["a"]
    assert not subscription.active


def test_handler_may_unsubscribe_itself_during_delivery() -> None:
    notifier = ChangeNotifier()
    seen: list[str] = []

    def once(event: SettingsChanged) -> None:
        seen.append(event.key)
        notifier.unsubscribe(once)

    notifier.subscribe(once)
    notifier.publish(SettingsChanged("a", ChangeType.ADDED))
    notifier.publish(SettingsChanged("b", ChangeType.ADDED))
    assert seen == ["a"]


def test_subscribe_rejects_non_callables() -> None:
    with pytest.raises(TypeError):
        ChangeNotifier().subscribe("nope")  # type: ignore[arg-type]


def test_cancellation_token() -> None:
    token = CancellationToken()
    check_cancelled(None)
    check_cancelled(token)
    token.cancel()
    assert token.cancelled
    with pytest.raises(OperationCancelled):
        check_cancelled(token)
