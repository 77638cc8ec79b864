from __future__ import annotations

import pytest

from lib_layered_settings.testing import FAILURE_MESSAGE, FailingSettingsProvider


def test_failing_provider_raises_for_selected_operations() -> None:
    provider = FailingSettingsProvider(fail_on=["reload"])
    provider.flush()
    with pytest.raises(RuntimeError, match=f"^{FAILURE_MESSAGE}: reload$"):
        provider.reload()
    assert provider.calls == ["flush", "reload"]


def test_failing_provider_close_marks_closed_before_raising() -> None:
    provider = FailingSettingsProvider(fail_on=["close"])
    with pytest.raises(RuntimeError, match="close"):
        provider.close()
    assert provider.closed
    provider.close()
    assert provider.calls == ["close"]


def test_failing_provider_rejects_unknown_operations() -> None:
    with pytest.raises(ValueError):
        FailingSettingsProvider(fail_on=["set"])
