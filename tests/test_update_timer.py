"""Tests for the controller's update timer service."""
from unittest.mock import MagicMock

import pytest

from controller.update_timer import UpdateTimerService
from shared.messages import (
    ASK_FOR_UPDATE,
    CHECK_INTERVAL_UPDATE,
    INIT_LOOK_FOR_UPDATES,
    PollingConfig,
)


class FakeTimer:
    """Records arming so tests can assert that no second timer ever runs."""

    def __init__(self):
        self.timeout = MagicMock()
        self.active = False
        self.interval = None
        self.starts = 0
        self.stops = 0
        self.max_concurrent = 0

    def setInterval(self, msecs):  # noqa: N802
        self.interval = msecs

    def start(self):
        if self.active:
            self.max_concurrent = 2
        self.active = True
        self.starts += 1
        self.max_concurrent = max(self.max_concurrent, 1)

    def stop(self):
        self.active = False
        self.stops += 1


def make_service(window=None, channel=None, timer=None):
    return UpdateTimerService(
        channel=channel or MagicMock(),
        window_provider=lambda: window,
        timer=timer or FakeTimer(),
    )


class TestInitialise:
    def test_enabled_arms_timer_in_milliseconds(self):
        timer = FakeTimer()
        service = make_service(timer=timer)
        assert service.initialise(PollingConfig(enabled=True, interval_seconds=3600)) is True
        assert timer.active is True
        assert timer.interval == 3_600_000
        assert service.is_armed is True

    def test_disabled_leaves_timer_idle(self):
        timer = FakeTimer()
        service = make_service(timer=timer)
        service.initialise(PollingConfig(enabled=False, interval_seconds=3600))
        assert timer.starts == 0
        assert service.is_armed is False

    def test_first_call_wins(self):
        timer = FakeTimer()
        service = make_service(timer=timer)
        service.initialise(PollingConfig(enabled=True, interval_seconds=600))
        assert service.initialise(PollingConfig(enabled=True, interval_seconds=60)) is False
        assert timer.interval == 600_000
        assert timer.starts == 1
        assert service.config == PollingConfig(enabled=True, interval_seconds=600)


class TestConfigure:
    def test_identical_enabled_config_keeps_countdown(self):
        timer = FakeTimer()
        service = make_service(timer=timer)
        assert service.configure(PollingConfig(enabled=True, interval_seconds=900)) is True
        assert service.configure(PollingConfig(enabled=True, interval_seconds=900)) is False
        assert timer.starts == 1
        assert timer.stops == 0

    def test_changed_interval_rearms(self):
        timer = FakeTimer()
        service = make_service(timer=timer)
        service.initialise(PollingConfig(enabled=True, interval_seconds=900))
        service.configure(PollingConfig(enabled=True, interval_seconds=1800))
        assert timer.stops == 1
        assert timer.starts == 2
        assert timer.interval == 1_800_000
        assert timer.active is True

    def test_disable_stops_timer(self):
        timer = FakeTimer()
        service = make_service(timer=timer)
        service.initialise(PollingConfig(enabled=True, interval_seconds=900))
        service.configure(PollingConfig(enabled=False, interval_seconds=900))
        assert timer.active is False
        assert service.is_armed is False

    def test_reenable_with_same_interval_arms_again(self):
        timer = FakeTimer()
        service = make_service(timer=timer)
        service.initialise(PollingConfig(enabled=False, interval_seconds=900))
        service.configure(PollingConfig(enabled=True, interval_seconds=900))
        assert timer.active is True
        assert timer.starts == 1

    def test_never_more_than_one_timer_armed(self):
        timer = FakeTimer()
        service = make_service(timer=timer)
        sequence = [
            PollingConfig(True, 60),
            PollingConfig(True, 60),
            PollingConfig(True, 120),
            PollingConfig(False, 120),
            PollingConfig(False, 300),
            PollingConfig(True, 300),
            PollingConfig(True, 60),
        ]
        service.initialise(sequence[0])
        for config in sequence[1:]:
            service.configure(config)
            assert timer.active is config.enabled
        assert timer.max_concurrent == 1

    def test_stop_disarms(self):
        timer = FakeTimer()
        service = make_service(timer=timer)
        service.configure(PollingConfig(True, 60))
        service.stop()
        assert timer.active is False
        assert service.is_armed is False


class TestNotifyIfEligible:
    def test_sends_when_window_hidden(self):
        channel = MagicMock()
        window = MagicMock()
        window.isVisible.return_value = False
        service = make_service(window=window, channel=channel)
        assert service.notify_if_eligible() is True
        channel.send.assert_called_once_with(ASK_FOR_UPDATE)

    def test_drops_tick_when_window_visible(self):
        channel = MagicMock()
        window = MagicMock()
        window.isVisible.return_value = True
        service = make_service(window=window, channel=channel)
        assert service.notify_if_eligible() is False
        channel.send.assert_not_called()

    def test_drops_tick_without_window(self):
        channel = MagicMock()
        service = make_service(window=None, channel=channel)
        assert service.notify_if_eligible() is False
        channel.send.assert_not_called()

    def test_delivery_errors_are_swallowed(self):
        channel = MagicMock()
        channel.send.side_effect = RuntimeError("boom")
        window = MagicMock()
        window.isVisible.return_value = False
        service = make_service(window=window, channel=channel)
        assert service.notify_if_eligible() is False

    def test_window_errors_are_swallowed(self):
        channel = MagicMock()
        window = MagicMock()
        window.isVisible.side_effect = RuntimeError("deleted")
        service = make_service(window=window, channel=channel)
        assert service.notify_if_eligible() is False
        channel.send.assert_not_called()

    def test_tick_invokes_visibility_check(self):
        channel = MagicMock()
        window = MagicMock()
        window.isVisible.return_value = False
        service = make_service(window=window, channel=channel)
        service._on_tick()
        channel.send.assert_called_once_with(ASK_FOR_UPDATE)

    def test_manual_request_ignores_visibility(self):
        channel = MagicMock()
        window = MagicMock()
        window.isVisible.return_value = True
        service = make_service(window=window, channel=channel)
        service.request_update_now()
        channel.send.assert_called_once_with(ASK_FOR_UPDATE)


class TestChannelHandlers:
    @pytest.fixture
    def wired(self):
        channel = MagicMock()
        timer = FakeTimer()
        service = make_service(channel=channel, timer=timer)
        service.attach()
        handlers = {call.args[0]: call.args[1] for call in channel.answer.call_args_list}
        return service, timer, handlers

    def test_registers_both_configuration_messages(self, wired):
        _, _, handlers = wired
        assert set(handlers) == {INIT_LOOK_FOR_UPDATES, CHECK_INTERVAL_UPDATE}

    def test_init_payload_arms_timer(self, wired):
        service, timer, handlers = wired
        handlers[INIT_LOOK_FOR_UPDATES]({"lookForUpdates": True, "checkInterval": 120})
        assert timer.interval == 120_000
        assert service.config == PollingConfig(True, 120)

    def test_interval_update_payload_reconfigures(self, wired):
        service, timer, handlers = wired
        handlers[INIT_LOOK_FOR_UPDATES]({"lookForUpdates": True, "checkInterval": 120})
        handlers[CHECK_INTERVAL_UPDATE]({"lookForUpdates": False, "checkInterval": 120})
        assert timer.active is False
        assert service.is_armed is False
