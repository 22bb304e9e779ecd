"""
Repeating timer that asks the worker to look for addon updates.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QTimer

from shared.channel import ChannelEndpoint
from shared.messages import (
    ASK_FOR_UPDATE,
    CHECK_INTERVAL_UPDATE,
    INIT_LOOK_FOR_UPDATES,
    PollingConfig,
)
from wowclassicui_app.wowclassicui_app import logger as app_logger


class UpdateTimerService(QObject):
    """
    Owns the single update timer. The worker configures it over the channel;
    each tick forwards ``askForUpdate`` only while the main window is hidden.
    """

    def __init__(
        self,
        *,
        channel: ChannelEndpoint,
        window_provider: Callable[[], Optional[Any]],
        timer: Optional[QTimer] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = app_logger.get_logger()
        self._channel = channel
        self._window_provider = window_provider
        self._timer = timer if timer is not None else QTimer(self)
        self._timer.timeout.connect(self._on_tick)  # type: ignore[arg-type]
        self._config = PollingConfig()
        self._initialised = False
        self._armed = False

    def attach(self) -> None:
        """Answer the worker's polling configuration messages."""
        self._channel.answer(INIT_LOOK_FOR_UPDATES, self._handle_init)
        self._channel.answer(CHECK_INTERVAL_UPDATE, self._handle_interval_update)

    @property
    def config(self) -> PollingConfig:
        return self._config

    @property
    def is_armed(self) -> bool:
        return self._armed

    def initialise(self, config: PollingConfig) -> bool:
        """Apply the worker's boot-time configuration; only the first call counts."""
        if self._initialised:
            self._logger.debug("Ignoring repeated polling initialisation.")
            return False
        self._initialised = True
        self._apply(config)
        return True

    def configure(self, config: PollingConfig) -> bool:
        """Reconfigure the timer; an unchanged live configuration keeps its countdown."""
        if self._armed and config == self._config:
            return False
        self._apply(config)
        return True

    def stop(self) -> None:
        self._disarm()

    def notify_if_eligible(self) -> bool:
        try:
            window = self._window_provider()
            if window is None:
                return False
            if window.isVisible():
                return False
            self._channel.send(ASK_FOR_UPDATE)
            return True
        except Exception:
            self._logger.exception("Failed to deliver scheduled update request.")
            return False

    def request_update_now(self) -> None:
        """Manual trigger; bypasses the window visibility gate."""
        self._logger.info("Manual update check requested.")
        self._channel.send(ASK_FOR_UPDATE)

    def _handle_init(self, payload: Any = None) -> None:
        self.initialise(PollingConfig.from_payload(payload or {}))

    def _handle_interval_update(self, payload: Any = None) -> None:
        self.configure(PollingConfig.from_payload(payload or {}))

    def _apply(self, config: PollingConfig) -> None:
        self._config = config
        self._disarm()
        if config.enabled:
            self._timer.setInterval(max(1, config.interval_seconds) * 1000)
            self._timer.start()
            self._armed = True
            self._logger.info("Automatic update checks every {} seconds.", config.interval_seconds)
        else:
            self._logger.info("Automatic update checks disabled.")

    def _disarm(self) -> None:
        if not self._armed:
            return
        self._timer.stop()
        self._armed = False

    def _on_tick(self) -> None:
        self.notify_if_eligible()
