"""
Application coordinator wiring the window, tray, update timer and worker thread.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from PySide6.QtCore import QObject, QThread, Signal
from PySide6.QtGui import QAction
from PySide6.QtWidgets import QApplication, QMenu, QStyle, QSystemTrayIcon

from controller.main_window import AddonsWindow
from controller.update_timer import UpdateTimerService
from shared.channel import create_channel_pair
from shared.http_client import ApiClient, HttpClientConfig
from shared.settings import SettingsStore
from worker.runtime import WorkerRuntime
from worker.update_cycle import ApplyPolicy
from wowclassicui_app.wowclassicui_app import APP_NAME, APP_VERSION
from wowclassicui_app.wowclassicui_app import logger as app_logger

WORKER_SHUTDOWN_TIMEOUT_MS = 30000


@dataclass
class AppCoordinator(QObject):
    settings: SettingsStore = field(default_factory=SettingsStore)
    http_config: HttpClientConfig = field(default_factory=HttpClientConfig.from_env)
    policy: ApplyPolicy = ApplyPolicy.ABORT_REMAINING

    pollingChanged = Signal(bool, int)
    exclusionChanged = Signal(str, bool)
    installRequested = Signal(str)

    def __post_init__(self) -> None:
        super().__init__()
        self._logger = app_logger.get_logger()
        self._api = ApiClient(self.http_config)

        controller_channel, worker_channel = create_channel_pair()
        self._worker = WorkerRuntime(
            channel=worker_channel,
            settings=self.settings,
            api=self._api,
            policy=self.policy,
        )
        self._worker_thread = QThread(self)
        self._worker_thread.setObjectName("wowclassicui-worker")
        self._worker.moveToThread(self._worker_thread)
        self._worker_thread.started.connect(self._worker.boot)
        self.pollingChanged.connect(self._worker.update_polling)
        self.exclusionChanged.connect(self._worker.set_addon_excluded)
        self.installRequested.connect(self._worker.install_addon)

        self._window = AddonsWindow(
            title=f"{APP_NAME} v{APP_VERSION}",
            hide_on_close=lambda: self.settings.minimize_to_tray() and QSystemTrayIcon.isSystemTrayAvailable(),
        )
        self._worker.stateChanged.connect(self._window.show_snapshot)
        self._window.closed.connect(self.shutdown)
        self._window.exclusionToggled.connect(self.exclusionChanged)
        self._window.installRequested.connect(self.installRequested)

        self._timer_service = UpdateTimerService(
            channel=controller_channel,
            window_provider=lambda: self._window,
            parent=self,
        )
        controller_channel.setParent(self)
        self._timer_service.attach()

        self._tray = QSystemTrayIcon(self)
        tray_icon = QApplication.style().standardIcon(QStyle.StandardPixmap.SP_ComputerIcon)
        self._tray.setIcon(tray_icon)
        self._tray.setToolTip(f"{APP_NAME} v{APP_VERSION}")

        initial = self.settings.read_settings()
        menu = QMenu()
        show_action = QAction("Show App", menu)
        check_action = QAction("Check for updates now", menu)
        auto_action = QAction("Automatic updates", menu)
        auto_action.setCheckable(True)
        auto_action.setChecked(initial.look_for_updates)
        minimize_action = QAction("Minimize to tray on close", menu)
        minimize_action.setCheckable(True)
        minimize_action.setChecked(initial.minimize_to_tray)
        exit_action = QAction("Quit", menu)
        menu.addAction(show_action)
        menu.addAction(check_action)
        menu.addAction(auto_action)
        menu.addAction(minimize_action)
        menu.addSeparator()
        menu.addAction(exit_action)
        self._tray.setContextMenu(menu)
        self._tray_menu = menu

        show_action.triggered.connect(self.show_window)
        check_action.triggered.connect(self._timer_service.request_update_now)
        auto_action.toggled.connect(self._on_auto_updates_toggled)
        minimize_action.toggled.connect(self._on_minimize_to_tray_toggled)
        exit_action.triggered.connect(self.shutdown)
        self._tray.activated.connect(self._on_tray_activated)

    def start(self) -> None:
        self._logger.info("Starting {} v{}", APP_NAME, APP_VERSION)
        self._window.show()
        if QSystemTrayIcon.isSystemTrayAvailable():
            self._tray.show()
        else:
            self._logger.warning("System tray unavailable; closing the window will not hide it.")
        self._worker_thread.start()

    def show_window(self) -> None:
        self._window.bring_to_front()

    def shutdown(self) -> None:
        self._logger.info("Shutting down application on user request.")
        self._timer_service.stop()
        self._worker_thread.quit()
        self._worker_thread.wait()
        if not self._worker.wait_for_updates(WORKER_SHUTDOWN_TIMEOUT_MS):
            self._logger.warning("Addon updates still running after {} ms; exiting anyway.", WORKER_SHUTDOWN_TIMEOUT_MS)
        self.settings.sync()
        self._tray.hide()
        self._window.allow_close()
        self._window.close()
        QApplication.instance().quit()

    def _on_auto_updates_toggled(self, enabled: bool) -> None:
        interval = self.settings.polling_config().interval_seconds
        self._logger.info("Automatic updates toggled {} from tray menu.", "on" if enabled else "off")
        self.pollingChanged.emit(enabled, interval)

    def _on_minimize_to_tray_toggled(self, enabled: bool) -> None:
        self._logger.info("Minimize to tray on close toggled {} from tray menu.", "on" if enabled else "off")
        self.settings.set_minimize_to_tray(enabled)

    def _on_tray_activated(self, reason: QSystemTrayIcon.ActivationReason) -> None:
        if reason == QSystemTrayIcon.ActivationReason.Trigger:
            self._window.toggle()
