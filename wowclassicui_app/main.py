"""
Entry point for the WoWClassicUI application.
"""

from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from controller.app import AppCoordinator
from wowclassicui_app.wowclassicui_app import APP_NAME, ORGANIZATION_NAME
from wowclassicui_app.wowclassicui_app import logger as app_logger
from wowclassicui_app.wowclassicui_app.crash_reporting import init_crash_reporting
from wowclassicui_app.wowclassicui_app.single_instance import (
    InstanceGuard,
    InstanceServer,
    default_lock_path,
    notify_running_instance,
)

_LOGGER = app_logger.get_logger()


def main() -> int:
    """Launch the application, or hand over to the instance that holds the lock."""
    init_crash_reporting()

    app = QApplication(sys.argv)
    guard = InstanceGuard(default_lock_path())
    if not guard.acquire():
        if notify_running_instance():
            _LOGGER.debug("{} already running; asked it to show its window.", APP_NAME)
        else:
            _LOGGER.warning("{} lock is held but the running instance did not answer.", APP_NAME)
        return 0

    try:
        app.setOrganizationName(ORGANIZATION_NAME)
        app.setApplicationName(APP_NAME)
        # The tray icon keeps the application alive while the window is hidden.
        app.setQuitOnLastWindowClosed(False)

        coordinator = AppCoordinator()
        server = InstanceServer(parent=coordinator)
        server.activationRequested.connect(coordinator.show_window)
        server.listen()

        coordinator.start()
        return app.exec()
    finally:
        guard.release()


if __name__ == "__main__":
    raise SystemExit(main())
