"""
Single-instance support: a lock file plus a local socket that lets a second
launch hand control to the running instance.
"""

from __future__ import annotations

import getpass
import re
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QLockFile, QObject, QStandardPaths, Signal
from PySide6.QtNetwork import QLocalServer, QLocalSocket

from . import logger as app_logger

_LOCK_FILE_NAME = "wowclassicui.lock"
_CONNECT_TIMEOUT_MS = 1000


def default_lock_path() -> Path:
    location: Optional[str] = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.TempLocation)
    return Path(location or Path.home()) / _LOCK_FILE_NAME


def default_server_name() -> str:
    """Per-user socket name so two accounts on one machine do not collide."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "default"
    return "wowclassicui-" + re.sub(r"[^A-Za-z0-9_.-]", "_", user)


class InstanceGuard:
    """Lock file guard to prevent concurrent instances."""

    def __init__(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = QLockFile(str(path))
        self._lock.setStaleLockTime(0)

    def acquire(self) -> bool:
        return self._lock.tryLock(100)

    def release(self) -> None:
        if self._lock.isLocked():
            self._lock.unlock()


class InstanceServer(QObject):
    """Listens for second launches and emits ``activationRequested`` for each."""

    activationRequested = Signal()

    def __init__(self, name: Optional[str] = None, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._logger = app_logger.get_logger()
        self.name = name or default_server_name()
        self._server = QLocalServer(self)
        self._server.newConnection.connect(self._on_new_connection)

    def listen(self) -> bool:
        # A crashed instance can leave its socket file behind.
        QLocalServer.removeServer(self.name)
        if not self._server.listen(self.name):
            self._logger.warning("Cannot listen for second launches on '{}': {}", self.name, self._server.errorString())
            return False
        return True

    def close(self) -> None:
        self._server.close()

    def _on_new_connection(self) -> None:
        while self._server.hasPendingConnections():
            socket = self._server.nextPendingConnection()
            socket.disconnected.connect(socket.deleteLater)
            socket.disconnectFromServer()
            self._logger.info("Second launch detected; bringing the window to the front.")
            self.activationRequested.emit()


def notify_running_instance(name: Optional[str] = None, timeout_ms: int = _CONNECT_TIMEOUT_MS) -> bool:
    """Ask the running instance to show itself. Returns False if nobody answered."""
    socket = QLocalSocket()
    socket.connectToServer(name or default_server_name())
    if not socket.waitForConnected(timeout_ms):
        return False
    socket.write(b"show\n")
    socket.waitForBytesWritten(timeout_ms)
    socket.disconnectFromServer()
    return True
