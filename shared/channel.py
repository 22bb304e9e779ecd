"""
Asynchronous message channel between the controller and worker event loops.

Each side owns a ``ChannelEndpoint``. Messages always travel through queued
Qt connections, so ``send`` and ``call`` return immediately and the handler
runs later on the receiving endpoint's thread.
"""

from __future__ import annotations

import itertools
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional, Tuple

from PySide6.QtCore import QObject, Qt, Signal, Slot

from wowclassicui_app.wowclassicui_app import logger as app_logger

Handler = Callable[[Any], Any]

_ONE_WAY = 0


class ChannelError(RuntimeError):
    """Raised into a pending call when the peer has no handler for it."""


class ChannelEndpoint(QObject):
    _deliver = Signal(str, object, int)
    _respond = Signal(int, object, object)

    def __init__(self, name: str, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.name = name
        self._logger = app_logger.get_logger()
        self._handlers: Dict[str, Handler] = {}
        self._pending: Dict[int, Future] = {}
        self._lock = threading.Lock()
        self._request_ids = itertools.count(1)

    def connect_peer(self, peer: "ChannelEndpoint") -> None:
        """Route this endpoint's messages to ``peer`` and ``peer``'s replies back here."""
        self._deliver.connect(peer._on_message, Qt.ConnectionType.QueuedConnection)
        peer._respond.connect(self._on_reply, Qt.ConnectionType.QueuedConnection)

    def answer(self, message: str, handler: Handler) -> None:
        """Register the handler invoked when the peer sends ``message``."""
        self._handlers[message] = handler

    def send(self, message: str, payload: Any = None) -> None:
        """Deliver a one-way message; no acknowledgement is ever produced."""
        self._deliver.emit(message, payload, _ONE_WAY)

    def call(self, message: str, payload: Any = None) -> Future:
        """Deliver a request and return a future resolved with the peer's answer."""
        future: Future = Future()
        with self._lock:
            request_id = next(self._request_ids)
            self._pending[request_id] = future
        self._deliver.emit(message, payload, request_id)
        return future

    @Slot(str, object, int)
    def _on_message(self, message: str, payload: Any, request_id: int) -> None:
        handler = self._handlers.get(message)
        if handler is None:
            self._logger.warning("[{}] No handler registered for message '{}'.", self.name, message)
            if request_id != _ONE_WAY:
                self._respond.emit(request_id, None, ChannelError(f"Unhandled message: {message}"))
            return

        try:
            result = handler(payload)
        except Exception as exc:
            if request_id == _ONE_WAY:
                self._logger.exception("[{}] Handler for '{}' failed.", self.name, message)
            else:
                self._logger.debug("[{}] Handler for '{}' rejected: {}", self.name, message, exc)
                self._respond.emit(request_id, None, exc)
            return

        if request_id != _ONE_WAY:
            self._respond.emit(request_id, result, None)

    @Slot(int, object, object)
    def _on_reply(self, request_id: int, result: Any, error: Any) -> None:
        with self._lock:
            future = self._pending.pop(request_id, None)
        if future is None:
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)


def create_channel_pair(
    controller_name: str = "controller", worker_name: str = "worker"
) -> Tuple[ChannelEndpoint, ChannelEndpoint]:
    """Create two endpoints wired to each other."""
    controller = ChannelEndpoint(controller_name)
    worker = ChannelEndpoint(worker_name)
    controller.connect_peer(worker)
    worker.connect_peer(controller)
    return controller, worker
