"""
Worker side of the application, running in its own Qt event loop.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

from PySide6.QtCore import QObject, Signal, Slot

from shared.addon_record import AddonRecord, UpdateInfo
from shared.channel import ChannelEndpoint
from shared.http_client import ApiClient
from shared.messages import (
    ASK_FOR_UPDATE,
    CHECK_INTERVAL_UPDATE,
    INIT_LOOK_FOR_UPDATES,
    PollingConfig,
)
from shared.settings import SettingsStore
from worker.addon_store import AddonStore
from worker.addons_path import AddonsPathResolver, init_wow_path
from worker.cycle_state import UpdateCycleGuard
from worker.dispatcher import UpdateDispatcher
from worker.update_cycle import ApplyPolicy, CycleResult, UpdateCycle
from worker.update_source import UpdateSource
from worker.updater import AddonUpdater
from wowclassicui_app.wowclassicui_app import logger as app_logger

WORKER_THREAD_NAME = "wowclassicui-worker"


@dataclass(frozen=True)
class WorkerSnapshot:
    installed: List[AddonRecord] = field(default_factory=list)
    updates: Dict[str, UpdateInfo] = field(default_factory=dict)
    last_check: Optional[datetime] = None
    excluded: FrozenSet[str] = frozenset()


class WorkerRuntime(QObject):
    stateChanged = Signal(object)
    cycleFinished = Signal(object)

    def __init__(
        self,
        *,
        channel: ChannelEndpoint,
        settings: SettingsStore,
        api: ApiClient,
        policy: ApplyPolicy = ApplyPolicy.ABORT_REMAINING,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = app_logger.get_logger()
        self._settings = settings
        self._channel = channel
        # Parent the endpoint so moveToThread() carries it along.
        self._channel.setParent(self)

        self.guard = UpdateCycleGuard()
        self.paths = AddonsPathResolver(settings)
        self.store = AddonStore(
            update_source=UpdateSource(api),
            updater=AddonUpdater(api, self.paths.get_addons_path),
            settings=settings,
            parent=self,
        )
        self.dispatcher = UpdateDispatcher(self.store.update_addon, self.guard)
        self.cycle = UpdateCycle(
            store=self.store,
            guard=self.guard,
            dispatcher=self.dispatcher,
            settings=settings,
            addons_path=self.paths.get_addons_path,
            policy=policy,
        )

        self.store.changed.connect(self._publish_state)
        self._channel.answer(ASK_FOR_UPDATE, self._on_ask_for_update)

    @Slot()
    def boot(self) -> None:
        """Detect the game folder and register polling preferences with the controller."""
        threading.current_thread().name = WORKER_THREAD_NAME
        init_wow_path(self._settings)
        config = self._settings.polling_config()
        self._logger.info(
            "Worker ready. Automatic updates: {}, interval: {}s",
            config.enabled,
            config.interval_seconds,
        )
        self._call(INIT_LOOK_FOR_UPDATES, config)
        self._publish_state()

    @Slot(bool, int)
    def update_polling(self, enabled: bool, interval_seconds: int) -> None:
        config = self._settings.set_polling(PollingConfig(enabled=enabled, interval_seconds=interval_seconds))
        self._call(CHECK_INTERVAL_UPDATE, config)

    @Slot(str, bool)
    def set_addon_excluded(self, addon_id: str, excluded: bool) -> None:
        try:
            self.store.set_excluded(addon_id, excluded)
        except ValueError as exc:
            self._logger.warning("Ignoring exclusion change: {}", exc)

    @Slot(str)
    def install_addon(self, main_file_id: str) -> None:
        """Install a new addon by file id on the update pool, then refresh the installed list."""
        if not self.paths.get_addons_path():
            self._logger.warning("Cannot install file {}; AddOns directory not configured.", main_file_id)
            return
        self.dispatcher.submit(f"Install of file {main_file_id}", lambda: self._install(main_file_id))

    def wait_for_updates(self, msecs: int = -1) -> bool:
        return self.dispatcher.wait_for_done(msecs)

    def _on_ask_for_update(self, _payload=None) -> CycleResult:
        result = self.cycle.run()
        self._logger.info(
            "Update cycle finished: {} (dispatched={})",
            result.outcome.value,
            len(result.dispatched),
        )
        self.cycleFinished.emit(result)
        self._publish_state()
        return result

    def _install(self, main_file_id: str) -> None:
        self.store.install_addon(main_file_id)
        path = self.paths.get_addons_path()
        if path:
            self.store.scan_installed(path)

    def _call(self, message: str, config: PollingConfig) -> Future:
        future = self._channel.call(message, config.to_payload())
        future.add_done_callback(lambda done: self._log_call_failure(message, done))
        return future

    def _log_call_failure(self, message: str, future: Future) -> None:
        error = future.exception()
        if error is not None:
            self._logger.error("Controller rejected '{}': {}", message, error)

    @Slot()
    def _publish_state(self) -> None:
        self.stateChanged.emit(
            WorkerSnapshot(
                installed=self.store.installed,
                updates=self.store.updates,
                last_check=self._settings.last_check(),
                excluded=self.store.exclusions,
            )
        )
