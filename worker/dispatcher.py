"""
Fire-and-forget execution of per-addon file operations on a Qt thread pool.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from PySide6.QtCore import QThreadPool

from shared.addon_record import AddonRecord
from worker.cycle_state import UpdateCycleGuard
from wowclassicui_app.wowclassicui_app import logger as app_logger

POOL_THREAD_PREFIX = "update-pool"


class UpdateDispatcher:
    """
    Starts one pool task per addon and returns immediately. The guard counts
    tasks in flight so a new cycle cannot start while files are still being
    written to disk.
    """

    def __init__(
        self,
        action: Callable[[AddonRecord], None],
        guard: UpdateCycleGuard,
        pool: Optional[QThreadPool] = None,
    ) -> None:
        self._logger = app_logger.get_logger()
        self._action = action
        self._guard = guard
        self._pool = pool or QThreadPool()

    def dispatch(self, addon: AddonRecord) -> None:
        self._logger.debug("Dispatching update for {} (id={})", addon.name, addon.id)
        self.submit(f"Update of {addon.name} (id={addon.id})", lambda: self._action(addon))

    def submit(self, description: str, task: Callable[[], None]) -> None:
        """Run any other AddOns-writing task under the same in-flight accounting."""
        self._guard.apply_started()
        self._pool.start(lambda: self._run(description, task))

    def wait_for_done(self, msecs: int = -1) -> bool:
        return self._pool.waitForDone(msecs)

    def _run(self, description: str, task: Callable[[], None]) -> None:
        threading.current_thread().name = f"{POOL_THREAD_PREFIX}-{threading.get_ident()}"
        try:
            task()
        except Exception:
            self._logger.exception("{} failed.", description)
        finally:
            self._guard.apply_finished()
