"""
One bounded scan -> diff -> apply pass over the installed addons.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Protocol

from shared.addon_record import AddonRecord
from shared.settings import SettingsStore
from worker.addon_store import AddonStore
from worker.cycle_state import CyclePhase, UpdateCycleGuard
from wowclassicui_app.wowclassicui_app import logger as app_logger


class Dispatcher(Protocol):
    def dispatch(self, addon: AddonRecord) -> None: ...


class CycleOutcome(Enum):
    NO_ADDONS_PATH = "no_addons_path"
    BUSY = "busy"
    NO_UPDATES = "no_updates"
    DISPATCHED = "dispatched"
    ABORTED = "aborted"


class ApplyPolicy(Enum):
    """What the apply phase does with an update it cannot match or must not apply."""

    ABORT_REMAINING = "abort_remaining"
    SKIP_ITEM = "skip_item"


@dataclass
class CycleResult:
    outcome: CycleOutcome
    dispatched: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    reason: Optional[str] = None


class UpdateCycle:
    def __init__(
        self,
        *,
        store: AddonStore,
        guard: UpdateCycleGuard,
        dispatcher: Dispatcher,
        settings: SettingsStore,
        addons_path: Callable[[], str],
        policy: ApplyPolicy = ApplyPolicy.ABORT_REMAINING,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._logger = app_logger.get_logger()
        self._store = store
        self._guard = guard
        self._dispatcher = dispatcher
        self._settings = settings
        self._addons_path = addons_path
        self._policy = policy
        self._clock = clock

    def run(self) -> CycleResult:
        """
        Run a cycle unless the AddOns folder is unknown or another cycle holds
        the guard. Scan and lookup errors propagate; the guard is released
        either way.
        """
        path = self._addons_path()
        if not path:
            self._logger.debug("Skipping update cycle; AddOns directory not configured.")
            return CycleResult(CycleOutcome.NO_ADDONS_PATH)

        if not self._guard.try_begin():
            self._logger.debug("Skipping update cycle; another operation is in progress.")
            return CycleResult(CycleOutcome.BUSY)

        try:
            self._settings.set_last_check(self._clock())
            self._store.reset_updates()
            addons = self._store.scan_installed(path)

            self._guard.advance(CyclePhase.DIFFING)
            self._store.look_for_updates(addons)

            self._guard.advance(CyclePhase.APPLYING)
            return self._apply(addons)
        finally:
            self._guard.finish()

    def _apply(self, addons: List[AddonRecord]) -> CycleResult:
        if self._store.update_count <= 0:
            return CycleResult(CycleOutcome.NO_UPDATES)

        installed = {addon.id: addon for addon in addons}
        excluded = self._store.exclusions
        result = CycleResult(CycleOutcome.DISPATCHED)

        for addon_id in self._store.updates:
            addon = installed.get(addon_id)
            if addon is None:
                reason = f"Update target {addon_id} is not installed."
            elif addon.id in excluded:
                reason = f"Update target {addon_id} is excluded from automatic updates."
            else:
                self._dispatcher.dispatch(addon)
                result.dispatched.append(addon.id)
                continue

            if self._policy is ApplyPolicy.ABORT_REMAINING:
                self._logger.warning("{} Stopping the remaining automatic updates.", reason)
                result.outcome = CycleOutcome.ABORTED
                result.reason = reason
                return result

            self._logger.info("{} Skipping it.", reason)
            result.skipped.append(addon_id)

        return result
