"""
Single-flight guard for the worker's update cycle.
"""

from __future__ import annotations

import threading
from enum import Enum


class CyclePhase(Enum):
    IDLE = "Idle"
    SCANNING = "Scanning"
    DIFFING = "Diffing"
    APPLYING = "Applying"


_NEXT_PHASE = {
    CyclePhase.SCANNING: CyclePhase.DIFFING,
    CyclePhase.DIFFING: CyclePhase.APPLYING,
}


class InvalidTransitionError(RuntimeError):
    """Raised when a cycle tries to skip or repeat a phase."""


class UpdateCycleGuard:
    """
    Holds the current cycle phase plus the number of dispatched per-addon
    updates still running. Every transition happens under one lock, so two
    triggers can never both observe the guard as idle.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._phase = CyclePhase.IDLE
        self._applies_in_flight = 0

    @property
    def phase(self) -> CyclePhase:
        with self._lock:
            return self._phase

    @property
    def applies_in_flight(self) -> int:
        with self._lock:
            return self._applies_in_flight

    @property
    def installed_scan_in_progress(self) -> bool:
        return self.phase is CyclePhase.SCANNING

    @property
    def update_scan_in_progress(self) -> bool:
        return self.phase is CyclePhase.DIFFING

    @property
    def update_apply_in_progress(self) -> bool:
        with self._lock:
            return self._phase is CyclePhase.APPLYING or self._applies_in_flight > 0

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._busy()

    def try_begin(self) -> bool:
        """Move IDLE -> SCANNING; return False without side effects when busy."""
        with self._lock:
            if self._busy():
                return False
            self._phase = CyclePhase.SCANNING
            return True

    def advance(self, phase: CyclePhase) -> None:
        with self._lock:
            expected = _NEXT_PHASE.get(self._phase)
            if expected is not phase:
                raise InvalidTransitionError(f"Cannot move from {self._phase.value} to {phase.value}.")
            self._phase = phase

    def finish(self) -> None:
        with self._lock:
            self._phase = CyclePhase.IDLE

    def apply_started(self) -> None:
        with self._lock:
            self._applies_in_flight += 1

    def apply_finished(self) -> None:
        with self._lock:
            self._applies_in_flight = max(0, self._applies_in_flight - 1)

    def _busy(self) -> bool:
        return self._phase is not CyclePhase.IDLE or self._applies_in_flight > 0
