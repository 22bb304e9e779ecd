"""Tests for the update cycle guard."""
import threading

import pytest

from worker.cycle_state import CyclePhase, InvalidTransitionError, UpdateCycleGuard


class TestUpdateCycleGuard:
    def test_starts_idle(self):
        guard = UpdateCycleGuard()
        assert guard.phase is CyclePhase.IDLE
        assert guard.is_busy is False
        assert not guard.installed_scan_in_progress
        assert not guard.update_scan_in_progress
        assert not guard.update_apply_in_progress

    def test_full_cycle_transitions(self):
        guard = UpdateCycleGuard()
        assert guard.try_begin() is True
        assert guard.installed_scan_in_progress

        guard.advance(CyclePhase.DIFFING)
        assert guard.update_scan_in_progress
        assert not guard.installed_scan_in_progress

        guard.advance(CyclePhase.APPLYING)
        assert guard.update_apply_in_progress

        guard.finish()
        assert guard.phase is CyclePhase.IDLE

    def test_second_begin_is_rejected_without_side_effects(self):
        guard = UpdateCycleGuard()
        guard.try_begin()
        guard.advance(CyclePhase.DIFFING)

        assert guard.try_begin() is False
        assert guard.phase is CyclePhase.DIFFING

    def test_phases_cannot_be_skipped(self):
        guard = UpdateCycleGuard()
        guard.try_begin()
        with pytest.raises(InvalidTransitionError):
            guard.advance(CyclePhase.APPLYING)

    def test_advance_from_idle_is_rejected(self):
        guard = UpdateCycleGuard()
        with pytest.raises(InvalidTransitionError):
            guard.advance(CyclePhase.DIFFING)

    def test_in_flight_applies_keep_guard_busy(self):
        guard = UpdateCycleGuard()
        guard.apply_started()
        assert guard.update_apply_in_progress
        assert guard.try_begin() is False

        guard.apply_finished()
        assert guard.try_begin() is True

    def test_apply_finished_never_goes_negative(self):
        guard = UpdateCycleGuard()
        guard.apply_finished()
        assert guard.applies_in_flight == 0

    def test_only_one_concurrent_begin_wins(self):
        guard = UpdateCycleGuard()
        barrier = threading.Barrier(8)
        results = []

        def contend():
            barrier.wait()
            results.append(guard.try_begin())

        threads = [threading.Thread(target=contend) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1
