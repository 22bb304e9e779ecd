"""
Worker side of WoWClassicUI: addon state and the update cycle.
"""

from .cycle_state import CyclePhase, UpdateCycleGuard  # noqa: F401
from .update_cycle import ApplyPolicy, CycleOutcome, UpdateCycle  # noqa: F401
