"""
Controller side of WoWClassicUI: window, tray and the update timer.
"""

from .update_timer import UpdateTimerService  # noqa: F401
