"""
Resolution of the World of Warcraft AddOns directory.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from shared.settings import SettingsStore
from wowclassicui_app.wowclassicui_app import logger as app_logger

_LOGGER = app_logger.get_logger()

FLAVOR_FOLDERS = ("_classic_", "_classic_era_")


def resolve_addons_dir(wow_path: Path) -> str:
    """Return the AddOns folder inside a WoW install, or an empty string."""
    candidates = [wow_path / flavor / "Interface" / "AddOns" for flavor in FLAVOR_FOLDERS]
    candidates.append(wow_path / "Interface" / "AddOns")
    for candidate in candidates:
        if candidate.is_dir():
            return str(candidate)
    return ""


def default_wow_locations() -> List[Path]:
    if sys.platform == "win32":
        roots = [
            os.environ.get("ProgramFiles(x86)", r"C:\Program Files (x86)"),
            os.environ.get("ProgramFiles", r"C:\Program Files"),
        ]
        return [Path(root) / "World of Warcraft" for root in roots]
    if sys.platform == "darwin":
        return [Path("/Applications/World of Warcraft")]
    return [
        Path.home() / "Games" / "world-of-warcraft" / "drive_c" / "Program Files (x86)" / "World of Warcraft",
    ]


def init_wow_path(settings: SettingsStore, candidates: Optional[Iterable[Path]] = None) -> str:
    """Fill the WoW folder setting from well-known install locations when it is empty."""
    current = settings.wow_path()
    if current:
        return current

    for candidate in candidates if candidates is not None else default_wow_locations():
        if candidate.is_dir() and resolve_addons_dir(candidate):
            _LOGGER.info("Detected World of Warcraft installation at {}", candidate)
            settings.set_wow_path(str(candidate))
            return str(candidate)

    _LOGGER.debug("No World of Warcraft installation detected.")
    return ""


class AddonsPathResolver:
    def __init__(self, settings: SettingsStore) -> None:
        self._settings = settings

    def get_addons_path(self) -> str:
        wow_path = self._settings.wow_path()
        if not wow_path:
            return ""
        return resolve_addons_dir(Path(wow_path))
