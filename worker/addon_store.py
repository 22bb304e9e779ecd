"""
Worker-owned addon state: installed addons, pending updates and exclusions.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence

from PySide6.QtCore import QObject, Signal

from shared.addon_record import AddonRecord, UpdateInfo, normalize_addon_id
from shared.settings import SettingsStore
from worker.scanner import ScanResult, scan_addons_dir
from worker.update_source import UpdateSource
from worker.updater import AddonUpdater, UpdaterError
from wowclassicui_app.wowclassicui_app import logger as app_logger


class AddonStore(QObject):
    changed = Signal()

    def __init__(
        self,
        *,
        update_source: UpdateSource,
        updater: AddonUpdater,
        settings: SettingsStore,
        scanner: Callable[[Path], ScanResult] = scan_addons_dir,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = app_logger.get_logger()
        self._update_source = update_source
        self._updater = updater
        self._settings = settings
        self._scanner = scanner
        # Updates finish on pool threads while the worker thread reads state.
        self._lock = threading.Lock()
        self._installed: List[AddonRecord] = []
        self._updates: Dict[str, UpdateInfo] = {}

    @property
    def installed(self) -> List[AddonRecord]:
        with self._lock:
            return list(self._installed)

    @property
    def updates(self) -> Dict[str, UpdateInfo]:
        with self._lock:
            return dict(self._updates)

    @property
    def update_count(self) -> int:
        with self._lock:
            return len(self._updates)

    @property
    def exclusions(self) -> FrozenSet[str]:
        return self._settings.excluded_addons()

    def set_excluded(self, addon_id: object, excluded: bool) -> FrozenSet[str]:
        """Add or remove an addon from the ExclusionSet and return the new set."""
        canonical = normalize_addon_id(addon_id)
        if not canonical:
            raise ValueError("Cannot exclude an addon without an id.")
        current = set(self._settings.excluded_addons())
        if excluded:
            current.add(canonical)
        else:
            current.discard(canonical)
        self._settings.set_excluded_addons(current)
        self._logger.info(
            "Addon {} {} automatic updates.", canonical, "excluded from" if excluded else "returned to"
        )
        self.changed.emit()
        return frozenset(current)

    def reset_updates(self) -> None:
        with self._lock:
            self._updates = {}
        self.changed.emit()

    def scan_installed(self, path: str) -> List[AddonRecord]:
        result = self._scanner(Path(path))
        for folder, error in result.errors:
            self._logger.error("Failed to read addon at {}: {}", folder, error)
        if result.unmanaged:
            self._logger.debug("Ignoring unmanaged addon folders: {}", ", ".join(result.unmanaged))

        with self._lock:
            self._installed = list(result.addons)
        self._logger.info("Installed addons found: {}", len(result.addons))
        self.changed.emit()
        return list(result.addons)

    def look_for_updates(self, addons: Sequence[AddonRecord]) -> Dict[str, UpdateInfo]:
        updates = {normalize_addon_id(key): info for key, info in self._update_source.look(addons).items()}
        with self._lock:
            self._updates = dict(updates)
        self._logger.info("Updates available: {}", len(updates))
        self.changed.emit()
        return dict(updates)

    def update_addon(self, addon: AddonRecord) -> None:
        with self._lock:
            info = self._updates.get(addon.id)
        if info is None:
            raise UpdaterError(f"No pending update for addon {addon.id}.")

        self._updater.update(addon, info)

        with self._lock:
            self._updates.pop(addon.id, None)
            self._installed = [
                replace(record, installed_version=info.version, main_file_id=info.main_file_id)
                if record.id == addon.id
                else record
                for record in self._installed
            ]
        self._logger.info("Updated {} (id={}) to {}", addon.name, addon.id, info.version or "latest")
        self.changed.emit()

    def install_addon(self, main_file_id: object) -> List[str]:
        folders = self._updater.install(main_file_id)
        self._logger.info("Installed file {} into folders {}", main_file_id, ", ".join(folders))
        self.changed.emit()
        return folders
