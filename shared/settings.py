"""
QSettings-backed configuration shared by the controller and the worker.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, FrozenSet, Iterable, Optional

from PySide6.QtCore import QSettings

from shared.addon_record import normalize_addon_id
from shared.messages import DEFAULT_CHECK_INTERVAL_SECONDS, PollingConfig
from wowclassicui_app.wowclassicui_app import APP_NAME, ORGANIZATION_NAME
from wowclassicui_app.wowclassicui_app import logger as app_logger

_LOGGER = app_logger.get_logger()

_MIN_CHECK_INTERVAL = 60
_MAX_CHECK_INTERVAL = 86400

LOOK_FOR_UPDATES_KEY = "lookForUpdates"
CHECK_INTERVAL_KEY = "checkInterval"
MINIMIZE_TO_TRAY_KEY = "minimizeToTray"
WOW_PATH_KEY = "wowPath"
EXCLUDED_ADDONS_KEY = "excludedAddons"
LAST_CHECK_KEY = "lastCheck"


@dataclass(eq=True)
class AppSettings:
    look_for_updates: bool = True
    check_interval: int = DEFAULT_CHECK_INTERVAL_SECONDS
    minimize_to_tray: bool = True
    wow_path: str = ""
    excluded_addons: FrozenSet[str] = field(default_factory=frozenset)


class SettingsStore:
    """Loads persisted settings from QSettings and clamps invalid data."""

    def __init__(self, qsettings: Optional[QSettings] = None) -> None:
        self._settings = qsettings if qsettings is not None else QSettings(ORGANIZATION_NAME, APP_NAME)
        # One QSettings object is shared by the GUI thread, the worker thread and the update pool.
        self._lock = threading.Lock()

    def read_settings(self) -> AppSettings:
        return AppSettings(
            look_for_updates=self._read_bool(LOOK_FOR_UPDATES_KEY, True),
            check_interval=self._read_check_interval(),
            minimize_to_tray=self._read_bool(MINIMIZE_TO_TRAY_KEY, True),
            wow_path=self.wow_path(),
            excluded_addons=self.excluded_addons(),
        )

    def polling_config(self) -> PollingConfig:
        return PollingConfig(
            enabled=self._read_bool(LOOK_FOR_UPDATES_KEY, True),
            interval_seconds=self._read_check_interval(),
        )

    def set_polling(self, config: PollingConfig) -> PollingConfig:
        """Persist polling preferences and return them as they will be read back."""
        interval = _clamp_interval(config.interval_seconds)
        self._write(LOOK_FOR_UPDATES_KEY, bool(config.enabled))
        self._write(CHECK_INTERVAL_KEY, interval)
        return PollingConfig(enabled=bool(config.enabled), interval_seconds=interval)

    def minimize_to_tray(self) -> bool:
        return self._read_bool(MINIMIZE_TO_TRAY_KEY, True)

    def set_minimize_to_tray(self, enabled: bool) -> None:
        self._write(MINIMIZE_TO_TRAY_KEY, bool(enabled))

    def wow_path(self) -> str:
        raw = self._read(WOW_PATH_KEY, "")
        return str(raw or "").strip()

    def set_wow_path(self, path: str) -> None:
        self._write(WOW_PATH_KEY, str(path))

    def excluded_addons(self) -> FrozenSet[str]:
        raw = self._read(EXCLUDED_ADDONS_KEY, "")
        if isinstance(raw, (list, tuple)):
            items: Iterable[Any] = raw
        else:
            items = str(raw or "").split(",")
        return frozenset(value for value in (normalize_addon_id(item) for item in items) if value)

    def set_excluded_addons(self, addon_ids: Iterable[Any]) -> None:
        normalized = sorted({normalize_addon_id(value) for value in addon_ids} - {""})
        self._write(EXCLUDED_ADDONS_KEY, ",".join(normalized))

    def last_check(self) -> Optional[datetime]:
        raw = self._read(LAST_CHECK_KEY, "")
        if not raw:
            return None
        try:
            return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            _LOGGER.warning("Ignoring malformed {} value {!r}.", LAST_CHECK_KEY, raw)
            return None

    def set_last_check(self, when: datetime) -> None:
        iso_value = when.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
        self._write(LAST_CHECK_KEY, iso_value)

    def sync(self) -> None:
        with self._lock:
            self._settings.sync()

    def _read(self, key: str, default: Any) -> Any:
        with self._lock:
            return self._settings.value(key, default)

    def _write(self, key: str, value: Any) -> None:
        with self._lock:
            self._settings.setValue(key, value)

    def _read_bool(self, key: str, default: bool) -> bool:
        raw = self._read(key, default)
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str):
            lowered = raw.strip().lower()
            if lowered in {"true", "1", "yes"}:
                return True
            if lowered in {"false", "0", "no"}:
                return False
            _LOGGER.warning("Setting {} has unexpected value {!r}.", key, raw)
            return default
        if isinstance(raw, int):
            return bool(raw)
        return default

    def _read_check_interval(self) -> int:
        raw = self._read(CHECK_INTERVAL_KEY, DEFAULT_CHECK_INTERVAL_SECONDS)
        try:
            value = int(raw)
        except (TypeError, ValueError):
            _LOGGER.warning("Setting {} has unexpected value {!r}.", CHECK_INTERVAL_KEY, raw)
            return DEFAULT_CHECK_INTERVAL_SECONDS
        return _clamp_interval(value)


def _clamp_interval(value: int) -> int:
    if value < _MIN_CHECK_INTERVAL or value > _MAX_CHECK_INTERVAL:
        _LOGGER.warning(
            "Invalid check interval {} found in settings. Clamping to safe bounds.",
            value,
        )
    return max(_MIN_CHECK_INTERVAL, min(_MAX_CHECK_INTERVAL, value))
