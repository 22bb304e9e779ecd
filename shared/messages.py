"""
Message names and payloads exchanged between the controller and the worker.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

INIT_LOOK_FOR_UPDATES = "initLookForUpdates"
CHECK_INTERVAL_UPDATE = "checkIntervalUpdate"
ASK_FOR_UPDATE = "askForUpdate"

DEFAULT_CHECK_INTERVAL_SECONDS = 3600


@dataclass(frozen=True)
class PollingConfig:
    enabled: bool = True
    interval_seconds: int = DEFAULT_CHECK_INTERVAL_SECONDS

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PollingConfig":
        return cls(
            enabled=bool(payload.get("lookForUpdates", True)),
            interval_seconds=int(payload.get("checkInterval", DEFAULT_CHECK_INTERVAL_SECONDS)),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {"lookForUpdates": self.enabled, "checkInterval": self.interval_seconds}
