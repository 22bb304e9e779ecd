"""
Remote lookup of available addon updates.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

from shared.addon_record import AddonRecord, UpdateInfo
from shared.http_client import ApiClient

UPDATES_ENDPOINT = "addons/updates"


class UpdateSourceError(ValueError):
    """Raised when the API answers with an unusable payload."""


class UpdateSource:
    def __init__(self, api: ApiClient) -> None:
        self._api = api

    def look(self, addons: Sequence[AddonRecord]) -> Dict[str, UpdateInfo]:
        """
        Ask the API which of ``addons`` have a newer file.

        Returns a mapping of canonical addon id to update metadata, in the
        order the API listed them.
        """
        if not addons:
            return {}

        payload = {
            "addons": [
                {
                    "id": addon.id,
                    "version": addon.installed_version,
                    "hash": addon.hash,
                    "folders": list(addon.folders),
                }
                for addon in addons
            ]
        }
        data = self._api.post_json(UPDATES_ENDPOINT, payload)
        entries: Any = data.get("data", data) if isinstance(data, dict) else None
        if not isinstance(entries, dict):
            raise UpdateSourceError("Update response must be a JSON object keyed by addon id.")

        updates: Dict[str, UpdateInfo] = {}
        for raw_id, item in entries.items():
            if not isinstance(item, dict):
                continue
            info = UpdateInfo.from_payload(raw_id, item)
            if info.addon_id:
                updates[info.addon_id] = info
        return updates
