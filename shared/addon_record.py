"""
Shared representation of installed addons and the updates available for them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


def normalize_addon_id(value: Any) -> str:
    """
    Return the canonical string form of an addon identifier.

    The API reports ids as integers while settings and TOC headers carry
    strings; ``12``, ``"12"`` and ``" 12 "`` all map to ``"12"``.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        raise TypeError("Addon id cannot be a boolean.")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _optional_id(value: Any) -> Optional[str]:
    normalized = normalize_addon_id(value)
    return normalized or None


@dataclass(slots=True)
class AddonRecord:
    """
    An addon found in the AddOns directory.

    ``folders`` lists every top-level folder that belongs to the addon; a
    single project frequently ships several (``DBM-Core``, ``DBM-GUI``...).
    """

    id: str
    name: str
    main_file_id: Optional[str] = None
    installed_version: str = ""
    folders: Tuple[str, ...] = field(default_factory=tuple)
    hash: str = ""

    def __post_init__(self) -> None:
        self.id = normalize_addon_id(self.id)
        self.main_file_id = _optional_id(self.main_file_id)
        self.folders = tuple(self.folders)


@dataclass(slots=True)
class UpdateInfo:
    """Metadata describing the newest file published for an addon."""

    addon_id: str
    version: str
    main_file_id: Optional[str] = None
    file_name: str = ""
    download_url: Optional[str] = None

    def __post_init__(self) -> None:
        self.addon_id = normalize_addon_id(self.addon_id)
        self.main_file_id = _optional_id(self.main_file_id)

    @classmethod
    def from_payload(cls, addon_id: Any, payload: Dict[str, Any]) -> "UpdateInfo":
        main_file = payload.get("mainFile") or {}
        return cls(
            addon_id=addon_id,
            version=str(main_file.get("version") or payload.get("version") or ""),
            main_file_id=main_file.get("id") or payload.get("mainFileId"),
            file_name=str(main_file.get("fileName") or ""),
            download_url=main_file.get("downloadUrl") or payload.get("downloadUrl"),
        )
