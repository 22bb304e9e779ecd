"""
Installed addon discovery for the AddOns directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from shared.addon_record import AddonRecord, normalize_addon_id
from shared.toc_metadata import (
    PROJECT_ID_KEYS,
    VERSION_KEYS,
    TocReadError,
    clean_title,
    first_header,
    read_toc_headers,
)
from worker.addon_hash import compute_addon_hash

_BLIZZARD_PREFIX = "blizzard_"
_CLASSIC_SUFFIXES = ("_Classic", "-Classic", "_Vanilla", "-Vanilla")


@dataclass(slots=True)
class ScanResult:
    addons: List[AddonRecord]
    errors: List[Tuple[Path, Exception]]
    unmanaged: List[str]


def scan_addons_dir(addons_dir: Path) -> ScanResult:
    """
    Inspect addon folders, read their TOC headers and group folders that
    belong to the same project into a single record.
    """
    errors: List[Tuple[Path, Exception]] = []
    unmanaged: List[str] = []
    grouped: Dict[str, List[Tuple[Path, Dict[str, str]]]] = {}

    try:
        subdirs = [p for p in Path(addons_dir).iterdir() if p.is_dir()]
    except FileNotFoundError:
        return ScanResult(addons=[], errors=[], unmanaged=[])

    for folder in sorted(subdirs):
        # Hidden folders are staging and backup copies left by the updater.
        if folder.name.startswith(".") or folder.name.lower().startswith(_BLIZZARD_PREFIX):
            continue

        toc_path = find_toc_file(folder)
        if toc_path is None:
            errors.append((folder, FileNotFoundError(f"Missing .toc file in {folder}")))
            continue

        try:
            headers = read_toc_headers(toc_path)
        except TocReadError as exc:
            errors.append((folder, exc))
            continue

        addon_id = normalize_addon_id(first_header(headers, PROJECT_ID_KEYS))
        if not addon_id:
            unmanaged.append(folder.name)
            continue
        grouped.setdefault(addon_id, []).append((folder, headers))

    addons: List[AddonRecord] = []
    for addon_id, members in grouped.items():
        try:
            addons.append(_build_record(addon_id, members))
        except OSError as exc:
            errors.append((members[0][0], exc))

    return ScanResult(addons=addons, errors=errors, unmanaged=unmanaged)


def find_toc_file(folder: Path) -> Optional[Path]:
    exact = folder / f"{folder.name}.toc"
    if exact.exists():
        return exact
    for suffix in _CLASSIC_SUFFIXES:
        candidate = folder / f"{folder.name}{suffix}.toc"
        if candidate.exists():
            return candidate
    tocs = sorted(folder.glob("*.toc"))
    return tocs[0] if tocs else None


def _build_record(addon_id: str, members: List[Tuple[Path, Dict[str, str]]]) -> AddonRecord:
    folders = [folder for folder, _ in members]
    name = ""
    version = ""
    for _, headers in members:
        name = name or clean_title(headers.get("X-Curse-Project-Name", ""))
        version = version or first_header(headers, VERSION_KEYS)
    if not name:
        # Shortest folder name is usually the core module (DBM-Core vs DBM-GUI).
        folder, headers = min(members, key=lambda member: len(member[0].name))
        name = clean_title(headers.get("Title", "")) or folder.name

    return AddonRecord(
        id=addon_id,
        name=name,
        installed_version=version,
        folders=tuple(folder.name for folder in folders),
        hash=compute_addon_hash(folders),
    )
