"""
Download and installation of addon files into the AddOns directory.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
import zipfile
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Tuple

from shared.addon_record import AddonRecord, UpdateInfo, normalize_addon_id
from shared.http_client import ApiClient

FILE_DOWNLOAD_ENDPOINT = "files/{file_id}/download"


class UpdaterError(RuntimeError):
    """Raised when an addon file cannot be resolved or installed."""


class AddonUpdater:
    """
    Installs addon archives published by the API.

    - update(addon, info) replaces the addon's folders with the new release
    - install(main_file_id) adds a new addon
    """

    def __init__(self, api: ApiClient, addons_path: Callable[[], str]) -> None:
        self._api = api
        self._addons_path = addons_path
        # Pool threads may update addons that ship the same folder (shared libraries).
        self._locks_guard = threading.Lock()
        self._folder_locks: Dict[str, threading.Lock] = {}

    # ----------------- Public API -----------------

    def update(self, addon: AddonRecord, info: UpdateInfo) -> List[str]:
        if normalize_addon_id(info.addon_id) != addon.id:
            raise UpdaterError(f"Update for addon {info.addon_id} cannot be applied to addon {addon.id}.")
        source = info.download_url or self._file_url(info.main_file_id)
        return self._fetch_and_install(source, replaces=addon.folders)

    def install(self, main_file_id: object) -> List[str]:
        return self._fetch_and_install(self._file_url(main_file_id), replaces=())

    # ----------------- Internal helpers -----------------

    @staticmethod
    def _file_url(main_file_id: object) -> str:
        file_id = normalize_addon_id(main_file_id)
        if not file_id:
            raise UpdaterError("No file id available for download.")
        return FILE_DOWNLOAD_ENDPOINT.format(file_id=file_id)

    def _fetch_and_install(self, source: str, *, replaces: Iterable[str]) -> List[str]:
        addons_dir = self._require_addons_dir()
        replaces = tuple(replaces)
        with tempfile.TemporaryDirectory(prefix="wowclassicui_update_") as tmp:
            tmp_dir = Path(tmp)
            zip_path = self._api.download(source, tmp_dir / "addon.zip")
            extract_dir = tmp_dir / "extracted"
            self._extract(zip_path, extract_dir)
            folders = self._top_level_folders(extract_dir)
            names = {folder.name for folder in folders} | set(replaces)
            with self._locked(names):
                self._replace_folders(folders, addons_dir, replaces=replaces)
        return [folder.name for folder in folders]

    @contextmanager
    def _locked(self, names: Iterable[str]) -> Iterator[None]:
        """Hold the lock of every folder name; sorted acquisition order avoids deadlocks."""
        with self._locks_guard:
            keys = sorted({name.lower() for name in names})
            locks = [self._folder_locks.setdefault(key, threading.Lock()) for key in keys]
        with ExitStack() as stack:
            for lock in locks:
                stack.enter_context(lock)
            yield

    def _require_addons_dir(self) -> Path:
        path = self._addons_path()
        if not path:
            raise UpdaterError("AddOns directory is not configured.")
        return Path(path)

    @staticmethod
    def _extract(zip_path: Path, extract_dir: Path) -> None:
        root = extract_dir.resolve()
        try:
            with zipfile.ZipFile(zip_path, "r") as zf:
                for member in zf.namelist():
                    target = (root / member).resolve()
                    if target != root and root not in target.parents:
                        raise UpdaterError(f"Archive entry escapes extraction folder: {member}")
                zf.extractall(root)
        except zipfile.BadZipFile as exc:
            raise UpdaterError(f"Downloaded file is not a valid zip archive: {zip_path}") from exc

    @staticmethod
    def _top_level_folders(extract_dir: Path) -> List[Path]:
        folders = sorted(
            p for p in extract_dir.iterdir() if p.is_dir() and not p.name.startswith("__MACOSX")
        )
        if not folders:
            raise UpdaterError("Archive does not contain any addon folder.")
        return folders

    @staticmethod
    def _replace_folders(folders: List[Path], addons_dir: Path, *, replaces: Iterable[str]) -> None:
        """
        Swap the release folders into ``addons_dir``.

        Every folder is first copied to a hidden staging folder next to its
        target, so a failed copy leaves the installed addon untouched. Old
        folders are renamed aside and only deleted once all new folders are
        in place; any failure during the swap puts them back.
        """
        addons_dir.mkdir(parents=True, exist_ok=True)
        incoming = {folder.name for folder in folders}

        staged: List[Tuple[Path, Path]] = []
        try:
            for folder in folders:
                stage = addons_dir / f".{folder.name}.new"
                _remove_tree(stage)
                staged.append((stage, addons_dir / folder.name))
                shutil.copytree(folder, stage)
        except Exception:
            for stage, _ in staged:
                _remove_tree(stage)
            raise

        # Folders the new release no longer ships are retired with the rest.
        retired = [addons_dir / name for name in replaces if name not in incoming]
        backups: List[Tuple[Path, Path]] = []
        swapped: List[Path] = []
        try:
            for stage, target in staged:
                if target.exists():
                    backups.append((_move_aside(target), target))
                os.replace(stage, target)
                swapped.append(target)
            for target in retired:
                if target.exists():
                    backups.append((_move_aside(target), target))
        except Exception:
            for target in swapped:
                _remove_tree(target)
            for backup, target in reversed(backups):
                if backup.exists() and not target.exists():
                    os.replace(backup, target)
            for stage, _ in staged:
                _remove_tree(stage)
            raise

        for backup, _ in backups:
            _remove_tree(backup)


def _move_aside(target: Path) -> Path:
    backup = target.with_name(f".{target.name}.old")
    _remove_tree(backup)
    os.replace(target, backup)
    return backup


def _remove_tree(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
