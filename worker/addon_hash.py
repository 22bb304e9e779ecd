"""
Addon fingerprinting.

Derives a stable SHA-256 digest from the files of an addon's folders.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable


def compute_addon_hash(folders: Iterable[Path]) -> str:
    """
    Compute a deterministic SHA-256 hash over the given addon folders.

    Folders and files are visited in sorted order; each file contributes its
    path relative to the AddOns directory followed by its bytes, so renames
    and content edits both change the digest.
    """
    digest = hashlib.sha256()

    for folder in sorted(Path(folder) for folder in folders):
        for path in sorted(p for p in folder.rglob("*") if p.is_file()):
            relative = path.relative_to(folder.parent).as_posix()
            digest.update(relative.encode("utf-8"))
            digest.update(b"\0")
            digest.update(_read_file_bytes(path))

    return digest.hexdigest()


def _read_file_bytes(path: Path) -> bytes:
    """Read file bytes, raising a descriptive error if unavailable."""
    try:
        return path.read_bytes()
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"File not found for addon hash computation: {path}") from exc
