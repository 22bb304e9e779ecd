"""
Minimal reader for the ``## Key: Value`` header lines of addon ``.toc`` files.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict

_HEADER_RE = re.compile(r"^##\s*([^:]+?)\s*:\s*(.*?)\s*$")
# WoW colour escapes (|cffRRGGBB ... |r) show up in titles.
_COLOR_RE = re.compile(r"\|c[0-9a-fA-F]{8}|\|r")

PROJECT_ID_KEYS = ("X-Curse-Project-ID",)
VERSION_KEYS = ("X-Curse-Packaged-Version", "Version")


class TocReadError(ValueError):
    """Raised when a .toc file cannot be read."""


def read_toc_headers(path: Path) -> Dict[str, str]:
    """Return the header fields of a .toc file; the first occurrence of a key wins."""
    try:
        contents = path.read_text(encoding="utf-8-sig", errors="replace")
    except FileNotFoundError as exc:
        raise TocReadError(f"TOC file not found: {path}") from exc
    except OSError as exc:
        raise TocReadError(f"Unable to read TOC file: {path}") from exc

    headers: Dict[str, str] = {}
    for line in contents.splitlines():
        match = _HEADER_RE.match(line.strip())
        if not match:
            continue
        key, value = match.group(1), match.group(2)
        headers.setdefault(key, value)
    return headers


def clean_title(value: str) -> str:
    return _COLOR_RE.sub("", value).strip()


def first_header(headers: Dict[str, str], keys) -> str:
    for key in keys:
        value = headers.get(key, "").strip()
        if value:
            return value
    return ""
