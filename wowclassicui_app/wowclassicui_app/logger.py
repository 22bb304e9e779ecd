"""
Logging setup for the WoWClassicUI application.

Records from the GUI thread, the worker thread and the update pool all go
through one loguru logger; ``LOG_FORMAT`` carries the thread name so they can
be told apart. The worker names its thread ``wowclassicui-worker`` and pool
tasks name theirs ``update-pool-<ident>``.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from loguru import logger as _logger

LOG_DIR_ENV = "WOWCLASSICUI_LOG_DIR"
LOG_LEVEL_ENV = "WOWCLASSICUI_LOG_LEVEL"
LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name: <20} | "
    "{name}:{function}:{line} - {message}"
)
_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

_LOG_INITIALISED = False


def default_log_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    if env.get(LOG_DIR_ENV):
        return Path(env[LOG_DIR_ENV])
    if sys.platform == "win32" and env.get("LOCALAPPDATA"):
        return Path(env["LOCALAPPDATA"]) / "WoWClassicUI" / "logs"
    return Path.home() / ".wowclassicui" / "logs"


def console_level(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    level = (env.get(LOG_LEVEL_ENV) or "INFO").strip().upper()
    return level if level in _LEVELS else "INFO"


LOG_DIR = default_log_dir()
DEFAULT_LOG_PATH = LOG_DIR / "app.log"


def configure(log_path: Optional[Path] = None) -> None:
    """Install the console and file sinks; only the first call has an effect."""
    global _LOG_INITIALISED
    if _LOG_INITIALISED:
        return
    target = log_path or DEFAULT_LOG_PATH
    target.parent.mkdir(parents=True, exist_ok=True)

    _logger.remove()
    # Windowed builds have no stderr.
    if sys.stderr is not None:
        _logger.add(sys.stderr, level=console_level(), format=LOG_FORMAT, enqueue=True)
    _logger.add(
        target,
        level="DEBUG",
        format=LOG_FORMAT,
        rotation="10 MB",
        retention=5,
        encoding="utf-8",
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )
    _LOG_INITIALISED = True


def get_logger():
    """Return the shared logger instance."""
    configure()
    return _logger
