from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

from .lib.env import PATHS

FALLBACK_LOG_NAME = "zen-installer.log"

_FORMAT = logging.Formatter(
    fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
)


def _open_log_file(log_path: str) -> logging.FileHandler:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path)
    except OSError:
        # Live media often mount /var/log read-only.
        return logging.FileHandler(str(Path.cwd() / FALLBACK_LOG_NAME))


def configure_logging(
    log_path: str = PATHS.log_default,
    console_level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure root logging once for the installer process.

    The log file receives everything down to DEBUG, including the output of
    every shell command, so a failed install can be diagnosed afterwards.
    The console shows ``console_level`` and above. Returns the path of the
    file actually written, which differs from ``log_path`` when that was not
    writable.
    """

    root = logging.getLogger()
    if getattr(root, "_zen_configured", False):
        return getattr(root, "_zen_log_path", log_path)

    root.setLevel(logging.DEBUG)

    handlers: List[logging.Handler] = []
    file_handler = _open_log_file(log_path)
    file_handler.setLevel(logging.DEBUG)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(console_level)
        handlers.append(console)

    for h in handlers:
        h.setFormatter(_FORMAT)
        root.addHandler(h)

    chosen_path = file_handler.baseFilename
    setattr(root, "_zen_configured", True)
    setattr(root, "_zen_log_path", chosen_path)

    logging.getLogger(__name__).info("Logging to %s (requested %s)", chosen_path, log_path)
    return chosen_path
