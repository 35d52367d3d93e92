"""Small shared helpers for fleetrun."""

from __future__ import annotations

import logging
import os
from pathlib import Path

NOISY_LOGGERS = ("urllib3", "asyncio", "scitrera_app_framework", "markdown_it")

# Enough for the tail of a progress line without reading a whole log.
LAST_LINE_WINDOW = 4096


def suppress_noisy_loggers(level: int = logging.WARNING) -> None:
    """Raise the level of chatty third-party loggers."""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def read_last_line(path: str | Path, window: int = LAST_LINE_WINDOW) -> str:
    """Return the last line of a (possibly growing) file.

    Only the trailing *window* bytes are read, so the cost does not depend
    on how large the file has become. A line that started before the
    window is returned truncated.

    Args:
        path: File to read.
        window: Number of trailing bytes to inspect.

    Returns:
        The last newline-delimited line in the window, or ``""`` if the
        window holds no line or the file does not exist yet.
    """
    try:
        with open(path, "rb") as f:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            f.seek(max(0, size - window))
            tail = f.read(window)
    except FileNotFoundError:
        return ""

    lines = tail.decode("utf-8", errors="replace").splitlines()
    return lines[-1] if lines else ""
