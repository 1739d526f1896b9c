"""Logging setup for the captioner entry points.

WHY: Render failures are usually diagnosed after the fact from ffmpeg's
own output, so the CLI and the API keep a persistent log file alongside
the console output. The file must not grow without bound on machines
that render all day.

HOW: configure_logging() calls logging.basicConfig with the shared format
and, when a log file is configured, attaches a FileHandler. The file is
opened for append unless it is already larger than MAX_LOG_BYTES, in
which case it is truncated and started over.

RULES:
- Library modules only create loggers; only entry points configure them.
- Format: "%(asctime)s %(name)s %(levelname)s %(message)s".
- Log file over 100 MB at startup -> overwritten, otherwise appended.
- Each configured session writes a header line to mark its start.
"""

from __future__ import annotations

import logging
import os
import platform
import sys
from pathlib import Path
from typing import Optional, Union

from captioner import config

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
MAX_LOG_BYTES = 100 * 1024 * 1024

logger = logging.getLogger(__name__)


def _file_mode(path: Path) -> str:
    if path.is_file() and path.stat().st_size > MAX_LOG_BYTES:
        return "w"
    return "a"


def configure_logging(
    level: Optional[Union[int, str]] = None,
    log_file: Optional[Union[str, Path]] = None,
) -> Optional[logging.FileHandler]:
    """Configure root logging for a CLI or server process.

    Args:
        level: Log level name or number (default: CAPTIONER_LOG_LEVEL).
        log_file: Optional log file path (default: CAPTIONER_LOG_FILE).

    Returns:
        The attached FileHandler, or None when logging to console only.
    """
    resolved_level = level if level is not None else config.LOG_LEVEL
    if isinstance(resolved_level, str):
        resolved_level = logging.getLevelName(resolved_level.upper())
        if not isinstance(resolved_level, int):
            resolved_level = logging.INFO

    logging.basicConfig(level=resolved_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolved_level)

    target = log_file if log_file is not None else config.LOG_FILE
    if not target:
        return None

    path = Path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = _file_mode(path)

    handler = logging.FileHandler(path, mode=mode, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)

    logger.info(
        "Captioner session started (pid=%d, platform=%s, python=%s, log=%s, mode=%s)",
        os.getpid(), platform.system(), sys.version.split()[0], path, mode,
    )
    return handler
