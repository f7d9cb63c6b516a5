"""Logging configuration for the seotest command line and API server."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOG_DIR = Path(os.getenv("SEOTEST_LOG_DIR", "logs"))
DEFAULT_LOG_FILE = "seotest.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def _normalise_level(level: Optional[Union[str, int]]) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        value = level.upper()
        if value.isdigit():
            return int(value)
        resolved = logging.getLevelName(value)
        if isinstance(resolved, int):
            return resolved
    return logging.INFO


def configure_logging(level: Optional[Union[str, int]] = None, log_dir: Optional[Path] = None) -> Path:
    """Configure root logging to stream to the console and a fresh file.

    The log file is truncated on every call so each run starts clean. Returns
    the log file path.
    """

    log_level = _normalise_level(level)
    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / DEFAULT_LOG_FILE

    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_path, mode="w", encoding="utf-8"),
        ],
    )
    # playwright and urllib3 are noisy at DEBUG
    logging.getLogger("urllib3").setLevel(max(log_level, logging.INFO))
    logging.getLogger("asyncio").setLevel(max(log_level, logging.INFO))
    logging.getLogger(__name__).debug("Logging initialised at %s", log_path)
    return log_path
