"""Logging setup shared by every placement module.

Modules call ``get_logger(__name__)``; the first call installs a stderr
handler and, unless ``PLACEMENT_LOG_FILE`` is off, a per-day file under
``PLACEMENT_LOG_DIR`` (default ``logs/``). ``LOG_LEVEL`` sets the threshold.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import date
from pathlib import Path

DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = logging.Formatter(
    "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
)
# Streamlit's file watcher and web server log every rerun at DEBUG.
_NOISY = ("watchdog", "tornado", "asyncio")
_configured = False


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(_FORMAT)
    return handler


def _file_logging_enabled() -> bool:
    return os.environ.get("PLACEMENT_LOG_FILE", "1").strip().lower() not in ("0", "false", "no")


def configure(level: str | None = None, log_dir: Path | str | None = None) -> None:
    """Install root handlers once. Later calls only adjust the level."""
    global _configured
    name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    threshold = getattr(logging, name, logging.INFO)
    root = logging.getLogger()
    root.setLevel(threshold)
    for noisy in _NOISY:
        logging.getLogger(noisy).setLevel(max(threshold, logging.WARNING))

    if _configured or root.handlers:
        _configured = True
        return
    _configured = True

    root.addHandler(_handler(logging.StreamHandler(sys.stderr), threshold))
    if not _file_logging_enabled():
        return

    directory = Path(log_dir or os.environ.get("PLACEMENT_LOG_DIR") or DEFAULT_LOG_DIR)
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"placement_{date.today().isoformat()}.log"
        root.addHandler(_handler(logging.FileHandler(path, encoding="utf-8"), logging.DEBUG))
    except OSError as exc:
        root.warning("File logging disabled (%s): %s", directory, exc)


def get_logger(name: str) -> logging.Logger:
    if not _configured:
        configure()
    return logging.getLogger(name)
