"""Logging utilities."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "fortivpn"
LOG_DIR = Path(os.environ.get("FORTIVPN_LOG_DIR", "/tmp/fortivpn"))
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _ensure_file_handler(logger: logging.Logger, log_file: Path | None) -> None:
    if any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers):
        return
    if log_file is None:
        log_file = LOG_DIR / f"{ROOT_LOGGER}.log"
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
    except OSError:
        # read-only filesystems still get console logging with --verbose
        return
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)


def get_logger(name: str, log_file: Path | None = None) -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(logging.DEBUG)
    _ensure_file_handler(root, log_file)
    return root.getChild(name)


def enable_console_logging(level: int = logging.DEBUG) -> logging.Handler:
    """Mirror package logs to stderr, used by ``--verbose``."""

    root = logging.getLogger(ROOT_LOGGER)
    for handler in root.handlers:
        if isinstance(handler, RichHandler):
            handler.setLevel(level)
            return handler
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler.setLevel(level)
    root.addHandler(handler)
    return handler
