"""Tests for the package logger setup."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

from fortivpn_ctl.utils.logging import ROOT_LOGGER, enable_console_logging, get_logger


def test_loggers_share_the_package_parent():
    logger = get_logger("bridge")

    assert logger.name == "fortivpn.bridge"
    assert logger.parent is logging.getLogger(ROOT_LOGGER)


def test_console_logging_is_added_once():
    root = logging.getLogger(ROOT_LOGGER)
    try:
        first = enable_console_logging(logging.INFO)
        second = enable_console_logging(logging.DEBUG)

        assert first is second
        assert second.level == logging.DEBUG
        assert sum(isinstance(h, RichHandler) for h in root.handlers) == 1
    finally:
        for handler in [h for h in root.handlers if isinstance(h, RichHandler)]:
            root.removeHandler(handler)
