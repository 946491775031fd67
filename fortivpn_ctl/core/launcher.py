"""Make sure the FortiClient app is up before asking it to connect."""

from __future__ import annotations

import time
from typing import Callable

from ..utils.logging import get_logger
from .errors import AppLaunchTimeout

logger = get_logger("launcher")

LAUNCH_POLL_INTERVAL = 0.5


def ensure_client_running(
    app,
    grace: float = 5.0,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Start ``app`` if needed and wait up to ``grace`` seconds for it.

    Returns ``True`` when the app had to be launched.
    """

    if app.is_running():
        return False

    app.launch()
    deadline = clock() + max(grace, 0.0)
    while clock() < deadline:
        if app.is_running():
            logger.info("%s started", app.name)
            return True
        sleep(LAUNCH_POLL_INTERVAL)
    raise AppLaunchTimeout(f"{app.name} app did not start in time")
