"""Process management helpers."""

from __future__ import annotations

import shutil
import subprocess
import sys
from typing import List

import psutil

from ..core.errors import AppLaunchError
from .logging import get_logger

logger = get_logger("processes")


def process_running(name: str) -> bool:
    """Return ``True`` if a process named exactly ``name`` exists."""

    for proc in psutil.process_iter(["name"]):
        try:
            if proc.info.get("name") == name:
                return True
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return False


def launch_command(app_name: str) -> List[str]:
    if sys.platform == "darwin":
        return ["open", "-a", app_name]
    binary = shutil.which(app_name) or shutil.which(app_name.lower())
    if binary is None:
        raise AppLaunchError(f"failed to start {app_name} app: executable not found")
    return [binary]


class ClientApp:
    """The desktop FortiClient application the bridge talks to."""

    def __init__(self, name: str = "FortiClient") -> None:
        self.name = name

    def is_running(self) -> bool:
        return process_running(self.name)

    def launch(self) -> None:
        command = launch_command(self.name)
        logger.info("Launching %s: %s", self.name, " ".join(command))
        try:
            if command[0] == "open":
                subprocess.run(command, check=True, capture_output=True, text=True)
            else:
                subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, start_new_session=True)
        except subprocess.CalledProcessError as exc:
            message = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
            raise AppLaunchError(f"failed to start {self.name} app: {message}") from exc
        except OSError as exc:
            raise AppLaunchError(f"failed to start {self.name} app: {exc}") from exc
