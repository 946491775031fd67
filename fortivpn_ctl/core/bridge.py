"""Client for the ``fortivpn-bridge.js`` helper process.

The bridge loads FortiClient's native module and performs one call per
invocation.  It prints a JSON envelope ``{"ok": bool, "result": ..., "error": str}``
on stdout, but the native module is chatty, so the envelope is not always the
only thing on the stream.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..utils.logging import get_logger
from .errors import (
    BridgeLogicalError,
    BridgeNotFoundError,
    BridgeTransportError,
    InvalidResponseError,
)

logger = get_logger("bridge")

BRIDGE_SCRIPT_NAME = "fortivpn-bridge.js"

LIST_CONNECTIONS = "list-connections"
GET_STATE = "get-state"
CONNECT = "connect"
DISCONNECT = "disconnect"
ACTIONS = (LIST_CONNECTIONS, GET_STATE, CONNECT, DISCONNECT)

PACKAGED_BRIDGE = Path(__file__).resolve().parent.parent / "data" / BRIDGE_SCRIPT_NAME


def decode_envelope(raw: str) -> Dict[str, Any]:
    """Extract the response envelope from the bridge's combined output."""

    trimmed = raw.strip()
    if not trimmed:
        raise InvalidResponseError(trimmed)

    envelope = _try_load(trimmed)
    if envelope is not None:
        return envelope

    for line in reversed(trimmed.splitlines()):
        candidate = line.strip()
        if not candidate.startswith("{"):
            continue
        envelope = _try_load(candidate)
        if envelope is not None:
            return envelope

    last_obj = trimmed.rfind("{")
    if last_obj >= 0:
        envelope = _try_load(trimmed[last_obj:])
        if envelope is not None:
            return envelope

    raise InvalidResponseError(trimmed)


def _try_load(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    if not isinstance(value, dict):
        return None
    return value


def find_bridge_script(
    explicit: Optional[str] = None,
    environ: Mapping[str, str] = os.environ,
    argv0: Optional[str] = None,
    cwd: Optional[Path] = None,
    packaged: Path = PACKAGED_BRIDGE,
) -> Path:
    """Locate the bridge script.

    Lookup order is the configured path, ``$FORTIVPN_BRIDGE``, the directory of
    the running executable, the working directory and finally the copy shipped
    with this package.
    """

    candidates: List[Path] = []
    if explicit and explicit.strip():
        candidates.append(Path(explicit.strip()).expanduser())
    from_env = environ.get("FORTIVPN_BRIDGE", "").strip()
    if from_env:
        candidates.append(Path(from_env).expanduser())
    argv0 = argv0 if argv0 is not None else sys.argv[0]
    if argv0:
        candidates.append(Path(argv0).resolve().parent / BRIDGE_SCRIPT_NAME)
    candidates.append((cwd or Path.cwd()) / BRIDGE_SCRIPT_NAME)
    candidates.append(packaged)

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise BridgeNotFoundError([str(c) for c in candidates])


class BridgeClient:
    """Runs one bridge action per call and returns the envelope's ``result``."""

    def __init__(
        self,
        script: Optional[Path] = None,
        node: str = "node",
        module_path: Optional[str] = None,
        timeout: Optional[float] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self._script = script
        self.node = node
        self.module_path = module_path
        self.timeout = timeout
        self._runner = runner

    @property
    def script(self) -> Path:
        if self._script is None:
            self._script = find_bridge_script()
        return self._script

    def build_command(self, action: str, payload: Optional[Mapping[str, Any]] = None) -> List[str]:
        if action not in ACTIONS:
            raise ValueError(f"unknown bridge action {action!r}")
        command = [self.node, str(self.script), action]
        if payload is not None:
            command.append(json.dumps(dict(payload)))
        return command

    def invoke(self, action: str, payload: Optional[Mapping[str, Any]] = None) -> Any:
        command = self.build_command(action, payload)
        env = os.environ.copy()
        if self.module_path:
            env["FORTIVPN_MODULE_PATH"] = self.module_path
        logger.debug("Bridge call %s payload=%s", action, payload)
        try:
            completed = self._runner(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                env=env,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise BridgeTransportError(f"bridge call {action} timed out after {exc.timeout}s") from exc
        except OSError as exc:
            raise BridgeTransportError(str(exc)) from exc

        output = completed.stdout or ""
        if completed.returncode != 0:
            message = output.strip() or f"bridge exited with code {completed.returncode}"
            logger.debug("Bridge call %s failed: %s", action, message)
            raise BridgeTransportError(message)

        envelope = decode_envelope(output)
        if not envelope.get("ok"):
            error = str(envelope.get("error") or "").strip()
            raise BridgeLogicalError(error or "bridge call failed")
        return envelope.get("result")
