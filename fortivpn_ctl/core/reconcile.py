"""Drive the tunnel toward a desired state and wait for it to converge."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..utils.logging import get_logger
from .bridge import CONNECT, DISCONNECT
from .catalog import Connection
from .state import StateReader, Status, TunnelState, build_status, display_name

logger = get_logger("reconcile")

DEFAULT_INTERVAL = 1.0


@dataclass(frozen=True)
class ReconciliationGoal:
    """What one connect/disconnect/reconnect is waiting for."""

    should_be_connected: bool
    expected_connection: Optional[str] = None
    timeout: float = 0.0
    interval: float = DEFAULT_INTERVAL

    def __post_init__(self) -> None:
        if self.timeout < 0:
            object.__setattr__(self, "timeout", 0.0)
        if self.interval <= 0:
            object.__setattr__(self, "interval", DEFAULT_INTERVAL)

    def is_met(self, state: TunnelState) -> bool:
        if not self.should_be_connected:
            return not state.is_connected
        if not state.is_connected:
            return False
        if not self.expected_connection:
            return True
        # Some bridge builds report the tunnel as up a few polls before they
        # report its name, so an unnamed connected tunnel counts as converged.
        active = state.active_name
        return not active or active.lower() == self.expected_connection.strip().lower()


class Reconciler:
    """Idempotent connect/disconnect on top of the bridge.

    ``clock`` and ``sleep`` default to the real monotonic clock and
    :func:`time.sleep`; tests substitute deterministic versions.
    """

    def __init__(
        self,
        bridge,
        reader: Optional[StateReader] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._bridge = bridge
        self.reader = reader or StateReader(bridge)
        self._clock = clock
        self._sleep = sleep

    def observe(self) -> TunnelState:
        return self.reader.observe()

    def request_connect(self, target: Connection) -> None:
        logger.info("Requesting connect to %s (%s)", target.name, target.kind.value)
        self._bridge.invoke(CONNECT, target.action_payload())

    def request_disconnect(self, state: TunnelState) -> None:
        logger.info("Requesting disconnect from %s (%s)", display_name(state.active_name), state.kind.value)
        self._bridge.invoke(
            DISCONNECT,
            {"connection_name": state.active_name, "connection_type": state.kind.value},
        )

    def connect(self, target: Connection, timeout: float = 20.0, interval: float = DEFAULT_INTERVAL) -> Status:
        current = self.observe()
        if current.is_active(target.name):
            logger.info("Already connected to %s", target.name)
            return build_status(current, target.name)

        self.request_connect(target)
        final = self.wait_for_state(
            ReconciliationGoal(
                should_be_connected=True,
                expected_connection=target.name,
                timeout=timeout,
                interval=interval,
            )
        )
        return build_status(final, target.name)

    def disconnect(self, timeout: float = 10.0, interval: float = DEFAULT_INTERVAL) -> Status:
        current = self.observe()
        if not current.is_connected:
            logger.info("Already disconnected")
            return build_status(current)

        self.request_disconnect(current)
        final = self.wait_for_state(
            ReconciliationGoal(should_be_connected=False, timeout=timeout, interval=interval)
        )
        return build_status(final)

    def wait_for_state(
        self,
        goal: ReconciliationGoal,
        sleep: Optional[Callable[[float], object]] = None,
        cancelled: Optional[Callable[[], bool]] = None,
    ) -> TunnelState:
        """Poll until ``goal`` is met or its timeout elapses.

        Returns the last observed state either way; a timeout is not an error.
        Observation errors propagate immediately.  ``cancelled`` is checked
        before every sleep and ends the wait early when it returns true.
        """

        sleep = sleep or self._sleep

        deadline = self._clock() + goal.timeout
        attempt = 0
        while True:
            attempt += 1
            state = self.observe()
            if goal.is_met(state):
                logger.debug("Converged after %d observation(s)", attempt)
                return state
            if self._clock() >= deadline:
                logger.info(
                    "Gave up waiting after %d observation(s); last state %s (%s)",
                    attempt,
                    "connected" if state.is_connected else "disconnected",
                    display_name(state.active_name),
                )
                return state
            if cancelled is not None and cancelled():
                logger.info("Stopped waiting after %d observation(s)", attempt)
                return state
            sleep(goal.interval)
