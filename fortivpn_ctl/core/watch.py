"""Keep one connection up by reconnecting whenever it drops."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from ..utils.logging import get_logger
from .catalog import Connection
from .errors import FortiVPNError
from .reconcile import Reconciler, ReconciliationGoal
from .state import Status, build_status, connected_label, display_name

logger = get_logger("watch")

Listener = Callable[[str], None]


class Watcher:
    """Fixed-interval supervisor for a single, already resolved connection.

    A failed reconnect is reported and retried on the next tick; only a failed
    observation at the start of a tick ends :meth:`run`.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        target: Connection,
        interval: float = 5.0,
        reconnect_timeout: float = 20.0,
        listener: Optional[Listener] = None,
        stop_event: Optional[threading.Event] = None,
        sleep: Optional[Callable[[float], object]] = None,
        now: Callable[[], float] = time.time,
    ) -> None:
        self.reconciler = reconciler
        self.target = target
        self.interval = interval if interval > 0 else 1.0
        self.reconnect_timeout = max(reconnect_timeout, 0.0)
        self._listener = listener
        self._stop_event = stop_event or threading.Event()
        self._sleep = sleep or self._stop_event.wait
        self._now = now
        self._last_label = ""
        self.ticks = 0

    def _emit(self, message: str, warning: bool = False) -> None:
        if warning:
            logger.warning("%s", message)
        else:
            logger.info("%s", message)
        if self._listener is not None:
            self._listener(message)

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def tick(self) -> Status:
        state = self.reconciler.observe()
        status = build_status(state, self.target.name, now=self._now)
        label = status.label()
        if label != self._last_label:
            self._emit(f"state={status.state} connection={display_name(status.current_connection)}")
            self._last_label = label

        if not state.is_active(self.target.name):
            self._reconnect()
        return status

    def _reconnect(self) -> None:
        self._emit(f"reconnecting to {self.target.name!r}...")
        try:
            self.reconciler.request_connect(self.target)
        except FortiVPNError as exc:
            self._emit(f"reconnect start failed: {exc}", warning=True)
            return
        try:
            outcome = self.reconciler.wait_for_state(
                ReconciliationGoal(
                    should_be_connected=True,
                    expected_connection=self.target.name,
                    timeout=self.reconnect_timeout,
                    interval=self.interval,
                ),
                sleep=self._sleep,
                cancelled=lambda: self.stopped,
            )
        except FortiVPNError as exc:
            self._emit(f"reconnect failed: {exc}", warning=True)
            return
        if self.stopped:
            return
        self._emit(
            f"reconnect result={connected_label(outcome.is_connected)} "
            f"connection={display_name(outcome.active_name)}"
        )
        self._last_label = ""

    def run(self, max_ticks: Optional[int] = None) -> None:
        logger.info(
            "Watching %s interval=%ss reconnect-timeout=%ss",
            self.target.name,
            self.interval,
            self.reconnect_timeout,
        )
        while not self.stopped:
            self.tick()
            self.ticks += 1
            if self.stopped or (max_ticks is not None and self.ticks >= max_ticks):
                break
            self._sleep(self.interval)
        logger.info("Stopped watching %s after %d tick(s)", self.target.name, self.ticks)
