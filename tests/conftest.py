"""Shared test doubles for the bridge and the clock."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest

from fortivpn_ctl.core.catalog import Connection, ConnectionKind


class FakeBridge:
    """In-memory bridge that replays scripted ``get-state`` results.

    The last scripted state repeats forever once the others are consumed; an
    exception in the script is raised instead of returned.
    """

    def __init__(
        self,
        connections: Optional[List[Dict[str, Any]]] = None,
        states: Optional[List[Any]] = None,
    ) -> None:
        self.connections = connections if connections is not None else []
        self.states = list(states) if states is not None else [None]
        self.failures: Dict[str, List[Exception]] = {}
        self.calls: List[Tuple[str, Optional[Dict[str, Any]]]] = []

    def fail(self, action: str, *errors: Exception) -> None:
        self.failures.setdefault(action, []).extend(errors)

    def invoke(self, action: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        self.calls.append((action, payload))
        pending = self.failures.get(action)
        if pending:
            raise pending.pop(0)
        if action == "list-connections":
            return self.connections
        if action == "get-state":
            state = self.states.pop(0) if len(self.states) > 1 else self.states[0]
            if isinstance(state, Exception):
                raise state
            return state
        return ""

    def actions(self) -> List[Tuple[str, Optional[Dict[str, Any]]]]:
        return [call for call in self.calls if call[0] in ("connect", "disconnect")]

    def observations(self) -> int:
        return sum(1 for action, _ in self.calls if action == "get-state")


class FakeClock:
    """Monotonic clock that only advances when something sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def ssl_up(name: str = "") -> Dict[str, Any]:
    return {"ipsec_state": 0, "ssl_state": 1, "connection_name": name, "saml_vpn_name": ""}


def ipsec_up(name: str = "") -> Dict[str, Any]:
    return {"ipsec_state": 1, "ssl_state": 0, "connection_name": name, "saml_vpn_name": ""}


def down() -> Dict[str, Any]:
    return {"ipsec_state": 0, "ssl_state": 0, "connection_name": "", "saml_vpn_name": ""}


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def catalog_entries() -> List[Dict[str, Any]]:
    return [
        {"connection_name": "Production-EU", "type": "ssl", "cloud_vpn": 0, "corporate": 1, "default": True},
        {"connection_name": "Integration-EU", "type": "ipsec", "cloud_vpn": 0, "corporate": 1},
    ]


@pytest.fixture()
def production() -> Connection:
    return Connection(name="Production-EU", kind=ConnectionKind.SSL, is_default=True, corporate=True)
