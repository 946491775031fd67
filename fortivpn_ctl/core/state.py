"""Observed tunnel state and the status projection shown to users."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .bridge import GET_STATE
from .catalog import ConnectionKind
from .errors import DecodeError

CONNECTED = "Connected"
DISCONNECTED = "Disconnected"
UNKNOWN_NAME = "<none>"


def _flag(data: Dict[str, Any], key: str) -> int:
    value = data.get(key) or 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise DecodeError(f"failed to decode tunnel state: {key}={value!r} is not numeric") from None


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class TunnelState:
    ipsec_state: int = 0
    ssl_state: int = 0
    connection_name: str = ""
    saml_vpn_name: str = ""

    @property
    def ipsec_active(self) -> bool:
        return self.ipsec_state != 0

    @property
    def ssl_active(self) -> bool:
        return self.ssl_state != 0

    @property
    def is_connected(self) -> bool:
        return self.ipsec_active or self.ssl_active

    @property
    def active_name(self) -> str:
        # SAML logins leave connection_name empty and report saml_vpn_name instead
        return self.connection_name.strip() or self.saml_vpn_name.strip()

    @property
    def kind(self) -> ConnectionKind:
        return ConnectionKind.IPSEC if self.ipsec_active else ConnectionKind.SSL

    def is_active(self, name: str) -> bool:
        return self.is_connected and self.active_name.lower() == name.strip().lower()

    @classmethod
    def from_dict(cls, data: Any) -> "TunnelState":
        if data is None or data == "":
            return cls()
        if not isinstance(data, dict):
            raise DecodeError(f"failed to decode tunnel state: expected an object, got {type(data).__name__}")
        return cls(
            ipsec_state=_flag(data, "ipsec_state"),
            ssl_state=_flag(data, "ssl_state"),
            connection_name=_text(data, "connection_name"),
            saml_vpn_name=_text(data, "saml_vpn_name"),
        )


@dataclass(frozen=True)
class Status:
    state: str
    connected: bool
    current_connection: str
    checked_at: int
    selected_connection: str = ""

    def label(self) -> str:
        return f"{self.state} ({display_name(self.current_connection)})"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "state": self.state,
            "connected": self.connected,
            "current_connection": self.current_connection,
        }
        if self.selected_connection:
            data["selected_connection"] = self.selected_connection
        data["checked_at"] = self.checked_at
        return data


def connected_label(connected: bool) -> str:
    return CONNECTED if connected else DISCONNECTED


def display_name(name: str) -> str:
    return name if name.strip() else UNKNOWN_NAME


def build_status(
    state: TunnelState,
    selected: Optional[str] = None,
    now: Callable[[], float] = time.time,
) -> Status:
    """Project ``state`` into a status, optionally relative to a selection.

    With a selection, an unnamed active tunnel does not count as connected.
    """

    selected = (selected or "").strip()
    connected = state.is_connected
    if selected:
        connected = state.is_active(selected)
    return Status(
        state=connected_label(connected),
        connected=connected,
        current_connection=state.active_name,
        checked_at=int(now()),
        selected_connection=selected,
    )


class StateReader:
    """One ``get-state`` round trip per observation, no caching."""

    def __init__(self, bridge) -> None:
        self._bridge = bridge

    def observe(self) -> TunnelState:
        return TunnelState.from_dict(self._bridge.invoke(GET_STATE))
