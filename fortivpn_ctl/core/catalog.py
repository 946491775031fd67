"""Configured FortiClient connections and name resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Sequence

from ..utils.logging import get_logger
from .bridge import LIST_CONNECTIONS
from .errors import (
    AmbiguousConnectionError,
    CatalogEmptyError,
    ConnectionNotFoundError,
    DecodeError,
)

logger = get_logger("catalog")

# query alias -> substring the connection name must contain
ALIASES: Dict[str, str] = {
    "prod": "production",
    "production": "production",
    "int": "integration",
    "integration": "integration",
}


class ConnectionKind(str, Enum):
    SSL = "ssl"
    IPSEC = "ipsec"


@dataclass(frozen=True)
class Connection:
    """A VPN profile as listed by FortiClient."""

    name: str
    kind: ConnectionKind = ConnectionKind.SSL
    is_default: bool = False
    cloud_vpn: bool = False
    corporate: bool = False

    def matches(self, name: str) -> bool:
        return self.name.lower() == name.strip().lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connection_name": self.name,
            "type": self.kind.value,
            "cloud_vpn": int(self.cloud_vpn),
            "corporate": int(self.corporate),
            "default": self.is_default,
        }

    def action_payload(self) -> Dict[str, str]:
        return {"connection_name": self.name, "connection_type": self.kind.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Connection":
        if not isinstance(data, dict):
            raise DecodeError(f"failed to decode tunnel list: expected an object, got {data!r}")
        name = data.get("connection_name")
        if not isinstance(name, str) or not name.strip():
            raise DecodeError(f"failed to decode tunnel list: entry without connection_name: {data!r}")
        raw_kind = str(data.get("type") or ConnectionKind.SSL.value).strip().lower()
        try:
            kind = ConnectionKind(raw_kind)
        except ValueError:
            raise DecodeError(f"failed to decode tunnel list: unknown connection type {raw_kind!r}") from None
        return cls(
            name=name,
            kind=kind,
            is_default=bool(data.get("default", False)),
            cloud_vpn=bool(data.get("cloud_vpn", 0)),
            corporate=bool(data.get("corporate", 0)),
        )


def decode_connections(result: Any) -> List[Connection]:
    if result is None or result == "":
        return []
    if not isinstance(result, list):
        raise DecodeError(f"failed to decode tunnel list: expected a list, got {type(result).__name__}")
    connections = []
    for entry in result:
        try:
            connections.append(Connection.from_dict(entry))
        except DecodeError as exc:
            logger.warning("Skipping connection entry: %s", exc)
    return connections


def resolve(query: str, connections: Sequence[Connection]) -> Connection:
    """Pick the connection a user meant by ``query``.

    An empty query selects the first connection.  An exact, case-insensitive
    name wins outright; otherwise the query must match exactly one connection
    as a substring or through one of the ``prod``/``int`` aliases.
    """

    if not connections:
        raise CatalogEmptyError()

    query = (query or "").strip()
    if not query:
        return connections[0]

    for connection in connections:
        if connection.matches(query):
            return connection

    needle = query.lower()
    alias = ALIASES.get(needle)
    candidates = []
    for connection in connections:
        name = connection.name.lower()
        if needle in name or (alias is not None and alias in name):
            candidates.append(connection)

    if len(candidates) == 1:
        return candidates[0]
    if candidates:
        raise AmbiguousConnectionError(query, [c.name for c in candidates])
    raise ConnectionNotFoundError(query, [c.name for c in connections])


class ConnectionCatalog:
    """Fetches a fresh snapshot of connections on every call."""

    def __init__(self, bridge) -> None:
        self._bridge = bridge

    def fetch(self) -> List[Connection]:
        return decode_connections(self._bridge.invoke(LIST_CONNECTIONS))

    def resolve(self, query: str) -> Connection:
        return resolve(query, self.fetch())
