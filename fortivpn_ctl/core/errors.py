"""Exceptions raised while talking to the FortiClient bridge."""

from __future__ import annotations

from typing import List, Sequence


class FortiVPNError(Exception):
    """Base class for every error the command line reports."""


class ConfigError(FortiVPNError):
    """The configuration file could not be read or is invalid."""


class ResolutionError(FortiVPNError):
    pass


class CatalogEmptyError(ResolutionError):
    def __init__(self) -> None:
        super().__init__("no FortiClient VPN connections found")


class ConnectionNotFoundError(ResolutionError):
    def __init__(self, query: str, available: Sequence[str]) -> None:
        self.query = query
        self.available: List[str] = list(available)
        super().__init__(f"connection {query!r} not found; available: {', '.join(self.available)}")


class AmbiguousConnectionError(ResolutionError):
    def __init__(self, query: str, matches: Sequence[str]) -> None:
        self.query = query
        self.matches: List[str] = list(matches)
        super().__init__(f"connection {query!r} is ambiguous; matches: {', '.join(self.matches)}")


class BridgeError(FortiVPNError):
    """Base class for failures of a bridge call."""


class BridgeTransportError(BridgeError):
    """The bridge process failed or produced output we cannot use."""


class BridgeNotFoundError(BridgeTransportError):
    def __init__(self, candidates: Sequence[str]) -> None:
        self.candidates = list(candidates)
        message = "could not find fortivpn-bridge.js"
        if self.candidates:
            message += f" (looked in: {', '.join(self.candidates)})"
        super().__init__(message)


class InvalidResponseError(BridgeTransportError):
    def __init__(self, output: str) -> None:
        self.output = output
        super().__init__(f"invalid bridge response: {output}")


class BridgeLogicalError(BridgeError):
    """The bridge answered with ``ok: false``."""


class DecodeError(FortiVPNError):
    """A bridge result did not have the expected shape."""


class AppLaunchError(FortiVPNError):
    """The FortiClient application could not be started."""


class AppLaunchTimeout(AppLaunchError):
    pass
