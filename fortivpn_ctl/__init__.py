"""FortiClient VPN reconciliation controller."""

__version__ = "0.3.0"
