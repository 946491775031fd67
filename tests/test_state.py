"""Tests for tunnel state decoding and status projection."""

from __future__ import annotations

import pytest

from conftest import FakeBridge, down, ipsec_up, ssl_up
from fortivpn_ctl.core.catalog import ConnectionKind
from fortivpn_ctl.core.errors import BridgeLogicalError, DecodeError
from fortivpn_ctl.core.state import StateReader, TunnelState, build_status


def _now():
    return 1700000000.5


def test_either_flag_means_connected():
    assert TunnelState.from_dict(ssl_up("prod")).is_connected
    assert TunnelState.from_dict(ipsec_up("prod")).is_connected
    assert not TunnelState.from_dict(down()).is_connected


def test_kind_follows_ipsec_flag():
    assert TunnelState.from_dict(ipsec_up()).kind is ConnectionKind.IPSEC
    assert TunnelState.from_dict(ssl_up()).kind is ConnectionKind.SSL
    assert TunnelState.from_dict(down()).kind is ConnectionKind.SSL


def test_saml_name_is_fallback_for_active_name():
    state = TunnelState.from_dict({"ssl_state": 1, "connection_name": "  ", "saml_vpn_name": " prod-saml "})

    assert state.active_name == "prod-saml"


def test_null_state_is_disconnected():
    state = TunnelState.from_dict(None)

    assert not state.is_connected
    assert state.active_name == ""


@pytest.mark.parametrize("data", [[1, 2], "up", {"ssl_state": "yes"}])
def test_malformed_state_raises_decode_error(data):
    with pytest.raises(DecodeError):
        TunnelState.from_dict(data)


def test_numeric_strings_are_accepted():
    assert TunnelState.from_dict({"ssl_state": "1"}).ssl_active


def test_status_without_selection():
    status = build_status(TunnelState.from_dict(ssl_up("prod")), now=_now)

    assert status.to_dict() == {
        "state": "Connected",
        "connected": True,
        "current_connection": "prod",
        "checked_at": 1700000000,
    }


def test_status_requires_selected_connection_to_be_active():
    status = build_status(TunnelState.from_dict(ssl_up("int")), "prod", now=_now)

    assert status.connected is False
    assert status.state == "Disconnected"
    assert status.to_dict()["selected_connection"] == "prod"


def test_status_does_not_tolerate_unnamed_tunnel_for_selection():
    status = build_status(TunnelState(ssl_state=1, connection_name=""), "prod", now=_now)

    assert status.connected is False


def test_status_selection_match_is_case_insensitive():
    assert build_status(TunnelState.from_dict(ssl_up("Prod")), "PROD", now=_now).connected


def test_status_label_uses_placeholder_for_unknown_name():
    assert build_status(TunnelState(), now=_now).label() == "Disconnected (<none>)"


def test_reader_makes_one_round_trip_per_observation():
    bridge = FakeBridge(states=[down(), ssl_up("prod")])
    reader = StateReader(bridge)

    assert not reader.observe().is_connected
    assert reader.observe().active_name == "prod"
    assert bridge.observations() == 2


def test_reader_propagates_bridge_errors():
    bridge = FakeBridge()
    bridge.fail("get-state", BridgeLogicalError("module not loaded"))

    with pytest.raises(BridgeLogicalError):
        StateReader(bridge).observe()
