"""Timestamp parsing and the gateway response model."""

from __future__ import annotations

import pytest

from metacpan_recent.models import GatewayResponse, PollerState, format_dt, parse_dt

from tests.factories import T, iso


def test_parse_dt_reads_bare_timestamp_as_utc():
    assert parse_dt(iso(T)) == T


@pytest.mark.parametrize(
    "value",
    ["2023-11-14T22:13:20Z", "2023-11-14T22:13:20+00:00", "2023-11-14T23:13:20+01:00"],
)
def test_parse_dt_honours_zone_designators(value):
    assert parse_dt(value) == T


def test_parse_dt_accepts_fractional_seconds():
    assert parse_dt("2023-11-14T22:13:20.500Z") == T + 0.5


@pytest.mark.parametrize("value", [None, "", "yesterday", 1700000000, "2023-13-45T99:00:00"])
def test_parse_dt_rejects_garbage(value):
    assert parse_dt(value) is None


def test_format_dt():
    assert format_dt(T) == "2023-11-14 22:13:20 UTC"
    assert format_dt(None) == "Unknown"


def test_gateway_response_ok_only_for_200():
    assert GatewayResponse(status=200).ok
    assert not GatewayResponse(status=204).ok
    assert not GatewayResponse(status=None, error="timeout").ok


def test_poller_state_defaults():
    state = PollerState(event="upload")
    assert state.delay == 180
    assert state.outstanding_requests == 0
    assert state.shutting_down is False
