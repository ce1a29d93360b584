"""Builders for MetaCPAN release records and feed responses."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from metacpan_recent.models import GatewayResponse

T = 1_700_000_000.0   # 2023-11-14T22:13:20Z


def iso(ts: float) -> str:
    """MetaCPAN-style date: second precision, no zone designator."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


def make_release(ts: float, name: str | None = None, **fields: Any) -> dict[str, Any]:
    release = {
        "date": iso(ts),
        "name": name or f"Dist-{int(ts)}",
        "author": "ETHER",
        "distribution": "Dist",
        "maturity": "released",
        "abstract": "A test distribution",
    }
    release.update(fields)
    return release


def feed_response(releases: list[Any], status: int = 200) -> GatewayResponse:
    body = json.dumps({"releases": releases}).encode("utf-8")
    return GatewayResponse(status=status, body=body)


def raw_response(body: bytes | str, status: int = 200) -> GatewayResponse:
    if isinstance(body, str):
        body = body.encode("utf-8")
    return GatewayResponse(status=status, body=body)
