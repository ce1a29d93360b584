import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from metacpan_recent.config import DEFAULT_DELAY_SECONDS

log = logging.getLogger(__name__)


def parse_dt(value: Any) -> float | None:
    """
    Parse a MetaCPAN ISO 8601 timestamp into epoch seconds.

    MetaCPAN returns strings like '2024-11-03T14:32:00' with no zone designator;
    those are UTC. A trailing 'Z' or an explicit offset is honoured.
    Returns None when the value cannot be parsed.
    """
    if not isinstance(value, str) or not value:
        return None

    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        log.warning("Could not parse datetime string: %r", value)
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def format_dt(ts: float | None) -> str:
    """Human-readable UTC timestamp for console display."""
    if ts is None:
        return "Unknown"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


@dataclass(frozen=True)
class GatewayResponse:
    """
    Terminal result of one gateway request.

    A transport failure (refused connection, timeout, too many redirects)
    has status None and a short description in `error`.
    """
    status: int | None
    body: bytes = b""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == 200


@dataclass
class PollerState:
    """Everything one RecentUploads instance mutates while it runs."""
    event: str
    delay: float = DEFAULT_DELAY_SECONDS
    watermark: float = field(default_factory=time.time)   # releases older than this were reported
    outstanding_requests: int = 0
    shutting_down: bool = False
