import logging
from collections.abc import Iterable, Iterator
from typing import Any

from metacpan_recent.models import PollerState, parse_dt

log = logging.getLogger(__name__)


class WatermarkDiffer:
    """
    Decides which releases are new, using a single timestamp watermark.

    The feed is newest-first, so the walk stops at the first release dated
    before the watermark: everything after it is older still and was reported
    on an earlier cycle. A later record that would qualify on its own is never
    reached. A release whose date cannot be parsed also ends the walk.

    Releases are not tracked by identity. After every cycle the watermark
    moves to the wall-clock time the cycle finished, not to the newest
    release date seen.
    """

    def __init__(self, state: PollerState) -> None:
        self._state = state

    @property
    def watermark(self) -> float:
        return self._state.watermark

    def diff(self, releases: Iterable[Any]) -> Iterator[Any]:
        """
        Lazily yield the leading releases dated at or after the watermark.

        The watermark is read once, when iteration starts.
        """
        watermark = self._state.watermark
        for release in releases:
            ts = parse_dt(release.get("date")) if isinstance(release, dict) else None
            if ts is None:
                log.warning("Release without a usable date, skipping rest of cycle: %r", release)
                return
            if ts < watermark:
                return
            yield release

    def advance(self, now: float) -> None:
        # never moves backwards, even if the wall clock does
        if now > self._state.watermark:
            self._state.watermark = now
