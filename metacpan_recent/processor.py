import logging
import time
from collections.abc import Callable

from metacpan_recent.differ import WatermarkDiffer
from metacpan_recent.models import GatewayResponse, PollerState
from metacpan_recent.parser import decode_releases
from metacpan_recent.session import Session

log = logging.getLogger(__name__)


class ResponseProcessor:
    """
    Turns one gateway response into events on the subscriber.

    Each new release is posted to the subscriber under the configured event
    name, as the raw decoded record, in feed order. Whatever the response
    looked like, the watermark then moves to the current wall-clock time.
    """

    def __init__(
        self,
        state: PollerState,
        subscriber: Session,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._state = state
        self._subscriber = subscriber
        self._differ = WatermarkDiffer(state)
        self._clock = clock

    def process(self, response: GatewayResponse | None) -> int:
        """Dispatch the new releases in `response`; return how many were sent."""
        dispatched = 0
        try:
            for release in self._differ.diff(decode_releases(response)):
                self._subscriber.post(self._state.event, release)
                dispatched += 1
        finally:
            self._differ.advance(self._clock())

        if dispatched:
            log.info("%d new release(s) posted as %r", dispatched, self._state.event)
        else:
            log.debug("No new releases this cycle")
        return dispatched
