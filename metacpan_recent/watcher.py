# RecentWatcher: drives the fetch cycle for one RecentUploads instance.

# responsibilities:
#   - issue the first request as soon as the component starts
#   - hand each response to the ResponseProcessor
#   - arm the next request `delay` seconds after a response has been processed
#   - keep the outstanding-request count the shutdown logic is gated on
#
# The next request is only armed once the previous response has been fully
# processed, so at most one request is ever in flight and responses are
# processed in the order they were issued.

import asyncio
import logging
from collections.abc import Callable

from metacpan_recent.http_client import HttpGateway
from metacpan_recent.models import GatewayResponse, PollerState
from metacpan_recent.processor import ResponseProcessor

log = logging.getLogger(__name__)


class RecentWatcher:

    def __init__(
        self,
        state: PollerState,
        gateway: HttpGateway,
        processor: ResponseProcessor,
        url: str,
        on_drained: Callable[[], None],
    ) -> None:
        self._state = state
        self._gateway = gateway
        self._processor = processor
        self.url = url
        self._on_drained = on_drained
        self._timer: asyncio.TimerHandle | asyncio.Handle | None = None
        self._request: asyncio.Task | None = None
        self._loop = asyncio.get_running_loop()

    def start(self) -> None:
        log.info("Polling %s every %ss", self.url, self._state.delay)
        self._timer = self._loop.call_soon(self.get_recent)

    def get_recent(self) -> None:
        self._timer = None
        if self._state.shutting_down:
            return

        self._state.outstanding_requests += 1
        self._request = self._loop.create_task(self._gateway.request("GET", self.url))
        self._request.add_done_callback(self._handle_recent)

    def _handle_recent(self, task: asyncio.Task) -> None:
        self._request = None
        self._state.outstanding_requests -= 1

        response: GatewayResponse | None = None
        if task.cancelled():
            log.warning("Request to %s was cancelled", self.url)
        elif task.exception() is not None:
            log.error("Gateway failed on %s", self.url, exc_info=task.exception())
        else:
            response = task.result()

        try:
            self._processor.process(response)
        except Exception as exc:
            log.exception("Unexpected error processing %s: %s", self.url, exc)

        if self._state.shutting_down:
            if not self._state.outstanding_requests:
                self._on_drained()
            return

        self._arm()

    def _arm(self) -> None:
        self.cancel()
        self._timer = self._loop.call_later(self._state.delay, self.get_recent)

    def cancel(self) -> None:
        """Drop the pending timer, if any. An in-flight request is left alone."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
