# RecentUploads: the top-level component.

# Responsibilities:
#   - validate spawn options and fail fast on configuration errors
#   - find the subscriber session and hold a lease on it while polling
#   - reuse the caller's HttpGateway or provision (and later close) its own
#   - start the RecentWatcher
#   - shut down gracefully: a request already in flight is always completed
#     and processed before anything is torn down
#
# Usage, from inside a running session:
#
#     recent = RecentUploads.spawn(event="upload")
#     ...
#     recent.shutdown()
#
# Each new release is then posted to that session as ("upload", release).

import asyncio
import logging
import time
from typing import Any

from metacpan_recent.config import DEFAULT_DELAY_SECONDS, FEED_URL, ConfigurationError
from metacpan_recent.http_client import HttpGateway
from metacpan_recent.models import PollerState
from metacpan_recent.processor import ResponseProcessor
from metacpan_recent.session import Kernel, Session, current_session, default_kernel
from metacpan_recent.watcher import RecentWatcher

log = logging.getLogger(__name__)

_OPTION_ALIASES: dict[str, str] = {
    "gatewayref": "gateway",
    "sessionoptions": "session_options",
    "options": "session_options",
}

_KNOWN_OPTIONS = frozenset(
    {"event", "session", "delay", "gateway", "session_options", "url", "kernel", "clock"}
)


class RecentUploads:

    def __init__(
        self,
        event: str,
        *,
        session: Session | int | str | None = None,
        delay: float = DEFAULT_DELAY_SECONDS,
        gateway: HttpGateway | None = None,
        session_options: dict[str, Any] | None = None,
        url: str = FEED_URL,
        kernel: Kernel | None = None,
        clock=time.time,
    ) -> None:
        self._event = event
        self._subscriber_ref = session
        self._delay = delay
        self._gateway = gateway
        self._owns_gateway = False
        self._session_options = session_options
        self._url = url
        self._kernel = kernel if kernel is not None else default_kernel
        self._clock = clock

        self._session: Session | None = None
        self._subscriber: Session | None = None
        self._lease = None
        self._state: PollerState | None = None
        self._watcher: RecentWatcher | None = None
        self._closing: asyncio.Task | None = None
        self._stopped = asyncio.Event()

    @classmethod
    def spawn(cls, **opts: Any) -> "RecentUploads":
        """
        Create and start a poller.

        Must be called with a running event loop. Raises ConfigurationError,
        before anything starts, if 'event' is missing or no subscriber
        session can be found.
        """
        opts = {k.lower(): v for k, v in opts.items()}
        opts = {_OPTION_ALIASES.get(k, k): v for k, v in opts.items()}
        for unknown in sorted(set(opts) - _KNOWN_OPTIONS):
            log.warning("%s ignoring unknown option %r", cls.__name__, unknown)
            del opts[unknown]

        event = opts.pop("event", None)
        if not event or not isinstance(event, str):
            raise ConfigurationError(f"{cls.__name__} requires an 'event' argument")

        delay = opts.pop("delay", None) or DEFAULT_DELAY_SECONDS
        if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
            raise ConfigurationError(f"'delay' must be a positive number of seconds, got {delay!r}")

        options = opts.pop("session_options", None)
        if options is not None and not isinstance(options, dict):
            options = None

        opts = {k: v for k, v in opts.items() if v is not None}
        component = cls(event, delay=delay, session_options=options, **opts)
        component._start(caller=current_session())
        return component

    # ── public handle ────────────────────────────────────────────────────

    @property
    def session_id(self) -> int:
        return self._session.id

    def id(self) -> int:
        return self.session_id

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def owns_gateway(self) -> bool:
        return self._owns_gateway

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def shutdown(self) -> None:
        """Stop polling. Safe to call any number of times."""
        self._shutdown()

    async def wait_closed(self) -> None:
        await self._stopped.wait()

    # ── lifecycle ────────────────────────────────────────────────────────

    def _start(self, caller: Session | None) -> None:
        if self._subscriber_ref is not None:
            subscriber = self._kernel.resolve(self._subscriber_ref)
            if subscriber is None:
                raise ConfigurationError(
                    f"Could not resolve 'session' {self._subscriber_ref!r} to a live session"
                )
        elif caller is not None:
            subscriber = caller
        else:
            raise ConfigurationError("Not called from another session and 'session' wasn't set")

        self._session = Session(
            {"shutdown": self._shutdown},
            options=self._session_options,
            kernel=self._kernel,
        )
        self._subscriber = subscriber
        self._lease = subscriber.lease(type(self).__name__)

        if self._gateway is None:
            self._gateway = HttpGateway()
            self._owns_gateway = True

        self._state = PollerState(event=self._event, delay=self._delay, watermark=self._clock())
        processor = ResponseProcessor(self._state, subscriber, clock=self._clock)
        self._watcher = RecentWatcher(
            self._state,
            self._gateway,
            processor,
            self._url,
            on_drained=self._real_shutdown,
        )
        log.info(
            "RecentUploads session %s started, posting %r to session %s",
            self._session.id, self._event, subscriber.id,
        )
        self._watcher.start()

    def _shutdown(self) -> None:
        if self._state.shutting_down:
            return
        self._state.shutting_down = True

        if self._state.outstanding_requests:
            log.info(
                "RecentUploads session %s: shutdown deferred until %d request(s) complete",
                self._session.id, self._state.outstanding_requests,
            )
            return
        self._real_shutdown()

    def _real_shutdown(self) -> None:
        if self._session.closed:
            return
        self._watcher.cancel()
        self._session.close()
        self._lease.release()

        if self._owns_gateway:
            self._closing = asyncio.get_running_loop().create_task(self._gateway.close())
            self._closing.add_done_callback(self._gateway_closed)
        else:
            self._finish()

    def _gateway_closed(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            log.error("Error closing HTTP gateway", exc_info=task.exception())
        self._finish()

    def _finish(self) -> None:
        self._stopped.set()
        log.info("RecentUploads session %s stopped", self._session.id)
