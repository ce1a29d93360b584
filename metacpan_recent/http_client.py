# HttpGateway: the transport the poller issues its GETs through.

# Every request resolves exactly once with a GatewayResponse:
#   - any HTTP status, with the raw body (the poller decides what 200 means)
#   - status None on transport failure: refused connection, timeout,
#     or more redirects than allowed
# Nothing is raised into the caller, so a flaky endpoint can never break
# the poll loop.

import asyncio
import logging

import aiohttp

from metacpan_recent.config import MAX_REDIRECTS, REQUEST_TIMEOUT_SECONDS, USER_AGENT
from metacpan_recent.models import GatewayResponse

log = logging.getLogger(__name__)


class HttpGateway:
    """
    Wraps an aiohttp.ClientSession.

    The session is created lazily on the first request so the gateway can be
    constructed outside a running loop. A gateway may be shared by several
    pollers; whoever constructed it is responsible for close().
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        max_redirects: int = MAX_REDIRECTS,
        user_agent: str = USER_AGENT,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self._max_redirects = max_redirects
        self._user_agent = user_agent
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": self._user_agent},
            )
        return self._session

    async def request(self, method: str, url: str) -> GatewayResponse:
        if self._closed:
            return GatewayResponse(status=None, error="gateway closed")

        session = self._ensure_session()
        try:
            async with session.request(
                method,
                url,
                allow_redirects=True,
                max_redirects=self._max_redirects,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                body = await resp.read()
                if resp.status != 200:
                    log.warning("HTTP %s fetching %s", resp.status, url)
                return GatewayResponse(status=resp.status, body=body)

        except aiohttp.ClientError as exc:
            log.warning("Transport error fetching %s: %s", url, exc)
            return GatewayResponse(status=None, error=str(exc) or type(exc).__name__)
        except asyncio.TimeoutError:
            log.warning("Timeout fetching %s", url)
            return GatewayResponse(status=None, error="timeout")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_session and self._session is not None:
            await self._session.close()
