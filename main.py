import asyncio
import logging
import platform
import signal
import sys

from metacpan_recent.handlers import ConsoleEventHandler
from metacpan_recent.orchestrator import RecentUploads
from metacpan_recent.session import Session

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)
log = logging.getLogger("main")


async def main() -> None:
    handler = ConsoleEventHandler()
    app = Session({"upload": handler.handle}, alias="main")

    with app.activate():
        recent = RecentUploads.spawn(event="upload")

    loop = asyncio.get_running_loop()

    if platform.system() != "Windows":

        def _shutdown(sig: signal.Signals) -> None:
            log.info("Received %s, shutting down gracefully...", sig.name)
            recent.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _shutdown, sig)

        # returns once RecentUploads has released its lease on this session
        await app.wait_idle()

    else:
        try:
            await app.wait_idle()
        except (asyncio.CancelledError, KeyboardInterrupt):
            log.info("Shutting down...")
            recent.shutdown()
            await recent.wait_closed()

    await recent.wait_closed()
    log.info("Watcher stopped after %d upload(s).", handler.seen)


if __name__ == "__main__":
    asyncio.run(main())
