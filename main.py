import asyncio
import logging
import os
import platform
import signal
import sys

from router_status.config import ROUTERS, load_platform_config
from router_status.errors import ConfigError
from router_status.host import InMemoryHost
from router_status.platform import RouterStatusPlatform

logging.basicConfig(
    level=os.environ.get("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)
log = logging.getLogger("main")


def _load_routers() -> list[dict]:
    path = sys.argv[1] if len(sys.argv) > 1 else os.environ.get("ROUTER_STATUS_CONFIG")
    if not path:
        log.info("No config file given, using the built-in router list")
        return ROUTERS
    log.info("Loading routers from %s", path)
    return load_platform_config(path)


async def main() -> int:
    try:
        routers_platform = RouterStatusPlatform(InMemoryHost(), _load_routers())
    except ConfigError as exc:
        log.error("%s", exc)
        return 1

    loop = asyncio.get_running_loop()

    if platform.system() != "Windows":

        def _shutdown(sig: signal.Signals) -> None:
            log.info("Received %s, shutting down gracefully...", sig.name)
            routers_platform.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _shutdown, sig)

        await routers_platform.run()

    else:
        try:
            await routers_platform.run()
        except (asyncio.CancelledError, KeyboardInterrupt):
            log.info("Shutting down...")

    log.info("Platform stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
