
# One-shot reachability check against a router homepage.
#
# The prober answers a single question: did the router's web server answer?
#   - any response below 400 (1xx, 2xx, 3xx) -> CONNECTED
#   - a 4xx / 5xx response                   -> NOT_CONNECTED
#   - no response at all                     -> ProbeError
#
# Routers ship self-signed certificates, so TLS verification is disabled:
# finishing the handshake counts as reachable. Redirects are not followed,
# the homepage's own status code is what gets classified.

import asyncio
import logging

import aiohttp
from yarl import URL

from router_status.config import REQUEST_TIMEOUT_SECONDS
from router_status.errors import ProbeError
from router_status.models import NormalizedOrigin, SatelliteStatus

log = logging.getLogger(__name__)


def classify(status_code: int) -> SatelliteStatus:
    if 400 <= status_code < 600:
        return SatelliteStatus.NOT_CONNECTED
    return SatelliteStatus.CONNECTED


class ReachabilityProber:
    """
    Wraps a shared aiohttp.ClientSession.

    One instance serves every router; probes hold no per-device state, so any
    number of them can be in flight at once.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self._timeout = timeout

    async def probe(
        self,
        origin: NormalizedOrigin,
        timeout: float | None = None,
    ) -> SatelliteStatus:
        """
        GET the origin once and classify the answer.

        Raises:
            ProbeError  on DNS failure, refused/reset connection, TLS failure or timeout
        """
        href = origin.href
        try:
            async with self._session.get(
                URL(href, encoded=True),
                ssl=False,
                allow_redirects=False,
                timeout=aiohttp.ClientTimeout(total=self._timeout if timeout is None else timeout),
            ) as resp:
                status = classify(resp.status)
        except asyncio.TimeoutError as exc:   # first: ServerTimeoutError is also a ClientError
            log.debug("Timeout fetching status from %s", href)
            raise ProbeError(href, "timeout") from exc
        except aiohttp.ClientError as exc:
            log.debug("Error fetching status from %s: %s", href, exc)
            raise ProbeError(href, str(exc) or type(exc).__name__) from exc

        if status is SatelliteStatus.NOT_CONNECTED:
            log.debug("Received %d status from %s", resp.status, href)
        else:
            log.debug("Successfully fetched status from %s", href)
        return status
