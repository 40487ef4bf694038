
# Turns a user-supplied homepage address into the origin the prober hits.
#
#   "192.168.1.1"             -> http://192.168.1.1:80/
#   "HTTPS://router.lan"      -> https://router.lan:443/
#   "10.0.0.1:8080/login.htm" -> http://10.0.0.1:8080/login.htm
#
# Parsing is delegated to yarl (the URL type aiohttp itself uses), so the
# result is exactly what the HTTP client would understand. Query strings and
# fragments are dropped: only the homepage path is probed.

import re

from yarl import URL

from router_status.errors import InvalidAddress
from router_status.models import NormalizedOrigin

DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

_SCHEME_PREFIX = re.compile(r"^https?://", re.IGNORECASE)


def normalize(address: str) -> NormalizedOrigin:
    text = address.strip() if isinstance(address, str) else ""
    if not text:
        raise InvalidAddress(address, "address is empty")

    if not _SCHEME_PREFIX.match(text):
        text = f"http://{text}"

    try:
        url = URL(text)
        host = url.raw_host
        port = url.explicit_port
    except ValueError as exc:
        raise InvalidAddress(address, str(exc)) from exc

    if not host:
        raise InvalidAddress(address, "no host")

    scheme = url.scheme.lower()
    if port is None:
        port = DEFAULT_PORTS[scheme]

    return NormalizedOrigin(
        scheme=scheme,
        host=host,
        port=port,
        path=url.raw_path or "/",
    )
