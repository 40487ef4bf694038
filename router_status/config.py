import json
import logging
from pathlib import Path
from typing import Any

from router_status.errors import ConfigError

log = logging.getLogger(__name__)

PLATFORM_NAME: str = "SimpleRouterStatus"
PLUGIN_NAME: str = "homebridge-simple-router-status"

DEFAULT_POLLING_INTERVAL_MS: int = 5000
REQUEST_TIMEOUT_SECONDS: int = 10
CONNECTION_LIMIT: int = 50
USER_AGENT: str = "RouterStatus/1.0 (satellite-status)"

DEFAULT_MANUFACTURER: str = "Default-Manufacturer"
DEFAULT_MODEL: str = "Default-Model"
DEFAULT_SERIAL: str = "Default-Serial"
DEFAULT_FIRMWARE_REVISION: str = "1.0.0"

# used when no config file is given
ROUTERS: list[dict[str, str]] = [
    {
        "name": "Living Room Router",
        "homepageUrl": "192.168.1.1",
    },
    # {
    #     "name": "Upstairs Mesh Node",
    #     "homepageUrl": "https://192.168.1.2:8443",
    #     "pollingInterval": "10000",
    # },
]


def _routers_from(block: dict[str, Any], source: str) -> list[dict[str, Any]]:
    routers = block.get("routers", [])
    if not isinstance(routers, list):
        raise ConfigError(f"{source}: 'routers' must be a list")
    for i, router in enumerate(routers):
        if not isinstance(router, dict):
            raise ConfigError(f"{source}: routers[{i}] must be an object")
    return routers


def load_platform_config(path: str | Path) -> list[dict[str, Any]]:
    """
    Read the router list from a JSON config file.

    Accepts either a full Homebridge config.json (the first platform block whose
    "platform" is PLATFORM_NAME is used) or a bare platform block with a
    top-level "routers" list. A config without a matching block yields [].
    """
    source = str(path)
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as exc:
        raise ConfigError(f"Cannot read {source}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{source} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{source}: top level must be an object")

    if "platforms" not in data:
        return _routers_from(data, source)

    platforms = data["platforms"]
    if not isinstance(platforms, list):
        raise ConfigError(f"{source}: 'platforms' must be a list")

    for block in platforms:
        if isinstance(block, dict) and block.get("platform") == PLATFORM_NAME:
            return _routers_from(block, source)

    log.warning("No %s platform block found in %s", PLATFORM_NAME, source)
    return []
