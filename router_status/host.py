
# The accessory host: the smart-home framework that owns accessories.
#
# The rest of the package only talks to the host through the two Protocols
# below, so any framework can be plugged in by writing an adapter for them.
# InMemoryHost is the adapter shipped here: it behaves like the Homebridge
# platform API closely enough to run the plugin standalone and under test.

import hashlib
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Protocol

from router_status.models import SatelliteStatus

log = logging.getLogger(__name__)

StatusRequestHandler = Callable[[], Awaitable[SatelliteStatus]]


class AccessoryHandle(Protocol):
    uuid: str
    display_name: str
    context: dict[str, Any]

    def set_static_metadata(
        self, manufacturer: str, model: str, serial: str, firmware: str
    ) -> None: ...

    def set_status(self, status: SatelliteStatus) -> None: ...

    def on_status_requested(self, callback: StatusRequestHandler) -> None: ...


class HostFramework(Protocol):
    def generate_identity(self, seed: str) -> str: ...

    def lookup_cached_accessory(self, uuid: str) -> AccessoryHandle | None: ...

    def cached_accessories(self) -> list[AccessoryHandle]: ...

    def create_accessory(self, name: str, uuid: str) -> AccessoryHandle: ...

    def register_accessories(self, handles: list[AccessoryHandle]) -> None: ...

    def unregister_accessories(self, handles: list[AccessoryHandle]) -> None: ...


def hap_uuid(seed: str) -> str:
    """
    Deterministic UUID for `seed`, laid out the way HAP-NodeJS uuid.generate does
    it: SHA-1 hex digits poured into a version-4 template, variant nibble forced
    to 8-b. Matches the ids a Homebridge install persists for the same seed.
    """
    digest = iter(hashlib.sha1(seed.encode("utf-8")).hexdigest())
    out = []
    for c in "xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx":
        if c == "x":
            out.append(next(digest))
        elif c == "y":
            out.append(format((int(next(digest), 16) & 0x3) | 0x8, "x"))
        else:
            out.append(c)
    return "".join(out)


class Accessory:
    """An accessory exposing one WiFiSatellite service."""

    def __init__(self, display_name: str, uuid: str) -> None:
        self.display_name = display_name
        self.uuid = uuid
        self.context: dict[str, Any] = {}
        self.metadata: dict[str, str] = {}
        self.status = SatelliteStatus.UNKNOWN
        self._status_handler: StatusRequestHandler | None = None

    def __repr__(self) -> str:
        return f"Accessory({self.display_name!r}, {self.uuid!r}, status={self.status.name})"

    def set_static_metadata(
        self, manufacturer: str, model: str, serial: str, firmware: str
    ) -> None:
        self.metadata = {
            "Manufacturer": manufacturer,
            "Model": model,
            "SerialNumber": serial,
            "FirmwareRevision": firmware,
        }

    def set_status(self, status: SatelliteStatus) -> None:
        self.status = status

    def on_status_requested(self, callback: StatusRequestHandler) -> None:
        self._status_handler = callback

    async def request_status(self) -> SatelliteStatus:
        """Read the status the way a controller does: through the registered handler."""
        if self._status_handler is not None:
            self.status = await self._status_handler()
        return self.status


class InMemoryHost:

    def __init__(self, cached: Iterable[Accessory] = ()) -> None:
        self._accessories: dict[str, Accessory] = {}
        self.register_calls = 0
        self.unregister_calls = 0
        for accessory in cached:
            self.configure_accessory(accessory)

    def configure_accessory(self, accessory: Accessory) -> None:
        log.info("Loading accessory from cache: %s", accessory.display_name)
        self._accessories[accessory.uuid] = accessory

    def generate_identity(self, seed: str) -> str:
        return hap_uuid(seed)

    def lookup_cached_accessory(self, uuid: str) -> Accessory | None:
        return self._accessories.get(uuid)

    def cached_accessories(self) -> list[Accessory]:
        return list(self._accessories.values())

    def create_accessory(self, name: str, uuid: str) -> Accessory:
        return Accessory(name, uuid)

    def register_accessories(self, handles: list[Accessory]) -> None:
        self.register_calls += 1
        for accessory in handles:
            self._accessories[accessory.uuid] = accessory

    def unregister_accessories(self, handles: list[Accessory]) -> None:
        self.unregister_calls += 1
        for accessory in handles:
            self._accessories.pop(accessory.uuid, None)
