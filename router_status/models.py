import re
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Any

from router_status.config import DEFAULT_POLLING_INTERVAL_MS
from router_status.errors import ConfigError


IDENTITY_PREFIX = "homepageUrl_"

# leading integer prefix: " 250ms" -> 250
_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


class SatelliteStatus(IntEnum):
    """Values of the HomeKit WiFiSatelliteStatus characteristic."""
    UNKNOWN = 0
    CONNECTED = 1
    NOT_CONNECTED = 2


def parse_interval(value: Any) -> int:
    """
    Parse a polling interval in milliseconds.

    "15000" -> 15000, "250ms" -> 250, None / "" / "abc" -> the default.
    No lower bound is applied: "0" and "-10" come back unchanged.
    """
    if value is None:
        return DEFAULT_POLLING_INTERVAL_MS
    match = _INT_PREFIX.match(str(value))
    if match is None:
        return DEFAULT_POLLING_INTERVAL_MS
    return int(match.group(1))


@dataclass(frozen=True)
class DeviceConfig:
    """One router entry from the platform configuration."""
    name: str
    homepage_url: str
    manufacturer: str | None = None
    model: str | None = None
    serial: str | None = None
    firmware_revision: str | None = None
    polling_interval: str | None = None   # raw string, see polling_interval_ms

    @property
    def identity_key(self) -> str:
        # exact string: no normalization, case-sensitive
        return IDENTITY_PREFIX + self.homepage_url

    @property
    def polling_interval_ms(self) -> int:
        return parse_interval(self.polling_interval)

    @classmethod
    def from_dict(cls, entry: dict[str, Any]) -> "DeviceConfig":
        for field in ("name", "homepageUrl"):
            if not isinstance(entry.get(field), str):
                raise ConfigError(f"Router entry is missing a string {field!r}: {entry!r}")

        def opt(key: str) -> str | None:
            value = entry.get(key)
            return None if value is None else str(value)

        return cls(
            name=entry["name"],
            homepage_url=entry["homepageUrl"],
            manufacturer=opt("manufacturer"),
            model=opt("model"),
            serial=opt("serial"),
            firmware_revision=opt("firmwareRevision"),
            polling_interval=opt("pollingInterval"),
        )


@dataclass(frozen=True)
class NormalizedOrigin:
    scheme: str   # http | https
    host: str
    port: int
    path: str

    @property
    def href(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}{self.path}"


@dataclass
class StatusEvent:
    """A change of reported status for one router. Pure data, no display logic."""
    device: str
    homepage_url: str
    previous: SatelliteStatus
    current: SatelliteStatus
    at: datetime
