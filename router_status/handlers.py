
# status-change handlers: the output layer.

# the scheduler hands every status transition (CONNECTED <-> NOT_CONNECTED)
# to a handler; per-tick updates that change nothing only reach the debug log.

# to add a new output target, implement a class with:
#     async def handle(self, event: StatusEvent) -> None: ...
# and pass it into RouterStatusPlatform.

from datetime import datetime, timezone
from typing import Protocol

from router_status.models import SatelliteStatus, StatusEvent


_R = "\033[0m"   # reset

_STATUS_COLOR: dict[SatelliteStatus, str] = {
    SatelliteStatus.CONNECTED:     "\033[32m",   # green
    SatelliteStatus.NOT_CONNECTED: "\033[31m",   # red
    SatelliteStatus.UNKNOWN:       "\033[33m",   # yellow
}


class StatusEventHandler(Protocol):
    async def handle(self, event: StatusEvent) -> None: ...


def _ts(at: datetime) -> str:
    """ISO 8601 UTC timestamp, e.g. 2026-02-21T12:39:08Z"""
    return at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _color_status(status: SatelliteStatus) -> str:
    c = _STATUS_COLOR.get(status, "")
    return f"{c}{status.name}{_R}" if c else status.name


class ConsoleEventHandler:
    """
    Emits one line per status transition to stdout.

    Format:
        [2026-02-21T12:39:08Z] Living Room Router | NOT_CONNECTED | Was=CONNECTED | Url=192.168.1.1

    Colour is applied to the new status only, the rest stays plain so the
    line can still be cut on '|'.
    """

    async def handle(self, event: StatusEvent) -> None:
        print(self._format(event), flush=True)

    def _format(self, e: StatusEvent) -> str:
        return (
            f"[{_ts(e.at)}] "
            f"{e.device} | "
            f"{_color_status(e.current)} | "
            f"Was={e.previous.name} | "
            f"Url={e.homepage_url}"
        )
