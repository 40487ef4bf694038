
# PollScheduler: one repeating timer per router.

# responsibilities:
#   - start a timer when a router is kept or added, never two for one identity key
#   - on every period, spawn an independent probe task (the timer never waits on it)
#   - push the result to the router's accessory, unless the router was removed meanwhile
#   - serve on-demand status reads from the host with a fresh probe
#   - stop one timer on removal, or all of them on shutdown
#
# error containment:
#   every failure inside a tick ends as NOT_CONNECTED plus a log line. a timer
#   only ever stops because it was cancelled.
#
# known race:
#   when a probe takes longer than the interval, two probes of the same router
#   can overlap. whichever resolves last wins the status write.

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from router_status.errors import InvalidAddress, ProbeError
from router_status.handlers import StatusEventHandler
from router_status.host import AccessoryHandle
from router_status.models import DeviceConfig, SatelliteStatus, StatusEvent
from router_status.prober import ReachabilityProber
from router_status.url import normalize

log = logging.getLogger(__name__)


class EntryState(Enum):
    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


@dataclass
class DeviceRuntimeEntry:
    device: DeviceConfig
    accessory: AccessoryHandle
    state: EntryState = EntryState.UNSCHEDULED
    status: SatelliteStatus = SatelliteStatus.UNKNOWN
    timer: asyncio.Task | None = None
    ticks: set[asyncio.Task] = field(default_factory=set)
    log: logging.Logger = field(init=False)

    def __post_init__(self) -> None:
        self.log = logging.getLogger(f"router.{self.device.name.lower()}")

    @property
    def live(self) -> bool:
        return self.state is EntryState.SCHEDULED


class PollScheduler:

    def __init__(
        self,
        prober: ReachabilityProber,
        handler: StatusEventHandler | None = None,
    ) -> None:
        self._prober = prober
        self._handler = handler
        self._entries: dict[str, DeviceRuntimeEntry] = {}   # identity key -> entry
        self._orphans: set[asyncio.Task] = set()   # tasks of stopped routers not yet finished

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.live

    def __len__(self) -> int:
        return sum(1 for e in self._entries.values() if e.live)

    def entry(self, key: str) -> DeviceRuntimeEntry | None:
        return self._entries.get(key)

    def start(self, device: DeviceConfig, accessory: AccessoryHandle) -> DeviceRuntimeEntry:
        """Schedule polling for `device`. Must be called from a running event loop."""
        key = device.identity_key
        existing = self._entries.get(key)
        if existing is not None and existing.live:
            existing.log.debug("Already polling %s, keeping the running timer", device.name)
            return existing

        entry = DeviceRuntimeEntry(device=device, accessory=accessory)
        accessory.on_status_requested(lambda: self.read(entry))

        interval = device.polling_interval_ms
        if interval <= 0:
            entry.log.warning(
                "Polling interval for %s is %dms, the timer will fire back to back",
                device.name, interval,
            )

        entry.timer = asyncio.create_task(
            self._run_timer(entry, interval / 1000),
            name=f"poll-{device.name.lower()}",
        )
        entry.state = EntryState.SCHEDULED
        self._entries[key] = entry
        entry.log.info("Started polling %s every %dms", device.homepage_url, interval)
        return entry

    def stop(self, key: str) -> bool:
        """
        Cancel the timer for `key`. In-flight probes are not cancelled: they
        resolve on their own and their result is dropped.
        """
        entry = self._entries.pop(key, None)
        if entry is None or not entry.live:
            return False
        entry.state = EntryState.CANCELLED
        if entry.timer is not None:
            entry.timer.cancel()
        for task in (entry.timer, *entry.ticks):
            if task is None:
                continue
            self._orphans.add(task)
            task.add_done_callback(self._orphans.discard)
        entry.log.info("Stopped polling %s", entry.device.name)
        return True

    async def stop_all(self) -> None:
        """Cancel every timer and every in-flight probe, then wait for them to finish."""
        tasks: list[asyncio.Task] = []
        for entry in self._entries.values():
            entry.state = EntryState.CANCELLED
            if entry.timer is not None:
                tasks.append(entry.timer)
            tasks.extend(entry.ticks)
        self._entries.clear()
        tasks.extend(self._orphans)
        self._orphans.clear()

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        log.info("All router timers stopped (%d task(s))", len(tasks))

    async def check(self, device: DeviceConfig) -> SatelliteStatus:
        """One probe of `device`. Never raises (except on cancellation)."""
        try:
            return await self._prober.probe(normalize(device.homepage_url))
        except (InvalidAddress, ProbeError) as exc:
            log.debug("Error getting router status for %s: %s", device.name, exc)
        except Exception as exc:
            log.exception("Unexpected error probing %s: %s", device.name, exc)
        return SatelliteStatus.NOT_CONNECTED

    async def read(self, entry: DeviceRuntimeEntry) -> SatelliteStatus:
        """On-demand path: the host asked for the current status."""
        status = await self.check(entry.device)
        if entry.live:
            try:
                await self._record(entry, status)
            except Exception as exc:
                entry.log.exception("Unexpected error recording status for %s: %s", entry.device.name, exc)
        return status

    async def _run_timer(self, entry: DeviceRuntimeEntry, period: float) -> None:
        try:
            while True:
                await asyncio.sleep(period)
                tick = asyncio.create_task(self._tick(entry))
                entry.ticks.add(tick)
                tick.add_done_callback(entry.ticks.discard)
        except asyncio.CancelledError:
            entry.log.debug("Timer for %s cancelled.", entry.device.name)
            raise

    async def _tick(self, entry: DeviceRuntimeEntry) -> None:
        try:
            status = await self.check(entry.device)
            if not entry.live:
                entry.log.debug("Dropping status for removed router %s", entry.device.name)
                return
            entry.accessory.set_status(status)
            await self._record(entry, status)
        except Exception as exc:
            entry.log.exception("Unexpected error in tick for %s: %s", entry.device.name, exc)

    async def _record(self, entry: DeviceRuntimeEntry, status: SatelliteStatus) -> None:
        previous, entry.status = entry.status, status
        entry.log.debug("Updated router status for %s: %s", entry.device.name, status.name)
        if status is previous or self._handler is None:
            return
        await self._handler.handle(StatusEvent(
            device=entry.device.name,
            homepage_url=entry.device.homepage_url,
            previous=previous,
            current=status,
            at=datetime.now(tz=timezone.utc),
        ))
