
# RouterStatusPlatform: the top-level orchestrator.

# Responsibilities:
#   - Create the shared aiohttp session and the prober built on it
#   - Reconcile the configured routers against the host's cached accessories
#   - Register new accessories / unregister stale ones in one batched call each
#   - Keep exactly one poll timer per configured router
#   - Provide a clean stop() for graceful shutdown
#
# discover_devices() may be called again with a new router list at any time;
# routers that stay configured keep their running timer untouched.

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import aiohttp

from router_status.config import (
    CONNECTION_LIMIT,
    DEFAULT_FIRMWARE_REVISION,
    DEFAULT_MANUFACTURER,
    DEFAULT_MODEL,
    DEFAULT_SERIAL,
    USER_AGENT,
)
from router_status.handlers import ConsoleEventHandler, StatusEventHandler
from router_status.host import AccessoryHandle, HostFramework
from router_status.models import DeviceConfig
from router_status.prober import ReachabilityProber
from router_status.reconciler import Reconciliation, reconcile
from router_status.scheduler import PollScheduler

log = logging.getLogger(__name__)


def apply_static_metadata(accessory: AccessoryHandle, device: DeviceConfig) -> None:
    accessory.set_static_metadata(
        device.manufacturer if device.manufacturer is not None else DEFAULT_MANUFACTURER,
        device.model if device.model is not None else DEFAULT_MODEL,
        device.serial if device.serial is not None else DEFAULT_SERIAL,
        device.firmware_revision if device.firmware_revision is not None else DEFAULT_FIRMWARE_REVISION,
    )


class RouterStatusPlatform:

    def __init__(
        self,
        host: HostFramework,
        routers: Iterable[dict[str, Any]],
        handler: StatusEventHandler | None = None,
    ) -> None:
        self.host = host
        self.devices = [DeviceConfig.from_dict(r) for r in routers]
        self._handler = handler if handler is not None else ConsoleEventHandler()
        self.scheduler: PollScheduler | None = None
        self._stopped = asyncio.Event()
        self._keys_by_uuid: dict[str, str] = {}   # accessory uuid -> identity key

    def attach(self, prober: ReachabilityProber) -> PollScheduler:
        """Bind the platform to a prober. run() does this with its own session."""
        self.scheduler = PollScheduler(prober, self._handler)
        return self.scheduler

    def accessory_for(self, device: DeviceConfig) -> AccessoryHandle | None:
        return self.host.lookup_cached_accessory(
            self.host.generate_identity(device.identity_key)
        )

    def discover_devices(
        self, devices: list[DeviceConfig] | None = None
    ) -> Reconciliation[AccessoryHandle]:
        if self.scheduler is None:
            raise RuntimeError("discover_devices() called before attach()")
        if devices is not None:
            self.devices = devices

        known = {a.uuid: a for a in self.host.cached_accessories()}
        plan = reconcile(self.devices, known, identity=self.host.generate_identity)

        for device in plan.duplicates:
            log.warning(
                "Ignoring router %r: homepageUrl %r is already configured",
                device.name, device.homepage_url,
            )

        for device, accessory in plan.keep:
            log.info("Restoring existing router accessory from cache: %s", accessory.display_name)
            self._setup(device, accessory)

        added: list[AccessoryHandle] = []
        for device in plan.add:
            log.info("Adding new router accessory: %s", device.name)
            accessory = self.host.create_accessory(
                device.name, self.host.generate_identity(device.identity_key)
            )
            self._setup(device, accessory)
            added.append(accessory)

        if added:
            self.host.register_accessories(added)

        if plan.remove:
            for accessory in plan.remove:
                log.info("Removing missing router accessory: %s", accessory.display_name)
                key = self._keys_by_uuid.pop(accessory.uuid, None)
                if key is not None:
                    self.scheduler.stop(key)
            self.host.unregister_accessories(plan.remove)

        return plan

    def _setup(self, device: DeviceConfig, accessory: AccessoryHandle) -> None:
        accessory.context["device"] = device
        self._keys_by_uuid[accessory.uuid] = device.identity_key
        apply_static_metadata(accessory, device)
        self.scheduler.start(device, accessory)

    async def run(self) -> None:
        connector = aiohttp.TCPConnector(limit=CONNECTION_LIMIT)
        async with aiohttp.ClientSession(
            connector=connector,
            headers={"User-Agent": USER_AGENT},
        ) as session:
            scheduler = self.attach(ReachabilityProber(session))
            self.discover_devices()

            log.info(
                "RouterStatusPlatform running, polling %d router(s). Press Ctrl+C to stop.",
                len(scheduler),
            )

            try:
                # blocks until stop() is called
                await self._stopped.wait()
            finally:
                await scheduler.stop_all()

    def stop(self) -> None:
        """Ask run() to tear down every timer and close the session."""
        self._stopped.set()
