import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from fakes import RecordingHandler, ScriptedProber, wait_until
from router_status.errors import ConfigError
from router_status.host import Accessory, InMemoryHost, hap_uuid
from router_status.models import DeviceConfig, SatelliteStatus
from router_status.platform import RouterStatusPlatform
from router_status.scheduler import EntryState

A = {"name": "A", "homepageUrl": "192.168.1.1", "pollingInterval": "60000"}
B = {"name": "B", "homepageUrl": "192.168.1.2", "pollingInterval": "60000"}

DEFAULT_METADATA = {
    "Manufacturer": "Default-Manufacturer",
    "Model": "Default-Model",
    "SerialNumber": "Default-Serial",
    "FirmwareRevision": "1.0.0",
}


def _uuid(router):
    return hap_uuid("homepageUrl_" + router["homepageUrl"])


def _platform(host, routers):
    platform = RouterStatusPlatform(host, routers, handler=RecordingHandler())
    platform.attach(ScriptedProber(SatelliteStatus.CONNECTED))
    return platform


@pytest.mark.anyio
async def test_first_discovery_registers_all_in_one_batch():
    host = InMemoryHost()
    platform = _platform(host, [A, B])
    try:
        plan = platform.discover_devices()
        assert [d.name for d in plan.add] == ["A", "B"]
        assert host.register_calls == 1
        assert host.unregister_calls == 0
        assert [a.display_name for a in host.cached_accessories()] == ["A", "B"]
        assert len(platform.scheduler) == 2
        for accessory in host.cached_accessories():
            assert accessory.metadata == DEFAULT_METADATA
            assert isinstance(accessory.context["device"], DeviceConfig)
    finally:
        await platform.scheduler.stop_all()


@pytest.mark.anyio
async def test_cached_accessory_is_kept_and_metadata_reapplied():
    cached = Accessory("Old name", _uuid(A))
    cached.set_static_metadata("Stale", "Stale", "Stale", "0.0.1")
    host = InMemoryHost([cached])
    router = dict(A, manufacturer="ACME", firmwareRevision="2.1")
    platform = _platform(host, [router, B])
    try:
        plan = platform.discover_devices()
        assert plan.keep == [(platform.devices[0], cached)]
        assert [d.name for d in plan.add] == ["B"]
        assert host.register_calls == 1
        assert cached.metadata == {
            "Manufacturer": "ACME",
            "Model": "Default-Model",
            "SerialNumber": "Default-Serial",
            "FirmwareRevision": "2.1",
        }
        assert platform.devices[0].identity_key in platform.scheduler
    finally:
        await platform.scheduler.stop_all()


@pytest.mark.anyio
async def test_nothing_to_register_skips_the_call():
    host = InMemoryHost([Accessory("A", _uuid(A))])
    platform = _platform(host, [A])
    try:
        platform.discover_devices()
        assert host.register_calls == 0
        assert host.unregister_calls == 0
    finally:
        await platform.scheduler.stop_all()


@pytest.mark.anyio
async def test_rediscovery_removes_stale_and_keeps_running_timers():
    host = InMemoryHost()
    platform = _platform(host, [A, B])
    try:
        platform.discover_devices()
        b_key = platform.devices[1].identity_key
        b_entry = platform.scheduler.entry(b_key)
        a_entry = platform.scheduler.entry(platform.devices[0].identity_key)

        plan = platform.discover_devices([DeviceConfig.from_dict(B)])

        assert [a.display_name for a in plan.remove] == ["A"]
        assert host.unregister_calls == 1
        assert host.lookup_cached_accessory(_uuid(A)) is None
        await asyncio.gather(a_entry.timer, return_exceptions=True)
        assert a_entry.timer.cancelled()
        assert a_entry.state is EntryState.CANCELLED
        assert platform.scheduler.entry(b_key) is b_entry
        assert len(platform.scheduler) == 1
    finally:
        await platform.scheduler.stop_all()


@pytest.mark.anyio
async def test_cached_accessory_without_config_is_unregistered():
    orphan = Accessory("Orphan", hap_uuid("homepageUrl_10.9.9.9"))
    host = InMemoryHost([orphan])
    platform = _platform(host, [A])
    try:
        plan = platform.discover_devices()
        assert plan.remove == [orphan]
        assert host.unregister_calls == 1
        assert host.cached_accessories()[0].display_name == "A"
    finally:
        await platform.scheduler.stop_all()


@pytest.mark.anyio
async def test_duplicate_urls_get_one_accessory(caplog):
    host = InMemoryHost()
    twin = dict(A, name="A twin")
    platform = _platform(host, [A, twin])
    try:
        platform.discover_devices()
        assert len(host.cached_accessories()) == 1
        assert len(platform.scheduler) == 1
        assert "A twin" in caplog.text
    finally:
        await platform.scheduler.stop_all()


def test_discover_before_attach_is_an_error():
    platform = RouterStatusPlatform(InMemoryHost(), [A])
    with pytest.raises(RuntimeError):
        platform.discover_devices()


def test_bad_router_entry_is_a_config_error():
    with pytest.raises(ConfigError):
        RouterStatusPlatform(InMemoryHost(), [{"name": "No url"}])


@pytest.mark.anyio
async def test_run_polls_real_router_until_stopped():
    async def homepage(request):
        return web.Response(text="<html>router</html>")

    app = web.Application()
    app.router.add_get("/", homepage)

    async with TestServer(app) as server:
        host = InMemoryHost()
        router = {"name": "Lab", "homepageUrl": f"127.0.0.1:{server.port}", "pollingInterval": "20"}
        handler = RecordingHandler()
        platform = RouterStatusPlatform(host, [router], handler=handler)

        task = asyncio.create_task(platform.run())
        try:
            await wait_until(lambda: bool(handler.events), timeout=5)
        finally:
            platform.stop()
            await task

        accessory = platform.accessory_for(platform.devices[0])
        assert accessory.status is SatelliteStatus.CONNECTED
        assert handler.events[0].current is SatelliteStatus.CONNECTED
        assert len(platform.scheduler) == 0
