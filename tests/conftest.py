import pytest


@pytest.fixture
def anyio_backend():
    # aiohttp only runs on asyncio
    return "asyncio"
