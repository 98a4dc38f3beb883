import pytest

from funcie.endpoint import Endpoint
from funcie.receiver.memory import MemoryApplicationRegistry
from funcie.registry import Application, ApplicationNotFoundError


@pytest.mark.asyncio
async def test_registry_lifecycle():
    registry = MemoryApplicationRegistry()
    app = Application("test", Endpoint.from_address("http://localhost:8080"))

    with pytest.raises(ApplicationNotFoundError):
        await registry.get_application("test")

    await registry.register(app)
    assert await registry.get_application("test") == app

    await registry.unregister("test")
    with pytest.raises(ApplicationNotFoundError):
        await registry.get_application("test")


@pytest.mark.asyncio
async def test_unregister_missing_raises():
    registry = MemoryApplicationRegistry()

    with pytest.raises(ApplicationNotFoundError, match="application missing not registered"):
        await registry.unregister("missing")


@pytest.mark.asyncio
async def test_register_overwrites():
    registry = MemoryApplicationRegistry()
    first = Application("test", Endpoint("http", "localhost", 8080))
    second = Application("test", Endpoint("http", "localhost", 9090))

    await registry.register(first)
    await registry.register(second)

    loaded = await registry.get_application("test")
    assert loaded.endpoint.port == 9090


@pytest.mark.asyncio
async def test_applications_are_independent():
    registry = MemoryApplicationRegistry()
    one = Application("one", Endpoint("http", "localhost", 1))
    two = Application("two", Endpoint("http", "localhost", 2))
    await registry.register(one)
    await registry.register(two)

    await registry.unregister("one")

    assert await registry.get_application("two") == two
    with pytest.raises(ApplicationNotFoundError):
        await registry.get_application("one")