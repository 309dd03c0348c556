import pytest
from recipes.messaging.bus import bus as messaging_bus
from recipes.providers.registry import ResourceRegistry
from recipes.runtime.bus import MessageBus
from recipes.testing import SpySubscriber


@pytest.fixture
def bus_and_spy():
    """Provides a MessageBus instance and an attached SpySubscriber."""
    bus = MessageBus()
    spy = SpySubscriber(bus)
    return bus, spy


@pytest.fixture
def registry():
    """An isolated registry that does not look at installed entry points."""
    return ResourceRegistry(discover=False)


@pytest.fixture(autouse=True)
def reset_messaging_renderer():
    yield
    messaging_bus.set_renderer(None)
