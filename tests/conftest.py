import pytest
from typer.testing import CliRunner
from typing import Any, Dict, List, Optional

from cmdqueue.domain.interfaces.config import ConfigurationProvider
from cmdqueue.domain.interfaces.storage import KeyValueStore
from cmdqueue.domain.models.request import Destination
from cmdqueue.infrastructure.config import settings

class InMemoryStore(KeyValueStore):
    """KeyValueStore kept in a dict; records every write."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.writes: List[str] = []

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.writes.append(key)
        self.data[key] = value

class RecordingSleep:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

class FakeClock:
    """Manually advanced clock returning seconds since epoch."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

class StaticConfigProvider(ConfigurationProvider):
    def __init__(self, destination: Optional[Destination] = None, values: Optional[Dict[str, Any]] = None):
        self.destination = destination
        self.values = values or {}

    def get(self, key, default=None):
        return self.values.get(key, default)

    def load_config(self):
        pass

    def get_destination(self):
        return self.destination

@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()

@pytest.fixture
def store():
    return InMemoryStore()

@pytest.fixture
def recorded_sleep():
    return RecordingSleep()

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def destination():
    return Destination(api_url="https://commander.example.com/api/v2/", api_key="test-api-key")

@pytest.fixture
def config_provider(destination):
    return StaticConfigProvider(destination=destination)

@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch):
    """Keeps developer environment variables and test overrides out of tests."""
    for name in ("COMMANDER_API_URL", "COMMANDER_API_KEY", "RATE_LIMIT_PER_MINUTE", "RATE_LIMIT_PER_HOUR"):
        monkeypatch.delenv(name, raising=False)
    settings.clear_test_config()
    yield
    settings.clear_test_config()
