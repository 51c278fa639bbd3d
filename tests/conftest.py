"""
Pytest configuration and fixtures
"""
import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pawsafe.alerts.haptics import MockHapticSink
from pawsafe.alerts.push_notification import MockNotificationSink
from pawsafe.crowdsource.report import HazardReport
from pawsafe.database.connection import DatabaseConnection
from pawsafe.database.store import EntityStore
from pawsafe.sync.remote import InMemoryRemoteStore

# 2026-01-27 14:30:00 UTC
START_MS = 1_769_524_200_000


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    """Clock frozen at a fixed instant."""
    return FakeClock()


@pytest.fixture
def database_url(tmp_path):
    """SQLite file in a per-test directory."""
    return f"sqlite:///{tmp_path / 'pawsafe.db'}"


@pytest.fixture
def store(database_url, clock):
    """Initialized entity store at the latest schema."""
    entity_store = EntityStore(DatabaseConnection(database_url, echo=False), clock=clock)
    entity_store.init()
    yield entity_store
    entity_store.close()


@pytest.fixture
def remote(clock):
    """In-memory remote store sharing the test clock."""
    return InMemoryRemoteStore(clock)


@pytest.fixture
def notifier():
    return MockNotificationSink()


@pytest.fixture
def haptics():
    return MockHapticSink()


@pytest.fixture
def make_report(clock):
    """Factory for unsaved reports near Sao Paulo."""
    counter = {"n": 0}

    def _make(**overrides) -> HazardReport:
        counter["n"] += 1
        fields = {
            "id": f"report-{counter['n']}",
            "lat": -23.5505,
            "lng": -46.6333,
            "description": "Broken bottle on the sidewalk",
            "created_at": datetime.fromtimestamp(clock() / 1000, tz=timezone.utc),
        }
        fields.update(overrides)
        return HazardReport(**fields)

    return _make
