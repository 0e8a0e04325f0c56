import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tracker.core.errors import TransientStoreFailure  # noqa: E402
from tracker.core.storage import MemoryStorage  # noqa: E402
from tracker.db import Base  # noqa: E402
import tracker.models.records  # noqa: E402,F401
from tracker.services.pipeline import DeliveryPipeline  # noqa: E402
from tracker.services.retry import Debouncer, RetryPolicy  # noqa: E402
from tracker.services.sinks import LocalQueueSink  # noqa: E402


class FakeSink:
    """Fails the first `failures` writes, then succeeds. Records every attempt."""

    def __init__(self, name, failures=0, exc=TransientStoreFailure):
        self.name = name
        self.failures = failures
        self.exc = exc
        self.attempts = []
        self.written = []

    async def write(self, payload, collection):
        self.attempts.append((collection, dict(payload)))
        if len(self.attempts) <= self.failures:
            raise self.exc(f"{self.name} down")
        self.written.append((collection, dict(payload)))


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def local_storage():
    return MemoryStorage()


@pytest.fixture
def make_pipeline(sleeps, clock, local_storage):
    def _make(primary=None, secondary=None, window=5.0):
        primary = primary or FakeSink("primary")
        secondary = secondary or FakeSink("secondary")
        return DeliveryPipeline(
            primary=primary,
            secondary=secondary,
            local=LocalQueueSink(local_storage),
            retry=RetryPolicy(3, sleep=sleeps),
            debouncer=Debouncer(window, clock=clock),
        )

    return _make


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
