import pytest

from privacymail.anonymization.anonymizer import Anonymizer
from privacymail.anonymization.memory import MemoryStore
from tests.fakes import FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def memory(clock: FakeClock) -> MemoryStore:
    return MemoryStore(ttl_seconds=600, max_entries=400, clock=clock)


@pytest.fixture()
def anonymizer(memory: MemoryStore, clock: FakeClock) -> Anonymizer:
    """Anonymizer without an entity tagger, sharing the fake clock."""
    return Anonymizer(memory=memory, clock=clock)
