import pytest

from siteinspector.store import MemoryStore


@pytest.fixture
def store():
    return MemoryStore()
