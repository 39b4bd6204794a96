from datetime import datetime, timezone

import pytest

from cekatan.application.scan.checkpoint import CheckpointStore
from cekatan.infrastructure.adapters.kv_store import InMemoryKeyValueStore


@pytest.fixture
def now():
    """A fixed reference time so due-ness and deadlines are deterministic."""
    return datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def memory_kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def checkpoints(memory_kv):
    return CheckpointStore(memory_kv)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and checkpoints
    monkeypatch.setenv("HOME", str(home))
    return home
