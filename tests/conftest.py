import sys

import pytest
from datetime import datetime, timezone
from loguru import logger as loguru_logger

from prep_call.config.settings import get_settings
from prep_call.store import RecordStore
from fakes import FakeClock

@pytest.fixture
def clock():
    """A clock frozen at 2024-01-01T00:00:00Z that tests can advance."""
    return FakeClock(datetime(2024, 1, 1, tzinfo=timezone.utc))

@pytest.fixture
def store(tmp_path, clock):
    """A freshly seeded store backed by a temporary data file."""
    return RecordStore(tmp_path / "data.json", clock=clock)

@pytest.fixture
def mock_env_vars(monkeypatch, tmp_path):
    """Set up mock environment variables for testing."""
    monkeypatch.setenv("VOCAL_BRIDGE_API_KEY", "test_vocal_bridge_key")
    monkeypatch.setenv("VOCAL_BRIDGE_TOKEN_URL", "https://vocalbridge.test/api/v1/token")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

@pytest.fixture
def restore_logger():
    """Put loguru back to a plain stderr sink after setup_logging() ran."""
    yield
    loguru_logger.remove()
    loguru_logger.add(sys.stderr)
