"""
Pytest configuration and fixtures.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set test environment
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from core.logging import configure_logging  # noqa: E402
from core.storage import JSONFilePersistence, RecordStore  # noqa: E402
from tools.auth import Argon2PasswordHasher, JWTSigner  # noqa: E402


TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


@pytest.fixture(scope="session", autouse=True)
def _logging():
    """Apply LOG_LEVEL so store debug output stays quiet."""
    configure_logging()


class FakeClock:
    """Controllable UTC clock for expiry tests."""
    
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    
    def __call__(self) -> datetime:
        return self.now
    
    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    """Snapshot file location inside a per-test directory."""
    return tmp_path / "database.json"


@pytest.fixture
def store(db_path, clock):
    """Record store backed by a fresh JSON file and the fake clock."""
    return RecordStore(JSONFilePersistence(db_path), clock=clock)


@pytest.fixture
def hasher():
    """Argon2 with minimal cost parameters so tests stay fast."""
    return Argon2PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def jwt_secret():
    return TEST_SECRET


@pytest.fixture
def signer(jwt_secret):
    return JWTSigner(secret=jwt_secret, issuer="chirpy")
