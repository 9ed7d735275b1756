"""
Storage layer.

Provides the record store (users, posts, refresh tokens) and its
pluggable snapshot backends:
- JSON file (default)
- Memory (tests and tooling)
"""

from core.storage.base import (
    AuthUser,
    BaseSnapshotPersistence,
    Post,
    RefreshToken,
    Snapshot,
    User,
)
from core.storage.errors import (
    AlreadyExistsError,
    CorruptSnapshotError,
    ErrorKind,
    ExpiredError,
    NotFoundError,
    PersistenceError,
    SnapshotNotFoundError,
    StoreError,
)
from core.storage.factory import (
    create_persistence,
    create_record_store,
    get_storage_backend,
    open_record_store,
    StorageBackend,
)
from core.storage.persistence import JSONFilePersistence, MemoryPersistence
from core.storage.store import RecordStore
from core.storage.tokens import RefreshTokenManager

__all__ = [
    # Records
    "AuthUser",
    "Post",
    "RefreshToken",
    "Snapshot",
    "User",
    # Errors
    "AlreadyExistsError",
    "CorruptSnapshotError",
    "ErrorKind",
    "ExpiredError",
    "NotFoundError",
    "PersistenceError",
    "SnapshotNotFoundError",
    "StoreError",
    # Backends
    "BaseSnapshotPersistence",
    "JSONFilePersistence",
    "MemoryPersistence",
    # Store
    "RecordStore",
    "RefreshTokenManager",
    # Factory functions
    "create_persistence",
    "create_record_store",
    "get_storage_backend",
    "open_record_store",
    "StorageBackend",
]
