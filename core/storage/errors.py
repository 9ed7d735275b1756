"""
Error kinds raised by the record store.

Every failure the store reports is a ``StoreError`` tagged with one
``ErrorKind`` from a closed set, plus an optional human-readable detail.
Callers branch on the exception class (or ``.kind``), never on message text.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from core.storage.base import RefreshToken


class ErrorKind(str, Enum):
    """Closed set of store failure kinds."""
    NOT_FOUND = "not_found"            # Lookup miss, a normal negative result
    ALREADY_EXISTS = "already_exists"  # Uniqueness violation on create
    EXPIRED = "expired"                # Time-based invalidation
    IO = "io"                          # Snapshot could not be read or written
    CORRUPT = "corrupt"                # Snapshot on disk is not decodable


class StoreError(Exception):
    """Base exception for record store operations."""
    
    kind: ErrorKind
    
    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(detail or self.kind.value)


class NotFoundError(StoreError):
    """Requested record does not exist."""
    kind = ErrorKind.NOT_FOUND


class SnapshotNotFoundError(NotFoundError):
    """The snapshot file does not exist yet (no data, not a failure)."""
    pass


class AlreadyExistsError(StoreError):
    """A record with the same unique key is already stored."""
    kind = ErrorKind.ALREADY_EXISTS


class ExpiredError(StoreError):
    """Refresh token exists but its expiry has passed."""
    kind = ErrorKind.EXPIRED
    
    def __init__(self, token: "RefreshToken", detail: Optional[str] = None):
        self.token = token
        super().__init__(detail or f"refresh token expired at {token.expires_at.isoformat()}")


class PersistenceError(StoreError):
    """Snapshot could not be read from or written to its backing storage."""
    kind = ErrorKind.IO


class CorruptSnapshotError(StoreError):
    """Snapshot bytes are malformed or use an unsupported schema version."""
    kind = ErrorKind.CORRUPT
