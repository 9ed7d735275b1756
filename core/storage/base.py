"""
Record models and the persistence contract.

The models double as the persisted schema: each field's alias is the key
used in the snapshot file, so the structure-to-field mapping is declared
exactly once, here. The aliases match data files written by earlier
releases of the service.
"""

import base64
import binascii
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


SCHEMA_VERSION = 1
POST_MAX_LENGTH = 140

# RFC 3339 timestamps from other writers may carry nanoseconds
_SUB_MICROSECOND = re.compile(r"(\.\d{6})\d+")


class Post(BaseModel):
    """A short text post. Immutable once created."""
    
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    
    id: int = Field(..., gt=0)
    author_id: int
    body: str = Field(..., max_length=POST_MAX_LENGTH)


class User(BaseModel):
    """Public view of a user, safe to hand to any caller."""
    
    model_config = ConfigDict(populate_by_name=True)
    
    id: int = Field(..., gt=0)
    email: str
    upgraded: bool = False


class AuthUser(User):
    """
    User record as stored, including the password digest.
    
    Only returned by the store's internal auth lookup; every other
    operation hands out ``User``.
    """
    
    password_digest: bytes = Field(..., alias="password")
    
    @field_validator("password_digest", mode="before")
    @classmethod
    def _decode_digest(cls, value: Any) -> Any:
        # Snapshot files carry the digest as base64 text
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise ValueError(f"password digest is not valid base64: {e}") from e
        return value
    
    @field_serializer("password_digest", when_used="json")
    def _encode_digest(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")
    
    def public(self) -> User:
        """Strip the digest."""
        return User(id=self.id, email=self.email, upgraded=self.upgraded)


class RefreshToken(BaseModel):
    """Long-lived opaque credential bound to a user."""
    
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    
    token: str = Field(..., alias="Token", min_length=1)
    user_id: int = Field(..., alias="UserID")
    expires_at: datetime = Field(..., alias="Expiration")
    
    @field_validator("expires_at", mode="before")
    @classmethod
    def _trim_nanoseconds(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _SUB_MICROSECOND.sub(r"\1", value)
        return value
    
    @field_validator("expires_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    
    def is_expired(self, now: datetime) -> bool:
        """Expired strictly after ``expires_at``."""
        return now > self.expires_at


class Snapshot(BaseModel):
    """
    The complete store state, and the unit of persistence.
    
    Invariant: ``email_index[email] == id`` iff ``users[id].email == email``.
    """
    
    model_config = ConfigDict(populate_by_name=True)
    
    schema_version: int = SCHEMA_VERSION
    last_post_id: int = Field(default=0, alias="last_chirp_id", ge=0)
    last_user_id: int = Field(default=0, ge=0)
    posts: dict[int, Post] = Field(default_factory=dict, alias="chirps")
    users: dict[int, AuthUser] = Field(default_factory=dict)
    email_index: dict[str, int] = Field(default_factory=dict, alias="user_email_idx")
    refresh_tokens: dict[str, RefreshToken] = Field(default_factory=dict)
    
    @field_validator("posts", "users", "email_index", "refresh_tokens", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        # Older writers emit null for maps that were never populated
        return {} if value is None else value


class BaseSnapshotPersistence(ABC):
    """
    Abstract base class for snapshot storage.
    
    Implementations store the whole encoded snapshot as one unit: every
    save replaces the previous contents entirely, there are no partial
    updates and no append log.
    """
    
    @abstractmethod
    def load(self) -> Snapshot:
        """
        Read and decode the stored snapshot.
        
        Raises:
            SnapshotNotFoundError: Nothing has been stored yet
            PersistenceError: Storage could not be read
            CorruptSnapshotError: Stored bytes are not a valid snapshot
        """
        pass
    
    @abstractmethod
    def save(self, snapshot: Snapshot) -> None:
        """
        Encode and store the snapshot, replacing previous contents.
        
        Raises:
            PersistenceError: Storage could not be written
        """
        pass
    
    @abstractmethod
    def remove(self) -> None:
        """Discard any stored snapshot. A missing snapshot is not an error."""
        pass
    
    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location, for logging."""
        pass
