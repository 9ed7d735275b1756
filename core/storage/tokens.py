"""
Refresh token lifecycle.

A refresh token is issued at login, stays valid until its expiry, and is
then reported as expired until someone revokes it. Revocation deletes it
at any point. Expired tokens are never removed on read: ``validate`` only
reports, so a revoke racing a validate always has a single outcome.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Optional

from core.logging import get_logger
from core.storage.base import RefreshToken
from core.storage.errors import AlreadyExistsError, ExpiredError, NotFoundError

if TYPE_CHECKING:
    from core.storage.store import RecordStore


logger = get_logger(__name__)

TOKEN_BYTES = 32


def new_refresh_token() -> str:
    """32 bytes from the OS CSPRNG, hex encoded."""
    return secrets.token_hex(TOKEN_BYTES)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RefreshTokenManager:
    """
    Issues, validates and revokes refresh tokens in a ``RecordStore``.
    
    Shares the store's lock and snapshot; reached as ``store.tokens``.
    """
    
    def __init__(
        self,
        store: "RecordStore",
        clock: Optional[Callable[[], datetime]] = None,
        token_factory: Optional[Callable[[], str]] = None,
    ):
        self._store = store
        self._clock = clock or utc_now
        self._token_factory = token_factory or new_refresh_token
    
    def issue(self, user_id: int, ttl_seconds: int) -> RefreshToken:
        """
        Create a token for ``user_id`` expiring ``ttl_seconds`` from now.
        
        A collision with an existing token is rejected, never overwritten;
        the caller retries, which draws a fresh value.
        
        Raises:
            ValueError: Negative TTL
            NotFoundError: No user with that id
            AlreadyExistsError: Generated value is already stored
        """
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must not be negative, got {ttl_seconds}")
        
        value = self._token_factory()
        with self._store._mutation() as snapshot:
            if user_id not in snapshot.users:
                raise NotFoundError(f"user {user_id} does not exist")
            if value in snapshot.refresh_tokens:
                raise AlreadyExistsError("refresh token already exists")
            
            token = RefreshToken(
                token=value,
                user_id=user_id,
                expires_at=self._clock() + timedelta(seconds=ttl_seconds),
            )
            snapshot.refresh_tokens[token.token] = token
        
        logger.debug(
            "Refresh token issued",
            user_id=user_id,
            token_prefix=value[:8],
            expires_at=token.expires_at.isoformat(),
        )
        return token
    
    def validate(self, value: str) -> RefreshToken:
        """
        Return the stored token if it has not expired.
        
        Raises:
            NotFoundError: Unknown or revoked token
            ExpiredError: Token exists but ``now > expires_at``
        """
        with self._store._reading() as snapshot:
            token = snapshot.refresh_tokens.get(value)
        
        if token is None:
            raise NotFoundError("refresh token does not exist")
        if token.is_expired(self._clock()):
            raise ExpiredError(token)
        return token
    
    def revoke(self, value: str) -> None:
        """Delete a token. Revoking an unknown token is not an error."""
        with self._store._mutation() as snapshot:
            removed = snapshot.refresh_tokens.pop(value, None)
        
        if removed is not None:
            logger.debug(
                "Refresh token revoked",
                user_id=removed.user_id,
                token_prefix=value[:8],
            )
