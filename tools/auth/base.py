"""
Abstract interfaces for credential primitives.

The record store stores password digests and refresh tokens but never
creates or checks credentials itself. These interfaces are what the
service layer uses for that, whether backed by real cryptography or by
test doubles.

Design principles:
- Opaque digests: callers never inspect a digest, only pass it back to verify
- Stateless access credentials: signed claims, never persisted
- Result objects: parse returns structured claims, not raw dicts
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AccessClaims:
    """
    Claims carried by a short-lived access credential.
    
    ``subject`` is the user id as a string.
    """
    subject: str
    issuer: str
    issued_at: datetime
    expires_at: datetime


class PasswordHasher(ABC):
    """
    Abstract password hashing.
    
    Usage:
        hasher = Argon2PasswordHasher()
        digest = hasher.hash("hunter2")
        assert hasher.verify("hunter2", digest)
    """
    
    @abstractmethod
    def hash(self, plaintext: str) -> bytes:
        """
        Derive a salted digest from a plaintext password.
        
        Raises:
            ValueError: Password is empty
        """
        pass
    
    @abstractmethod
    def verify(self, plaintext: str, digest: bytes) -> bool:
        """
        Check a plaintext password against a stored digest.
        
        Returns False for a mismatch or an unreadable digest.
        """
        pass


class TokenSigner(ABC):
    """
    Abstract access credential signing.
    
    Usage:
        signer = JWTSigner(secret="...", issuer="chirpy")
        token = signer.sign("42", ttl_seconds=3600)
        claims = signer.parse(token)
        user_id = int(claims.subject)
    """
    
    @abstractmethod
    def sign(self, subject: str, ttl_seconds: int = 0) -> str:
        """
        Issue a signed credential for ``subject``.
        
        Args:
            subject: Identifier of the authenticated principal
            ttl_seconds: Lifetime; 0 means the implementation's maximum
        """
        pass
    
    @abstractmethod
    def parse(self, token: str) -> AccessClaims:
        """
        Verify a credential and return its claims.
        
        Raises:
            TokenExpiredError: Signature valid but expired
            InvalidTokenError: Malformed, wrongly signed or wrong issuer
        """
        pass


class AuthError(Exception):
    """Base exception for credential operations."""
    pass


class InvalidTokenError(AuthError):
    """Credential cannot be trusted."""
    pass


class TokenExpiredError(InvalidTokenError):
    """Credential was valid but its lifetime has passed."""
    pass
