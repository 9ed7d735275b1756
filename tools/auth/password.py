"""
Argon2 password hashing.

Digests are the PHC-format strings produced by argon2-cffi, stored as
ASCII bytes so the record store can treat them as opaque.
"""

from typing import Any

from argon2 import PasswordHasher as _Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError

from tools.auth.base import PasswordHasher


class Argon2PasswordHasher(PasswordHasher):
    """
    ``PasswordHasher`` backed by Argon2id.
    
    Keyword arguments are passed through to ``argon2.PasswordHasher``;
    tests use them to lower the cost parameters.
    """
    
    def __init__(self, **params: Any):
        self._hasher = _Argon2Hasher(**params)
    
    def hash(self, plaintext: str) -> bytes:
        if not plaintext:
            raise ValueError("password must not be empty")
        return self._hasher.hash(plaintext).encode("ascii")
    
    def verify(self, plaintext: str, digest: bytes) -> bool:
        try:
            encoded = digest.decode("ascii")
        except UnicodeDecodeError:
            return False
        
        try:
            return self._hasher.verify(encoded, plaintext)
        except (VerificationError, InvalidHashError):
            return False
