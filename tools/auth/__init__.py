"""
Credential primitives used by the service layer.

Exports the abstract interfaces and their default implementations.
"""

from tools.auth.access import JWTSigner
from tools.auth.base import (
    AccessClaims,
    AuthError,
    InvalidTokenError,
    PasswordHasher,
    TokenExpiredError,
    TokenSigner,
)
from tools.auth.password import Argon2PasswordHasher

__all__ = [
    "AccessClaims",
    "Argon2PasswordHasher",
    "AuthError",
    "InvalidTokenError",
    "JWTSigner",
    "PasswordHasher",
    "TokenExpiredError",
    "TokenSigner",
]
