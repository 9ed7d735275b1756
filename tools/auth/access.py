"""
HS256 JWT access credentials.

Access credentials are stateless: the server signs registered claims
(issuer, subject, issued-at, expiry) with a shared secret and later
verifies them without any storage lookup.
"""

from datetime import datetime, timedelta, timezone

import jwt

from tools.auth.base import AccessClaims, InvalidTokenError, TokenExpiredError, TokenSigner


ALGORITHM = "HS256"
MAX_EXPIRES_IN_SECONDS = 60 * 60 * 24


class JWTSigner(TokenSigner):
    """
    ``TokenSigner`` producing HS256 JSON Web Tokens via PyJWT.
    
    Requested lifetimes of 0, or above ``max_ttl_seconds``, are clamped
    to ``max_ttl_seconds``.
    """
    
    def __init__(
        self,
        secret: str,
        issuer: str = "chirpy",
        max_ttl_seconds: int = MAX_EXPIRES_IN_SECONDS,
    ):
        """
        Initialize the signer.
        
        Args:
            secret: HMAC key; must not be empty
            issuer: Value of the ``iss`` claim, checked on parse
            max_ttl_seconds: Upper bound on credential lifetime
        """
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._issuer = issuer
        self._max_ttl_seconds = max_ttl_seconds
    
    def sign(self, subject: str, ttl_seconds: int = 0) -> str:
        if ttl_seconds <= 0 or ttl_seconds > self._max_ttl_seconds:
            ttl_seconds = self._max_ttl_seconds
        
        issued_at = datetime.now(timezone.utc)
        claims = {
            "iss": self._issuer,
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=ttl_seconds),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)
    
    def parse(self, token: str) -> AccessClaims:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"require": ["iss", "sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("access token expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"invalid access token: {e}") from e
        
        return AccessClaims(
            subject=claims["sub"],
            issuer=claims["iss"],
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )
