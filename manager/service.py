"""
Service facade over the record store.

The single entry point request handlers call: it combines the record
store with the credential primitives to implement registration, login,
token refresh and revocation, account updates, posting, and the upgrade
webhook. Handlers translate the ``ServiceError`` subclasses and store
errors raised here into responses.
"""

import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from core.config import Settings, settings as default_settings
from core.logging import get_logger
from core.storage import (
    AlreadyExistsError,
    ExpiredError,
    NotFoundError,
    Post,
    RecordStore,
    User,
)
from tools.auth import (
    Argon2PasswordHasher,
    InvalidTokenError,
    JWTSigner,
    PasswordHasher,
    TokenExpiredError,
    TokenSigner,
)


logger = get_logger(__name__)

UPGRADE_EVENT = "user.upgraded"
MAX_ISSUE_ATTEMPTS = 3
MASK = "****"


class SortDirection(str, Enum):
    """Ordering of listed posts by id."""
    ASC = "asc"
    DESC = "desc"


@dataclass
class LoginResult:
    """Credentials handed out on a successful login."""
    user: User
    access_token: str
    refresh_token: str


class ChirpyService:
    """
    Account, credential and post operations.
    
    - Registers users and checks passwords
    - Hands out access credentials (signed, not stored) and refresh
      tokens (stored, revocable)
    - Validates, cleans and stores posts; only authors delete their posts
    - Applies upgrade events from the payment webhook
    
    All dependencies are passed in; nothing here is process-global.
    """
    
    def __init__(
        self,
        store: RecordStore,
        hasher: PasswordHasher,
        signer: TokenSigner,
        refresh_token_ttl_seconds: int = 60 * 60 * 24 * 60,
        post_max_length: int = 140,
        banned_words: Iterable[str] = ("kerfuffle", "sharbert", "fornax"),
        webhook_api_key: str = "",
    ):
        """
        Initialize the service.
        
        Args:
            store: Shared record store
            hasher: Password hashing primitive
            signer: Access credential primitive
            refresh_token_ttl_seconds: Lifetime of issued refresh tokens
            post_max_length: Longest accepted post body
            banned_words: Words masked in post bodies (case-insensitive)
            webhook_api_key: Key the upgrade webhook must present;
                empty rejects every webhook call
        """
        self._store = store
        self._hasher = hasher
        self._signer = signer
        self._refresh_ttl = refresh_token_ttl_seconds
        self._post_max_length = post_max_length
        self._banned_words = frozenset(w.lower() for w in banned_words)
        self._webhook_api_key = webhook_api_key
    
    @classmethod
    def from_settings(
        cls,
        store: RecordStore,
        settings: Optional[Settings] = None,
    ) -> "ChirpyService":
        """Build the service with the default Argon2 and JWT primitives."""
        settings = settings or default_settings
        return cls(
            store=store,
            hasher=Argon2PasswordHasher(),
            signer=JWTSigner(
                secret=settings.jwt_secret,
                issuer=settings.jwt_issuer,
                max_ttl_seconds=settings.access_token_max_seconds,
            ),
            refresh_token_ttl_seconds=settings.refresh_token_ttl_seconds,
            post_max_length=settings.post_max_length,
            banned_words=settings.banned_words,
            webhook_api_key=settings.webhook_api_key,
        )
    
    # ------------------------------------------------------------------
    # Accounts and credentials
    # ------------------------------------------------------------------
    
    def register(self, email: str, password: str) -> User:
        """Create an account. Raises AlreadyExistsError for a taken email."""
        self._require_credentials(email, password)
        
        # Skip the expensive hash for an obvious duplicate; create_user
        # still enforces uniqueness under the write lock.
        if self._store.user_exists(email):
            raise AlreadyExistsError(f"user with email {email!r} already exists")
        
        user = self._store.create_user(email, self._hasher.hash(password))
        logger.info("User registered", user_id=user.id)
        return user
    
    def login(
        self,
        email: str,
        password: str,
        expires_in_seconds: int = 0,
    ) -> LoginResult:
        """Check a password and issue an access and a refresh credential."""
        try:
            auth_user = self._store.get_auth_user_by_email(email)
        except NotFoundError:
            raise UnauthorizedError("incorrect email or password") from None
        
        if not self._hasher.verify(password, auth_user.password_digest):
            raise UnauthorizedError("incorrect email or password")
        
        access_token = self._signer.sign(str(auth_user.id), expires_in_seconds)
        refresh_token = self._issue_refresh_token(auth_user.id)
        
        logger.info("User logged in", user_id=auth_user.id)
        return LoginResult(
            user=auth_user.public(),
            access_token=access_token,
            refresh_token=refresh_token,
        )
    
    def authenticate(self, access_token: str) -> int:
        """Resolve an access credential to the user id it was issued for."""
        try:
            claims = self._signer.parse(access_token)
        except TokenExpiredError:
            raise UnauthorizedError("access token expired") from None
        except InvalidTokenError:
            raise UnauthorizedError("invalid access token") from None
        
        try:
            return int(claims.subject)
        except ValueError:
            raise UnauthorizedError("invalid access token subject") from None
    
    def refresh(self, refresh_token: str) -> str:
        """Exchange a valid refresh token for a new access credential."""
        try:
            token = self._store.tokens.validate(refresh_token)
        except NotFoundError:
            raise UnauthorizedError("refresh token not found") from None
        except ExpiredError:
            raise UnauthorizedError("refresh token expired") from None
        
        return self._signer.sign(str(token.user_id))
    
    def revoke(self, refresh_token: str) -> None:
        """Revoke a refresh token. Unknown tokens are ignored."""
        self._store.tokens.revoke(refresh_token)
    
    def update_account(self, access_token: str, email: str, password: str) -> User:
        """Replace the caller's email and password."""
        user_id = self.authenticate(access_token)
        self._require_credentials(email, password)
        
        user = self._store.update_user(user_id, email, self._hasher.hash(password))
        logger.info("User updated", user_id=user_id)
        return user
    
    def list_users(self) -> list[User]:
        return self._store.list_users()
    
    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------
    
    def publish(self, access_token: str, body: str) -> Post:
        """Validate, clean and store a post by the authenticated user."""
        author_id = self.authenticate(access_token)
        
        if not body:
            raise InvalidRequestError("post body missing")
        if len(body) > self._post_max_length:
            raise InvalidRequestError("post is too long")
        
        cleaned = self.clean_body(body)
        if len(cleaned) > self._post_max_length:
            raise InvalidRequestError("post is too long")
        
        return self._store.create_post(cleaned, author_id)
    
    def clean_body(self, body: str) -> str:
        """Mask banned words, matched as whole space-separated words."""
        words = body.split(" ")
        return " ".join(
            MASK if word.lower() in self._banned_words else word
            for word in words
        )
    
    def get_post(self, post_id: int) -> Post:
        return self._store.get_post(post_id)
    
    def list_posts(
        self,
        author_id: Optional[int] = None,
        direction: SortDirection = SortDirection.ASC,
    ) -> list[Post]:
        """Posts ordered by id, optionally limited to one author."""
        posts = self._store.list_posts()
        if author_id is not None:
            posts = [p for p in posts if p.author_id == author_id]
        if direction == SortDirection.DESC:
            posts.reverse()
        return posts
    
    def delete_post(self, access_token: str, post_id: int) -> None:
        """Delete a post; only its author may do so."""
        user_id = self.authenticate(access_token)
        
        post = self._store.get_post(post_id)
        if post.author_id != user_id:
            raise ForbiddenError(f"post {post_id} belongs to another user")
        
        self._store.delete_post(post_id)
        logger.info("Post deleted", post_id=post_id, user_id=user_id)
    
    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------
    
    def handle_upgrade_webhook(self, api_key: str, event: str, user_id: int) -> bool:
        """
        Apply a payment provider event.
        
        Returns True if the user was upgraded, False if the event was
        acknowledged but ignored.
        """
        if not self._webhook_api_key or not secrets.compare_digest(
            api_key.encode(), self._webhook_api_key.encode()
        ):
            raise UnauthorizedError("invalid webhook api key")
        
        if event != UPGRADE_EVENT:
            logger.debug("Ignoring webhook event", webhook_event=event)
            return False
        
        self._store.upgrade_user(user_id)
        logger.info("User upgraded", user_id=user_id)
        return True
    
    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    
    def _issue_refresh_token(self, user_id: int) -> str:
        for attempt in range(1, MAX_ISSUE_ATTEMPTS + 1):
            try:
                return self._store.tokens.issue(user_id, self._refresh_ttl).token
            except AlreadyExistsError:
                logger.warning(
                    "Refresh token collision, retrying",
                    user_id=user_id,
                    attempt=attempt,
                )
        raise AlreadyExistsError("could not issue a unique refresh token")
    
    @staticmethod
    def _require_credentials(email: str, password: str) -> None:
        if not email or not password:
            raise InvalidRequestError("email and password are required")


class ServiceError(Exception):
    """Base exception for service operations."""
    pass


class InvalidRequestError(ServiceError):
    """Request is missing fields or violates input limits."""
    pass


class UnauthorizedError(ServiceError):
    """Caller could not be authenticated."""
    pass


class ForbiddenError(ServiceError):
    """Caller is authenticated but not allowed to act on the resource."""
    pass
