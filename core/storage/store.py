"""
Record store: users, posts and refresh tokens in one JSON snapshot.

Every mutation takes the write lock, reloads the snapshot from storage,
applies the change, and writes the whole snapshot back before releasing
the lock. Reads take the read lock and are served from memory without
touching storage.

One ``RecordStore`` is constructed at startup and shared by reference
across request handlers.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from core.logging import get_logger
from core.storage.base import AuthUser, BaseSnapshotPersistence, Post, Snapshot, User
from core.storage.errors import (
    AlreadyExistsError,
    NotFoundError,
    PersistenceError,
    SnapshotNotFoundError,
)
from core.storage.locking import ReadWriteLock
from core.storage.tokens import RefreshTokenManager


logger = get_logger(__name__)


class RecordStore:
    """
    Concurrency-safe store of users, posts and refresh tokens.
    
    - Post and user ids come from independent counters, strictly
      increasing and never reused
    - Email addresses are unique, tracked by a secondary email -> id index
    - List operations return records in ascending id order
    
    If writing the snapshot fails, the mutation stays applied in memory
    but the error is raised to the caller; the next mutation reloads
    from storage and so discards it.
    
    Usage:
        store = RecordStore(JSONFilePersistence("database.json"))
        user = store.create_user("a@example.com", digest)
        post = store.create_post("hello", author_id=user.id)
        token = store.tokens.issue(user.id, ttl_seconds=3600)
    """
    
    def __init__(
        self,
        persistence: BaseSnapshotPersistence,
        fresh: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
        token_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Open the store, creating an empty snapshot if none is stored.
        
        Args:
            persistence: Backend holding the snapshot
            fresh: Discard any stored snapshot before opening
            clock: Returns the current UTC time (token expiry)
            token_factory: Returns a new unguessable refresh token string
        
        Raises:
            PersistenceError: Storage could not be read or written
            CorruptSnapshotError: Stored snapshot is malformed
        """
        self._persistence = persistence
        self._lock = ReadWriteLock()
        self._snapshot = Snapshot()
        self._log = logger.bind(location=persistence.location)
        
        if fresh:
            persistence.remove()
        
        self._open()
        self.tokens = RefreshTokenManager(
            self,
            clock=clock,
            token_factory=token_factory,
        )
    
    def _open(self) -> None:
        with self._lock.write():
            try:
                self._snapshot = self._persistence.load()
            except SnapshotNotFoundError:
                self._log.info("No snapshot found, starting empty")
                self._snapshot = Snapshot()
                self._persist()
        
        self._log.info(
            "Record store opened",
            users=len(self._snapshot.users),
            posts=len(self._snapshot.posts),
            refresh_tokens=len(self._snapshot.refresh_tokens),
        )
    
    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------
    
    @contextmanager
    def _mutation(self) -> Iterator[Snapshot]:
        """
        Exclusive reload -> mutate -> persist cycle.
        
        Nothing is written if the block raises.
        """
        with self._lock.write():
            self._reload()
            yield self._snapshot
            self._persist()
    
    @contextmanager
    def _reading(self) -> Iterator[Snapshot]:
        """Shared access to the in-memory snapshot. Must not mutate."""
        with self._lock.read():
            yield self._snapshot
    
    def _reload(self) -> None:
        try:
            self._snapshot = self._persistence.load()
        except SnapshotNotFoundError:
            self._log.warning("Snapshot missing on reload, continuing from empty")
            self._snapshot = Snapshot()
    
    def _persist(self) -> None:
        try:
            self._persistence.save(self._snapshot)
        except PersistenceError as e:
            self._log.error("Failed to persist snapshot", error=str(e))
            raise
    
    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    
    def create_user(self, email: str, password_digest: bytes) -> User:
        """
        Create a user with the next user id.
        
        Raises:
            AlreadyExistsError: Email is already registered
        """
        with self._mutation() as snapshot:
            if email in snapshot.email_index:
                raise AlreadyExistsError(f"user with email {email!r} already exists")
            
            user = AuthUser(
                id=snapshot.last_user_id + 1,
                email=email,
                password_digest=password_digest,
            )
            snapshot.users[user.id] = user
            snapshot.email_index[user.email] = user.id
            snapshot.last_user_id = user.id
        
        self._log.debug("User created", user_id=user.id)
        return user.public()
    
    def user_exists(self, email: str) -> bool:
        with self._reading() as snapshot:
            return email in snapshot.email_index
    
    def get_user(self, user_id: int) -> User:
        with self._reading() as snapshot:
            user = snapshot.users.get(user_id)
            if user is None:
                raise NotFoundError(f"user {user_id} does not exist")
            return user.public()
    
    def get_user_by_email(self, email: str) -> User:
        return self.get_auth_user_by_email(email).public()
    
    def get_auth_user_by_email(self, email: str) -> AuthUser:
        """Lookup for credential checks; the result carries the digest."""
        with self._reading() as snapshot:
            user_id = snapshot.email_index.get(email)
            user = snapshot.users.get(user_id) if user_id is not None else None
            if user is None:
                raise NotFoundError(f"no user with email {email!r}")
            return user.model_copy()
    
    def update_user(self, user_id: int, email: str, password_digest: bytes) -> User:
        """
        Replace a user's email and password digest, keeping the id.
        
        The old email stops resolving and the new one starts resolving in
        the same mutation.
        
        Raises:
            NotFoundError: No user with that id
            AlreadyExistsError: Email belongs to a different user
        """
        with self._mutation() as snapshot:
            user = snapshot.users.get(user_id)
            if user is None:
                raise NotFoundError(f"user {user_id} does not exist")
            
            owner = snapshot.email_index.get(email)
            if owner is not None and owner != user_id:
                raise AlreadyExistsError(f"user with email {email!r} already exists")
            
            del snapshot.email_index[user.email]
            user.email = email
            user.password_digest = password_digest
            snapshot.email_index[user.email] = user.id
        
        self._log.debug("User updated", user_id=user_id)
        return user.public()
    
    def upgrade_user(self, user_id: int) -> None:
        """
        Mark a user as upgraded. Upgrading twice is not an error.
        
        Raises:
            NotFoundError: No user with that id
        """
        with self._mutation() as snapshot:
            user = snapshot.users.get(user_id)
            if user is None:
                raise NotFoundError(f"user {user_id} does not exist")
            user.upgraded = True
        
        self._log.debug("User upgraded", user_id=user_id)
    
    def list_users(self) -> list[User]:
        """All users, ascending by id."""
        with self._reading() as snapshot:
            users = [user.public() for user in snapshot.users.values()]
        return sorted(users, key=lambda u: u.id)
    
    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------
    
    def create_post(self, body: str, author_id: int) -> Post:
        """Store a post under the next post id."""
        with self._mutation() as snapshot:
            post = Post(
                id=snapshot.last_post_id + 1,
                author_id=author_id,
                body=body,
            )
            snapshot.posts[post.id] = post
            snapshot.last_post_id = post.id
        
        self._log.debug("Post created", post_id=post.id, author_id=author_id)
        return post
    
    def get_post(self, post_id: int) -> Post:
        with self._reading() as snapshot:
            post = snapshot.posts.get(post_id)
        if post is None:
            raise NotFoundError(f"post {post_id} does not exist")
        return post
    
    def list_posts(self) -> list[Post]:
        """All posts, ascending by id."""
        with self._reading() as snapshot:
            posts = list(snapshot.posts.values())
        return sorted(posts, key=lambda p: p.id)
    
    def delete_post(self, post_id: int) -> None:
        """
        Delete a post. Authorization is the caller's job.
        
        Raises:
            NotFoundError: No post with that id
        """
        with self._mutation() as snapshot:
            if snapshot.posts.pop(post_id, None) is None:
                raise NotFoundError(f"post {post_id} does not exist")
        
        self._log.debug("Post deleted", post_id=post_id)
