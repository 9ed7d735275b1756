"""
Snapshot codec.

Encodes the whole store to a single JSON document and back. The key names
come from the aliases declared on the models in ``core.storage.base``.
"""

import json

from pydantic import ValidationError

from core.storage.base import SCHEMA_VERSION, Snapshot
from core.storage.errors import CorruptSnapshotError


def encode_snapshot(snapshot: Snapshot) -> bytes:
    """Serialize a snapshot to UTF-8 JSON bytes."""
    payload = snapshot.model_copy(update={"schema_version": SCHEMA_VERSION})
    return payload.model_dump_json(by_alias=True).encode("utf-8")


def decode_snapshot(data: bytes) -> Snapshot:
    """
    Deserialize snapshot bytes.
    
    A document without ``schema_version`` is treated as version 1, the
    layout written before the field existed.
    
    Raises:
        CorruptSnapshotError: Bytes are not JSON, do not match the schema,
            or declare a newer schema version than this code understands
    """
    try:
        document = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptSnapshotError(f"snapshot is not valid JSON: {e}") from e
    
    if not isinstance(document, dict):
        raise CorruptSnapshotError(
            f"snapshot must be a JSON object, got {type(document).__name__}"
        )
    
    version = document.setdefault("schema_version", 1)
    if not isinstance(version, int) or version > SCHEMA_VERSION:
        raise CorruptSnapshotError(
            f"unsupported snapshot schema version: {version!r} "
            f"(supported: {SCHEMA_VERSION})"
        )
    
    try:
        snapshot = Snapshot.model_validate(document)
    except ValidationError as e:
        raise CorruptSnapshotError(f"snapshot does not match schema: {e}") from e
    
    _check_consistency(snapshot)
    return snapshot


def _check_consistency(snapshot: Snapshot) -> None:
    """
    Records, counters and the email index must agree.
    
    - Every record is stored under its own id
    - Id counters are at least the highest stored id
    - Emails are unique and the index mirrors the user records exactly
    """
    for user_id, user in snapshot.users.items():
        if user.id != user_id:
            raise CorruptSnapshotError(
                f"user stored under key {user_id} has id {user.id}"
            )
    for post_id, post in snapshot.posts.items():
        if post.id != post_id:
            raise CorruptSnapshotError(
                f"post stored under key {post_id} has id {post.id}"
            )
    
    if snapshot.users and snapshot.last_user_id < max(snapshot.users):
        raise CorruptSnapshotError(
            f"last_user_id {snapshot.last_user_id} is below stored user "
            f"id {max(snapshot.users)}"
        )
    if snapshot.posts and snapshot.last_post_id < max(snapshot.posts):
        raise CorruptSnapshotError(
            f"last_chirp_id {snapshot.last_post_id} is below stored post "
            f"id {max(snapshot.posts)}"
        )
    
    expected = {user.email: user.id for user in snapshot.users.values()}
    if len(expected) != len(snapshot.users):
        raise CorruptSnapshotError("two users share an email address")
    if expected != snapshot.email_index:
        raise CorruptSnapshotError("email index does not match user records")
