"""
Tests for the snapshot codec.

Covers compatibility with files written by earlier releases and the
rejection of malformed snapshots.
"""

import json
from datetime import datetime, timezone

import pytest

from core.storage import AuthUser, CorruptSnapshotError, Post, RefreshToken, Snapshot
from core.storage.codec import decode_snapshot, encode_snapshot


LEGACY_SNAPSHOT = b"""{
    "last_chirp_id": 2,
    "last_user_id": 1,
    "chirps": {
        "1": {"id": 1, "author_id": 1, "body": "first"},
        "2": {"id": 2, "author_id": 1, "body": "second"}
    },
    "users": {
        "1": {"id": 1, "email": "a@x.com", "password": "ZGlnZXN0"}
    },
    "user_email_idx": {"a@x.com": 1},
    "refresh_tokens": {
        "abc123": {
            "Token": "abc123",
            "UserID": 1,
            "Expiration": "2024-05-01T12:00:00.123456789Z"
        }
    }
}"""


def test_decodes_legacy_layout():
    """Files without schema_version or upgraded flags still load."""
    snapshot = decode_snapshot(LEGACY_SNAPSHOT)
    
    assert snapshot.schema_version == 1
    assert snapshot.last_post_id == 2
    assert snapshot.last_user_id == 1
    assert snapshot.posts[2] == Post(id=2, author_id=1, body="second")
    
    user = snapshot.users[1]
    assert user.email == "a@x.com"
    assert user.password_digest == b"digest"
    assert user.upgraded is False
    assert snapshot.email_index == {"a@x.com": 1}
    
    token = snapshot.refresh_tokens["abc123"]
    assert token.user_id == 1
    assert token.expires_at == datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


def test_encode_uses_persisted_key_names():
    """Test that encoding writes the on-disk key names."""
    snapshot = Snapshot(
        last_post_id=1,
        last_user_id=1,
        posts={1: Post(id=1, author_id=1, body="hi")},
        users={1: AuthUser(id=1, email="a@x.com", password_digest=b"digest")},
        email_index={"a@x.com": 1},
        refresh_tokens={
            "tok": RefreshToken(
                token="tok",
                user_id=1,
                expires_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            ),
        },
    )
    
    document = json.loads(encode_snapshot(snapshot))
    
    assert set(document) == {
        "schema_version",
        "last_chirp_id",
        "last_user_id",
        "chirps",
        "users",
        "user_email_idx",
        "refresh_tokens",
    }
    assert document["chirps"]["1"] == {"id": 1, "author_id": 1, "body": "hi"}
    assert document["users"]["1"]["password"] == "ZGlnZXN0"
    assert document["users"]["1"]["upgraded"] is False
    
    token = document["refresh_tokens"]["tok"]
    assert token["Token"] == "tok"
    assert token["UserID"] == 1
    assert token["Expiration"].startswith("2024-01-01T00:00:00")


def test_encode_then_decode_preserves_snapshot():
    """Test that a snapshot survives encoding and decoding."""
    snapshot = decode_snapshot(LEGACY_SNAPSHOT)
    
    assert decode_snapshot(encode_snapshot(snapshot)) == snapshot


def test_null_maps_decode_as_empty():
    """Test that null record maps decode as empty maps."""
    snapshot = decode_snapshot(
        b'{"last_chirp_id": 0, "last_user_id": 0, "chirps": null, '
        b'"users": null, "user_email_idx": null, "refresh_tokens": null}'
    )
    
    assert snapshot.posts == {}
    assert snapshot.users == {}


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"{not json",
        b"[1, 2, 3]",
        b"\xff\xfe",
    ],
)
def test_rejects_non_documents(data):
    """Test that JSON which is not an object is rejected."""
    with pytest.raises(CorruptSnapshotError):
        decode_snapshot(data)


def test_rejects_newer_schema_version():
    """Test that a snapshot from a newer schema version is rejected."""
    with pytest.raises(CorruptSnapshotError, match="schema version"):
        decode_snapshot(b'{"schema_version": 99}')


def test_rejects_schema_violations():
    """Test that records with missing or mistyped fields are rejected."""
    with pytest.raises(CorruptSnapshotError):
        decode_snapshot(b'{"last_chirp_id": "many"}')


def test_rejects_bad_password_encoding():
    """Test that a password digest that is not base64 is rejected."""
    data = LEGACY_SNAPSHOT.replace(b'"ZGlnZXN0"', b'"not base64!"')
    
    with pytest.raises(CorruptSnapshotError):
        decode_snapshot(data)


def test_rejects_stale_email_index():
    """Test that an email index out of step with the users is rejected."""
    data = LEGACY_SNAPSHOT.replace(b'{"a@x.com": 1}', b'{"old@x.com": 1}')
    
    with pytest.raises(CorruptSnapshotError, match="email index"):
        decode_snapshot(data)


def test_rejects_user_counter_below_stored_ids():
    """A lagging user counter would hand out an id that is already taken."""
    data = LEGACY_SNAPSHOT.replace(b'"last_user_id": 1', b'"last_user_id": 0')
    
    with pytest.raises(CorruptSnapshotError, match="last_user_id"):
        decode_snapshot(data)


def test_rejects_post_counter_below_stored_ids():
    """A lagging post counter would overwrite an existing post."""
    data = LEGACY_SNAPSHOT.replace(b'"last_chirp_id": 2', b'"last_chirp_id": 1')
    
    with pytest.raises(CorruptSnapshotError, match="last_chirp_id"):
        decode_snapshot(data)


def test_rejects_duplicate_emails():
    """Two users with one email cannot both be reachable through the index."""
    data = json.dumps({
        "last_chirp_id": 0,
        "last_user_id": 2,
        "chirps": {},
        "users": {
            "1": {"id": 1, "email": "a@x.com", "password": "ZGlnZXN0"},
            "2": {"id": 2, "email": "a@x.com", "password": "ZGlnZXN0"},
        },
        "user_email_idx": {"a@x.com": 2},
        "refresh_tokens": {},
    }).encode()
    
    with pytest.raises(CorruptSnapshotError, match="share an email"):
        decode_snapshot(data)


def test_rejects_post_under_wrong_key():
    """Posts must be stored under their own id."""
    data = LEGACY_SNAPSHOT.replace(
        b'"2": {"id": 2, "author_id": 1, "body": "second"}',
        b'"2": {"id": 1, "author_id": 1, "body": "second"}',
    )
    
    with pytest.raises(CorruptSnapshotError, match="post stored under key 2"):
        decode_snapshot(data)


def test_rejects_user_under_wrong_key():
    """Users must be stored under their own id."""
    data = LEGACY_SNAPSHOT.replace(
        b'"1": {"id": 1, "email": "a@x.com"',
        b'"1": {"id": 3, "email": "a@x.com"',
    )
    
    with pytest.raises(CorruptSnapshotError, match="user stored under key 1"):
        decode_snapshot(data)
