"""Test password hashing and bearer tokens."""
from datetime import datetime, timedelta, timezone

import pytest

from core.security import (
    TokenError,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

SECRET = "unit-secret"


def test_hash_is_salted():
    h1 = hash_password("password123")
    h2 = hash_password("password123")
    assert h1 != h2
    assert "password123" not in h1


def test_verify_password():
    stored = hash_password("password123")
    assert verify_password("password123", stored)
    assert not verify_password("wrongpassword", stored)


def test_verify_against_garbage_hash():
    assert not verify_password("password123", "not-a-bcrypt-hash")


def test_password_over_72_bytes():
    with pytest.raises(ValueError):
        hash_password("x" * 80)
    # Multi-byte characters count by their encoded length.
    with pytest.raises(ValueError):
        hash_password("\u00e9" * 40)
    assert not verify_password("x" * 80, hash_password("x" * 72))


def test_token_roundtrip_claims():
    token = create_access_token("user-1", "admin", SECRET, ttl_seconds=60)
    claims = decode_access_token(token, SECRET)
    assert claims.subject == "user-1"
    assert claims.role == "admin"
    assert claims.expires_at > claims.issued_at


def test_token_wrong_secret():
    token = create_access_token("user-1", "user", SECRET, ttl_seconds=60)
    with pytest.raises(TokenError):
        decode_access_token(token, "other-secret")


def test_token_tampered_payload():
    token = create_access_token("user-1", "user", SECRET, ttl_seconds=60)
    forged = create_access_token("user-1", "admin", "attacker", ttl_seconds=60)
    mixed = forged.split(".")[0] + "." + token.split(".")[1]
    with pytest.raises(TokenError):
        decode_access_token(mixed, SECRET)


def test_token_expired():
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    token = create_access_token("user-1", "user", SECRET, ttl_seconds=60, now=issued)
    with pytest.raises(TokenError, match="expired"):
        decode_access_token(token, SECRET)


@pytest.mark.parametrize("token", ["", "invalidtoken", "a.b", ".sig", "payload."])
def test_token_malformed(token):
    with pytest.raises(TokenError):
        decode_access_token(token, SECRET)
