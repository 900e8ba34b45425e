"""
Taskboard credential primitives.

- Password hashing with bcrypt (salted, adaptive cost)
- Bearer tokens: base64url(JSON claims) + "." + HMAC-SHA256 signature
- Expiry tracking via the "exp" claim

Tokens are opaque to clients. decode_access_token() raises TokenError for
anything it cannot vouch for: bad shape, bad signature, expired.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
import base64
import binascii
import hashlib
import hmac
import json

import bcrypt


class TokenError(Exception):
    """Raised when a bearer token is malformed, tampered with or expired."""


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password for storage. Raises ValueError above MAX_PASSWORD_BYTES."""
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against its stored hash."""
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


# ---------------------------------------------------------------------------
# Bearer tokens
# ---------------------------------------------------------------------------

@dataclass
class TokenClaims:
    """Decoded, verified token contents."""
    subject: str
    role: str
    issued_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) >= self.expires_at


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


def _sign(payload: str, secret: str) -> str:
    """Generate HMAC-SHA256 signature for a payload."""
    digest = hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return _b64encode(digest)


def create_access_token(
    subject: str,
    role: str,
    secret: str,
    ttl_seconds: int,
    now: datetime | None = None,
) -> str:
    """Issue a signed, time-bounded bearer token."""
    issued = now or datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": subject,
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(seconds=ttl_seconds)).timestamp()),
    }
    payload = _b64encode(json.dumps(claims, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{payload}.{_sign(payload, secret)}"


def decode_access_token(token: str, secret: str) -> TokenClaims:
    """Verify signature and expiry, then return the claims."""
    payload, sep, signature = token.partition(".")
    if not sep or not payload or not signature:
        raise TokenError("Malformed token")

    if not hmac.compare_digest(_sign(payload, secret), signature):
        raise TokenError("Bad signature")

    try:
        data = json.loads(_b64decode(payload))
        claims = TokenClaims(
            subject=str(data["sub"]),
            role=str(data["role"]),
            issued_at=datetime.fromtimestamp(int(data["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(data["exp"]), tz=timezone.utc),
        )
    except (binascii.Error, ValueError, KeyError, TypeError) as exc:
        raise TokenError("Malformed token") from exc

    if claims.is_expired:
        raise TokenError("Token expired")
    return claims
