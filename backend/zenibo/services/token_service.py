# Overview: Signed bearer tokens; issues and verifies HMAC-SHA256 signed session tokens.

"""
Bearer Token Service

Tokens are self-contained and stateless:

    base64url(json claims) + "." + base64url(HMAC-SHA256(SECRET_KEY, payload))

Claims: {"uid": user id, "iat": issued-at epoch seconds, "exp": expiry}.

The signature is checked with a constant-time comparison BEFORE any claim is
read, so a forged or tampered token never yields a user id. Expired tokens
are rejected. Nothing is stored server-side; rotating SECRET_KEY revokes every
outstanding token.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass

from flask import current_app


class InvalidTokenError(Exception):
    """Token is malformed, tampered with, or expired."""


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    issued_at: int
    expires_at: int


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


def _secret() -> bytes:
    key = current_app.config.get("SECRET_KEY")
    if not key:
        raise RuntimeError("SECRET_KEY must be configured to issue tokens")
    return key.encode("utf-8") if isinstance(key, str) else key


def _sign(payload: str) -> str:
    digest = hmac.new(_secret(), payload.encode("ascii"), hashlib.sha256).digest()
    return _b64encode(digest)


def issue_token(user_id: int, *, now: int | None = None, ttl_seconds: int | None = None) -> str:
    issued_at = int(now if now is not None else time.time())
    if ttl_seconds is None:
        ttl_seconds = int(current_app.config.get("TOKEN_TTL_DAYS", 30)) * 86400
    claims = {"uid": user_id, "iat": issued_at, "exp": issued_at + ttl_seconds}
    payload = _b64encode(json.dumps(claims, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{payload}.{_sign(payload)}"


def verify_token(token: str, *, now: int | None = None) -> TokenClaims:
    """Return the claims of a valid token, else raise InvalidTokenError."""
    if not token or token.count(".") != 1:
        raise InvalidTokenError("Malformed token")

    payload, signature = token.split(".", 1)
    try:
        expected = _sign(payload)
    except UnicodeEncodeError:
        raise InvalidTokenError("Malformed token")
    if not hmac.compare_digest(expected, signature):
        raise InvalidTokenError("Invalid token signature")

    try:
        claims = json.loads(_b64decode(payload))
        user_id = claims["uid"]
        issued_at = int(claims["iat"])
        expires_at = int(claims["exp"])
    except (ValueError, KeyError, TypeError):
        raise InvalidTokenError("Malformed token claims")

    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise InvalidTokenError("Malformed token claims")

    current = int(now if now is not None else time.time())
    if expires_at <= current:
        raise InvalidTokenError("Token expired")

    return TokenClaims(user_id=user_id, issued_at=issued_at, expires_at=expires_at)
