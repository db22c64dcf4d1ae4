"""HMAC-signed bearer tokens identifying club members by their user id."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import UTC, datetime, timedelta
from typing import Any

from src.config import get_settings

TOKEN_VERSION = 1


def _b64encode(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _signature(body: str, secret: str) -> str:
    return _b64encode(hmac.new(secret.encode("utf-8"), body.encode("ascii"), hashlib.sha256).digest())


def create_web_access_token(*, user_id: str, now: datetime | None = None) -> str:
    settings = get_settings()
    issued = now or datetime.now(UTC)
    claims = {
        "sub": user_id,
        "exp": int((issued + timedelta(hours=settings.web_access_token_expiry_hours)).timestamp()),
        "v": TOKEN_VERSION,
    }
    body = _b64encode(json.dumps(claims, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{body}.{_signature(body, settings.web_access_token_secret)}"


def _decode_claims(body: str) -> dict[str, Any] | None:
    try:
        claims = json.loads(_b64decode(body))
    except ValueError:
        return None
    return claims if isinstance(claims, dict) else None


def verify_web_access_token(*, token: str) -> str | None:
    """Return the member id carried by ``token``, or None if it is forged, stale or malformed."""
    body, sep, signature = token.partition(".")
    if not sep or not body or not token.isascii():
        return None
    if not hmac.compare_digest(signature, _signature(body, get_settings().web_access_token_secret)):
        return None

    claims = _decode_claims(body)
    if claims is None or claims.get("v") != TOKEN_VERSION:
        return None
    subject, expires = claims.get("sub"), claims.get("exp")
    if not isinstance(subject, str) or not subject or not isinstance(expires, int):
        return None
    if datetime.now(UTC).timestamp() >= expires:
        return None
    return subject
