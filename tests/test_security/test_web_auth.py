from __future__ import annotations

import base64
import json
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from src.security.web_auth import _signature, create_web_access_token, verify_web_access_token


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _signed(payload: dict[str, object], secret: str = "test-secret") -> str:
    payload_b64 = _b64url(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{payload_b64}.{_signature(payload_b64, secret)}"


@patch("src.security.web_auth.get_settings")
def test_create_and_verify_token(mock_settings) -> None:
    mock_settings.return_value.web_access_token_secret = "test-secret"
    mock_settings.return_value.web_access_token_expiry_hours = 1

    token = create_web_access_token(user_id="member-42")

    assert verify_web_access_token(token=token) == "member-42"


@patch("src.security.web_auth.get_settings")
def test_verify_rejects_modified_signature(mock_settings) -> None:
    mock_settings.return_value.web_access_token_secret = "test-secret"
    mock_settings.return_value.web_access_token_expiry_hours = 1

    token = create_web_access_token(user_id="member-42")
    payload_part, _ = token.split(".", maxsplit=1)

    assert verify_web_access_token(token=f"{payload_part}.invalid-signature") is None


@patch("src.security.web_auth.get_settings")
def test_verify_rejects_other_secret(mock_settings) -> None:
    mock_settings.return_value.web_access_token_secret = "test-secret"
    mock_settings.return_value.web_access_token_expiry_hours = 1

    token = _signed({"sub": "member-42", "exp": 4_102_444_800, "v": 1}, secret="other-secret")

    assert verify_web_access_token(token=token) is None


@patch("src.security.web_auth.get_settings")
def test_verify_rejects_expired_token(mock_settings) -> None:
    mock_settings.return_value.web_access_token_secret = "test-secret"
    mock_settings.return_value.web_access_token_expiry_hours = 1

    token = _signed({"sub": "member-42", "exp": 1, "v": 1})

    assert verify_web_access_token(token=token) is None


@patch("src.security.web_auth.get_settings")
def test_verify_rejects_missing_subject(mock_settings) -> None:
    mock_settings.return_value.web_access_token_secret = "test-secret"
    mock_settings.return_value.web_access_token_expiry_hours = 1

    assert verify_web_access_token(token=_signed({"sub": "", "exp": 4_102_444_800, "v": 1})) is None
    assert verify_web_access_token(token=_signed({"exp": 4_102_444_800, "v": 1})) is None


@patch("src.security.web_auth.get_settings")
def test_verify_rejects_malformed_token(mock_settings) -> None:
    mock_settings.return_value.web_access_token_secret = "test-secret"

    assert verify_web_access_token(token="no-dot-here") is None
    assert verify_web_access_token(token=".abc") is None


@patch("src.security.web_auth.get_settings")
def test_verify_rejects_unknown_version(mock_settings) -> None:
    mock_settings.return_value.web_access_token_secret = "test-secret"

    assert verify_web_access_token(token=_signed({"sub": "member-42", "exp": 4_102_444_800, "v": 2})) is None
    assert verify_web_access_token(token=_signed({"sub": "member-42", "exp": 4_102_444_800})) is None


@patch("src.security.web_auth.get_settings")
def test_token_issued_in_the_past_expires(mock_settings) -> None:
    mock_settings.return_value.web_access_token_secret = "test-secret"
    mock_settings.return_value.web_access_token_expiry_hours = 1

    token = create_web_access_token(user_id="member-42", now=datetime.now(UTC) - timedelta(hours=2))

    assert verify_web_access_token(token=token) is None
