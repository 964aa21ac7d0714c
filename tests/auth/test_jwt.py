"""Tests for JWT token management."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from lifescore.auth.jwt import create_access_token, verify_token
from lifescore.config import get_settings


def _encode(**overrides: object) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "1",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    payload.update(overrides)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


class TestAccessToken:
    def test_create_and_verify(self):
        token = create_access_token(user_id=42)
        payload = verify_token(token)
        assert payload["sub"] == "42"
        assert payload["type"] == "access"
        assert payload["iss"] == get_settings().jwt_issuer

    def test_wrong_type_rejected(self):
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(_encode(type="refresh"))

    def test_expired_rejected(self):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        with pytest.raises(jwt.InvalidTokenError, match="Token has expired"):
            verify_token(_encode(exp=past))

    def test_wrong_issuer_rejected(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(_encode(iss="someone-else"))

    def test_tampered_signature_rejected(self):
        token = create_access_token(user_id=1)
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token[:-2] + ("AA" if not token.endswith("AA") else "BB"))
