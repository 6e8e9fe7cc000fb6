from datetime import timedelta

import pytest
from fastapi import HTTPException, status

from profile_photos.utils.jwt import (
    create_access_token,
    decode_access_token,
    get_secret_key,
)


def test_get_secret_key_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("JWT_SECRET_KEY", raising=False)
    with pytest.raises(RuntimeError) as excinfo:
        get_secret_key()
    assert "JWT_SECRET_KEY not set in environment" in str(excinfo.value)


def test_create_and_decode_token() -> None:
    token = create_access_token(12, extra_claims={"name": "alice"})
    assert isinstance(token, str)
    claims = decode_access_token(token)
    assert claims.get("sub") == "12"
    assert claims.get("name") == "alice"


def test_decode_invalid_token() -> None:
    with pytest.raises(HTTPException) as excinfo:
        decode_access_token("notatoken")
    assert excinfo.value.status_code == status.HTTP_401_UNAUTHORIZED


def test_decode_expired_token() -> None:
    token = create_access_token(1, expires_delta=timedelta(seconds=-5))
    with pytest.raises(HTTPException) as excinfo:
        decode_access_token(token)
    assert excinfo.value.status_code == status.HTTP_401_UNAUTHORIZED


def test_decode_token_signed_with_other_key(monkeypatch: pytest.MonkeyPatch) -> None:
    token = create_access_token(1)
    monkeypatch.setenv("JWT_SECRET_KEY", "anothersecret")
    with pytest.raises(HTTPException):
        decode_access_token(token)
