"""
JWT utility functions for encoding and decoding tokens.
"""

import os
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from fastapi import HTTPException, status
from jwt import ExpiredSignatureError, InvalidTokenError, PyJWTError

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60


def get_secret_key() -> str:
    secret = os.getenv("JWT_SECRET_KEY")
    if not secret:
        msg = "JWT_SECRET_KEY not set in environment"
        raise RuntimeError(msg)
    return secret


def create_access_token(
    user_id: int,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """
    Issue a token whose subject is the user id; the API trusts it as the
    principal of every request that carries it.
    """
    to_encode: dict[str, Any] = dict(extra_claims or {})
    # RFC 7519 wants a string subject; PyJWT rejects ints
    to_encode["sub"] = str(user_id)
    to_encode["exp"] = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return jwt.encode(to_encode, get_secret_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode a JWT token and return the claims dict. Raises 401 if invalid.
    """
    try:
        return jwt.decode(token, get_secret_key(), algorithms=[ALGORITHM])
    except (ExpiredSignatureError, InvalidTokenError, PyJWTError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc


def principal_id_from_claims(claims: dict[str, Any]) -> int:
    """Return the user id carried in the 'sub' claim. Raises 401 if unusable."""
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc
