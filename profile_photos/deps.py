from collections.abc import Generator
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from profile_photos.database import SessionLocal
from profile_photos.utils.jwt import decode_access_token, principal_id_from_claims

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),  # noqa: B008
) -> dict[str, Any]:
    """
    Dependency to get the current user from a JWT bearer token.
    Raises 401 if the token is invalid or missing.
    """
    return decode_access_token(credentials.credentials)


def get_current_principal_id(
    claims: dict[str, Any] = Depends(get_current_user),  # noqa: B008
) -> int:
    """Dependency returning the authenticated user's id."""
    return principal_id_from_claims(claims)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session and closes it when done.
    Closing also rolls back any transaction a failed request left open,
    which releases row locks taken while checking photo ownership.
    Yields:
        Session: SQLAlchemy database session
    """
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
