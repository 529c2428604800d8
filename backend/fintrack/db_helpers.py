"""
Request user context and authentication helpers.
"""
import contextvars
from typing import Mapping, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from fintrack.database import get_db
from fintrack.models import User
from fintrack.security.credentials import decode_access_token

AUTHORIZATION_HEADER = "authorization"
BEARER_PREFIX = "bearer "

_request_user_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_user_id",
    default=None,
)


def set_request_user_id(user_id: str) -> contextvars.Token:
    return _request_user_id.set(user_id)


def clear_request_user_id(token: contextvars.Token) -> None:
    _request_user_id.reset(token)


def get_request_user_id() -> Optional[str]:
    return _request_user_id.get()


def extract_bearer_token(headers: Mapping[str, str]) -> Optional[str]:
    raw = headers.get(AUTHORIZATION_HEADER, "").strip()
    if not raw.lower().startswith(BEARER_PREFIX):
        return None
    token = raw[len(BEARER_PREFIX):].strip()
    return token or None


def authenticate_request_from_headers(headers: Mapping[str, str]) -> str:
    """
    Resolve the user id from an `Authorization: Bearer <token>` header.

    Raises:
        HTTPException: 401 when the header is missing or the token is invalid
    """
    token = extract_bearer_token(headers)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
        )

    user_id = decode_access_token(token)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
        )

    return user_id


def get_user_id() -> UUID:
    """
    Id of the user authenticated for the current request.
    """
    request_user_id = get_request_user_id()
    if not request_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )
    try:
        return UUID(request_user_id)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
        ) from exc


def get_current_user(db: Session = Depends(get_db)) -> User:
    """
    FastAPI dependency returning the authenticated User row.
    A token for a deleted account is treated as invalid.
    """
    user_id = get_user_id()
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
        )
    return user
