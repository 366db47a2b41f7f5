"""
Bearer-token authentication.

Tokens are HS256 JWTs whose ``sub`` claim is the user id. Issuing tokens to
end users (login, refresh, password storage) belongs to the identity
service; this module only needs to verify them, plus ``create_access_token``
for tooling and tests.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt
from jwt import PyJWTError
from sqlalchemy.orm import Session

from .core.config import settings
from .database import get_db
from .models.user import User
from .repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode; ``sub`` must be the user id
        expires_delta: Optional expiration time delta

    Returns:
        str: The encoded JWT token
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return cast(
        str,
        jwt.encode(to_encode, settings.secret_key.get_secret_value(), algorithm=settings.algorithm),
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    payload = jwt.decode(
        token,
        settings.secret_key.get_secret_value(),
        algorithms=[settings.algorithm],
        options={"verify_aud": False},
    )
    return cast(Dict[str, Any], payload)


def resolve_user_from_token(db: Session, token: Optional[str]) -> Optional[User]:
    """
    Active user for a raw token, or None.

    Used by the stream and socket endpoints, which cannot rely on the
    Authorization header and must answer auth failures themselves.
    """
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except PyJWTError as e:
        logger.debug(f"JWT validation error: {str(e)}")
        return None
    user_id = payload.get("sub")
    if not isinstance(user_id, str):
        logger.warning("Token payload missing 'sub' field")
        return None
    return UserRepository(db).get_active(user_id)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme_optional),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency returning the authenticated, active user.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = resolve_user_from_token(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme_optional),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Like ``get_current_user`` but returns None for anonymous or bad tokens."""
    return resolve_user_from_token(db, token)
