from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from . import models
from .deps import get_db

# Missing or malformed headers reach get_current_user as None
bearer_scheme = HTTPBearer(auto_error=False)

MIN_SECRET_LENGTH = 32

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not JWT_SECRET_KEY:
    raise RuntimeError("JWT_SECRET_KEY must be set to sign access tokens")
if len(JWT_SECRET_KEY) < MIN_SECRET_LENGTH:
    raise RuntimeError(f"JWT_SECRET_KEY must be at least {MIN_SECRET_LENGTH} characters")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))


def create_access_token(user_id: int, expires_in_seconds: int | None = None) -> str:
    """
    Create a JWT access token for a user.
    """
    if expires_in_seconds is None:
        expires_in_seconds = JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60

    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "exp": now + timedelta(seconds=expires_in_seconds),
        "iat": now,
        "type": "access",
    }

    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def _user_from_token(token: str, db: Session) -> models.User:
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, token failed",
        )

    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user_id",
        )

    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    """
    Get current authenticated user from Bearer token.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _user_from_token(credentials.credentials, db)


def require_admin(user: models.User = Depends(get_current_user)) -> models.User:
    """
    Require that the current user has the admin role.
    """
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User role {user.role} is not authorized to access this route",
        )
    return user


def can_modify(resource_owner_id: int | None, current_user: models.User) -> bool:
    """
    Check if the current user may change a resource.

    Returns True if:
    - User owns the resource, OR
    - User is an admin
    """
    if resource_owner_id is not None and resource_owner_id == current_user.id:
        return True

    return current_user.is_admin


def require_ownership(
    resource_owner_id: int | None,
    current_user: models.User,
    detail: str = "Not authorized",
) -> None:
    """
    Require that the current user owns a resource or is an admin.

    Raises 401 Unauthorized if not.
    """
    if not can_modify(resource_owner_id, current_user):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )
