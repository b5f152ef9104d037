"""Authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import create_access_token, get_current_user
from ..deps import get_db
from ..services.accounts import DuplicateAccountError, authenticate, create_user, update_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _auth_payload(user: models.User) -> schemas.AuthData:
    return schemas.AuthData(
        token=create_access_token(user.id),
        user=schemas.UserFull.model_validate(user),
    )


@router.post(
    "/register",
    response_model=schemas.Envelope[schemas.AuthData],
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: schemas.RegisterRequest,
    db: Session = Depends(get_db),
) -> schemas.Envelope[schemas.AuthData]:
    """Create an account and return an access token for it."""
    try:
        user = create_user(
            db,
            first_name=payload.first_name,
            last_name=payload.last_name,
            username=payload.username,
            email=payload.email,
            password=payload.password,
        )
    except DuplicateAccountError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return schemas.Envelope(data=_auth_payload(user), message="User registered successfully")


@router.post("/login", response_model=schemas.Envelope[schemas.AuthData])
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
) -> schemas.Envelope[schemas.AuthData]:
    """Exchange email and password for an access token."""
    user = authenticate(db, payload.email, payload.password)
    if not user:
        logger.info(f"Failed login for {payload.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    return schemas.Envelope(data=_auth_payload(user))


@router.get("/me", response_model=schemas.Envelope[schemas.UserFull])
def get_me(
    current_user: models.User = Depends(get_current_user),
) -> schemas.Envelope[schemas.UserFull]:
    return schemas.Envelope(data=schemas.UserFull.model_validate(current_user))


@router.put("/password", response_model=schemas.Envelope[schemas.AuthData])
def change_password(
    payload: schemas.PasswordChangeRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Envelope[schemas.AuthData]:
    """Change the current user's password and issue a fresh access token."""
    if not update_password(db, current_user, payload.current_password, payload.new_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Current password is incorrect",
        )

    logger.info(f"Password changed for user {current_user.id}")
    return schemas.Envelope(
        data=_auth_payload(current_user), message="Password updated successfully"
    )
