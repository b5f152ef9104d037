"""Account service: password hashing, registration, and credential checks."""

from __future__ import annotations

import logging

from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import User

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class DuplicateAccountError(ValueError):
    """Raised when a username or email is already in use."""


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def create_user(
    db: Session,
    first_name: str,
    last_name: str,
    username: str,
    email: str,
    password: str,
) -> User:
    """
    Register a new user account.

    Args:
        db: Database session
        first_name: Given name
        last_name: Family name
        username: Unique handle
        email: Email address (stored lowercase)
        password: Plain text password (will be hashed)

    Returns:
        The created User

    Raises:
        DuplicateAccountError: If the username or email is already registered
    """
    username = username.strip()
    email = email.strip().lower()

    if db.query(User.id).filter(User.username == username).first():
        raise DuplicateAccountError("Username already taken")
    if find_user_by_email(db, email):
        raise DuplicateAccountError("Email already registered")

    user = User(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        username=username,
        email=email,
        password_hash=hash_password(password),
        interests=[],
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same handle
        db.rollback()
        logger.warning(f"Duplicate registration for username={username} email={email}")
        raise DuplicateAccountError("Username or email already registered")

    db.refresh(user)
    logger.info(f"Registered user {user.id} ({username})")
    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    """
    Look up a user by email and verify the password.

    Returns:
        The User on success, None if the email is unknown or the password is wrong
    """
    user = find_user_by_email(db, email)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


def update_password(db: Session, user: User, current_password: str, new_password: str) -> bool:
    """
    Change a user's password after checking the current one.

    Returns:
        True if the password was updated, False if the current password is wrong
    """
    if not verify_password(current_password, user.password_hash):
        return False

    user.password_hash = hash_password(new_password)
    db.commit()
    return True


def apply_account_changes(db: Session, user: User, **changes) -> User:
    """
    Apply field changes to a user and commit them.

    ``None`` values are skipped. A username or email already held by another
    user is rejected before anything is written.

    Raises:
        DuplicateAccountError: If the new username or email belongs to someone else
    """
    changes = {field: value for field, value in changes.items() if value is not None}

    username = changes.get("username")
    if username is not None:
        username = changes["username"] = username.strip()
        taken = db.query(User.id).filter(User.username == username, User.id != user.id).first()
        if taken:
            raise DuplicateAccountError("Username already exists")

    email = changes.get("email")
    if email is not None:
        email = changes["email"] = email.strip().lower()
        existing = find_user_by_email(db, email)
        if existing and existing.id != user.id:
            raise DuplicateAccountError("Email already exists")

    for field, value in changes.items():
        setattr(user, field, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Duplicate account change for user {user.id}: {sorted(changes)}")
        raise DuplicateAccountError("Username or email already exists")

    db.refresh(user)
    return user
