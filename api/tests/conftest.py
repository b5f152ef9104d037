from __future__ import annotations

import os
import shutil
import tempfile
from typing import Callable, Generator

# Point the app at throwaway storage before any app module reads the environment
_TMP_DIR = tempfile.mkdtemp(prefix="quill-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-quill-api-0123456789")

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from app.auth import create_access_token  # noqa: E402
from app.cache import stats_cache  # noqa: E402
from app.db import Base, SessionLocal, engine  # noqa: E402
from app.main import app, run_startup_tasks  # noqa: E402
from app.models import Post, User  # noqa: E402
from app.services.accounts import hash_password  # noqa: E402

TEST_PASSWORD = "secret123"


@pytest.fixture(scope="session", autouse=True)
def bootstrap() -> Generator[None, None, None]:
    stats_cache.client = fakeredis.FakeRedis(decode_responses=True)
    run_startup_tasks()
    yield
    engine.dispose()
    shutil.rmtree(_TMP_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def clean_state() -> Generator[None, None, None]:
    """Empty every table and the stats cache after each test."""
    yield
    stats_cache.clear()
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(scope="session")
def password_hash() -> str:
    # bcrypt is slow; hash once per session
    return hash_password(TEST_PASSWORD)


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def make_user(db: Session, password_hash: str) -> Callable[..., User]:
    """Factory creating users directly in the database."""

    def _make_user(username: str, role: str = "user", **fields) -> User:
        user = User(
            first_name=fields.pop("first_name", username.capitalize()),
            last_name=fields.pop("last_name", "Tester"),
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            password_hash=password_hash,
            role=role,
            interests=fields.pop("interests", []),
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def test_user(make_user) -> User:
    return make_user("alice")


@pytest.fixture()
def other_user(make_user) -> User:
    return make_user("bob")


@pytest.fixture()
def admin_user(make_user) -> User:
    return make_user("root", role="admin")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    return auth_headers


@pytest.fixture()
def make_post(db: Session) -> Callable[..., Post]:
    """Factory creating posts directly in the database."""

    def _make_post(author: User, title: str = "Hello World", **fields) -> Post:
        content = fields.pop("content", "Some post content")
        post = Post(
            author_id=author.id,
            title=title,
            content=content,
            excerpt=fields.pop("excerpt", content[:150]),
            category_name=fields.pop("category_name", "Tech News"),
            tags=fields.pop("tags", []),
            status=fields.pop("status", "published"),
            **fields,
        )
        db.add(post)
        db.commit()
        db.refresh(post)
        return post

    return _make_post
