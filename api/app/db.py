from __future__ import annotations

import os
from typing import Generator
from urllib.parse import quote_plus

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


def get_database_url() -> str:
    """Get the database URL for API operations."""
    # An explicit URL wins (used by tests and local SQLite setups)
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    # Otherwise construct from components
    db_user = os.getenv("DB_USER")
    db_pass = os.getenv("DB_PASSWORD")
    db_name = os.getenv("DB_DATABASE")
    db_host = os.getenv("DB_HOST", "db")
    db_port = os.getenv("DB_PORT", "5432")

    if db_user and db_pass and db_name:
        # URL-encode the password in case it contains special characters
        encoded_pass = quote_plus(db_pass)
        return f"postgresql+psycopg://{db_user}:{encoded_pass}@{db_host}:{db_port}/{db_name}"

    raise RuntimeError(
        "DATABASE_URL must be set, or DB_USER, DB_PASSWORD, and DB_DATABASE must all be set."
    )


DATABASE_URL = get_database_url()


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # Sessions are handed across FastAPI's threadpool
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {"pool_pre_ping": True}


engine = create_engine(
    DATABASE_URL,
    future=True,
    echo=os.getenv("LOG_LEVEL", "INFO").upper() == "DEBUG",
    **_engine_kwargs(DATABASE_URL),
)

if DATABASE_URL.startswith("sqlite"):

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_session() -> Generator[Session, None, None]:
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
