"""
Database connection and session management.
Provides the SQLAlchemy base class, the Database wrapper owning the engine
and session factory, and the transactional unit of work.
"""
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

# Create base class for declarative models
Base = declarative_base()


class Database:
    """
    Owns the SQLAlchemy engine and session factory for one application.

    Constructed by the application factory (or by tests) and stored on
    ``app.state.database``.
    """

    def __init__(self, url: str, **engine_kwargs):
        if url.startswith("sqlite") and "connect_args" not in engine_kwargs:
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False)

    def create_all(self) -> None:
        """Create database tables if they don't exist"""
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    """
    Database dependency - Creates and yields a database session.

    The session is automatically closed after the request is processed,
    even if an exception occurs during request handling.

    Yields:
        SQLAlchemy Session: Database session
    """
    db = request.app.state.database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work over a session.

    Commits when the block exits normally and rolls back on any exception,
    re-raising it to the caller.

    Args:
        db: Database session

    Yields:
        Session: The same session, for use inside the block
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
