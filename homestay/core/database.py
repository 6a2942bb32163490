from contextlib import contextmanager
from typing import Callable, Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from .config import settings

# In-memory and file SQLite are used for local runs and tests; the request
# thread differs from the one that opened the connection
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args,
    echo=settings.ENVIRONMENT == "development",
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; lifecycle services commit through their own transaction()"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(session_factory: Callable[[], Session] = SessionLocal) -> Iterator[Session]:
    """
    Standalone unit of work outside a request

    Used by post-commit work such as notification delivery, which must not
    share the request's session. Commits on success, rolls back on error.
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
