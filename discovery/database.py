from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DATABASE_URL

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db() -> None:
    """Create any missing tables on the configured engine."""
    # Model modules register their tables on Base when imported.
    from . import metadata, models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_db():
    """Request-scoped session for FastAPI routes.

    Usage:
        db: Session = Depends(get_db)

    Yields:
        sqlalchemy.orm.Session: closed once the response has been produced.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope():
    """Standalone session for work outside a request (background tasks, CLI)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
