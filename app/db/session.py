from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings


def build_engine(database_url: str) -> Engine:
    """engine for the Supabase Postgres database holding profiles and subscriptions."""
    if not database_url:
        raise RuntimeError("DATABASE_URL is not configured")
    # the one-active-subscription guarantee relies on FOR UPDATE and a partial index
    if database_url.startswith("sqlite"):
        raise RuntimeError("SQLite is not supported for the payments database, use Postgres")

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_CONNECTION_TIMEOUT,
        # supabase pooler drops idle connections
        pool_recycle=1800,
        connect_args={
            "connect_timeout": settings.DB_CONNECTION_TIMEOUT,
            "application_name": "aimploy_payments",
        },
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    # activation results are read after commit, keep them loaded
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


engine = build_engine(settings.payments_config().database_url)
SessionLocal = make_session_factory(engine)


@contextmanager
def session_scope() -> Iterator[Session]:
    """commit on success, roll back on any error."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# fastAPI dependency
def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
