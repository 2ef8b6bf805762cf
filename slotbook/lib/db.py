"""
Database engine and session management using SQLAlchemy 2.x.
Provides connection pooling and session factory for the application.
"""
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase

from slotbook.lib.settings import settings


# Base class for all SQLAlchemy models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Build an engine for the given URL.

    SQLite gets a generous lock timeout and cross-thread connections so the
    threadpool FastAPI runs sync routes in can share the pool. Server
    databases get a bounded connection pool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
    )


def create_session_factory(bind: Engine) -> sessionmaker:
    """Session factory with the application's session defaults."""
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


engine = create_db_engine(settings.database_url, echo=settings.debug)

# Session factory
SessionLocal = create_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI routes to get a database session.

    Usage:
        @app.get("/example")
        def example(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    """
    Initialize the database by creating all tables.
    Imports the models package so every table is registered first.
    """
    import slotbook.models  # noqa: F401

    Base.metadata.create_all(bind=bind)


def drop_db(bind: Engine = engine) -> None:
    """
    Drop all tables. Use with caution - for testing only.
    """
    import slotbook.models  # noqa: F401

    Base.metadata.drop_all(bind=bind)
