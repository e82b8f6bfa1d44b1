"""
Database connection and session management.

The engine is created once per process and owned by the application;
request handlers borrow a ``Session`` through ``get_db``.
"""
from __future__ import annotations

from typing import Any, Generator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from subscription_service.config import Settings
from subscription_service.core.exceptions import DatabaseUnavailableError


def create_db_engine(settings: Settings) -> Engine:
    """Build the pooled engine from settings."""
    url = settings.database_url
    if url.startswith("sqlite"):
        # Local runs and tests; the pool hands connections across worker threads.
        return create_engine(
            url,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        echo=False,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency for getting a database session.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """
    Create the subscriptions table and its indexes if they are missing.
    """
    from subscription_service.models import Base

    Base.metadata.create_all(bind=engine)


def require_database(engine: Engine) -> None:
    """Raise DatabaseUnavailableError when the store cannot be reached."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise DatabaseUnavailableError(str(exc)) from exc


def database_health(engine: Engine) -> dict[str, Any]:
    """
    Return structured database health details.
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return {
            "ok": True,
            "dialect": engine.dialect.name,
        }
    except SQLAlchemyError as exc:
        return {
            "ok": False,
            "dialect": engine.dialect.name,
            "error": str(exc),
        }
