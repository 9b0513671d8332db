"""Engine, session factory and the `get_db` request dependency.

PostgreSQL gets a bounded connection pool. SQLite (tests and local runs) gets
no pool and a 30 second busy timeout, and every transaction opens with
`BEGIN IMMEDIATE` so that writers queue on the database lock. That lock is what
the attempt engine relies on where PostgreSQL uses `SELECT ... FOR UPDATE`,
and it also lets SAVEPOINTs work under pysqlite.
"""

from __future__ import annotations

from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from archetypeos.core.config import settings

SQLITE_BUSY_TIMEOUT = 30


def _is_sqlite(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() == "sqlite"


def _engine_kwargs(database_url: str) -> Dict[str, Any]:
    if _is_sqlite(database_url):
        return {
            "poolclass": NullPool,
            "connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        }
    return {
        "pool_pre_ping": True,
        "pool_size": 20,
        "max_overflow": 10,
        "pool_recycle": 300,
    }


def configure_sqlite(engine: Engine) -> Engine:
    """Let SQLAlchemy, not pysqlite, emit BEGIN on SQLite engines."""
    if engine.dialect.name != "sqlite":
        return engine

    @event.listens_for(engine, "connect")
    def _autocommit_driver(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_engine(database_url: str | None = None) -> Engine:
    """Engine for `database_url`, or for the configured database.

    Under APP_ENV=test the configured database is always the test one.
    """
    if database_url is None:
        database_url = settings.get_database_url(
            use_test=settings.environment.lower() == "test"
        )
    engine = create_engine(database_url, **_engine_kwargs(database_url))
    return configure_sqlite(engine)


engine: Engine = build_engine()

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
