"""Core database access helpers.

Re-exports the engine, session factory and `get_db` dependency from
`archetypeos.core.database.session` together with the shared declarative `Base`.
"""

from archetypeos.models.base import Base

from .session import SessionLocal, build_engine, configure_sqlite, engine, get_db

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "build_engine",
    "configure_sqlite",
]
