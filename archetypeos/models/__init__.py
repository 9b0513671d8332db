"""Lightweight models package initialiser.

- Exposes the shared SQLAlchemy `Base`.
- Lazily exposes the domain models via module-level attribute access so importing
  `archetypeos.core.database` (which pulls `Base`) doesn't import every model.
"""

from archetypeos.models.base import Base

__all__ = ["Base"]


def __getattr__(name: str):
    """Resolve domain models from the registry on first access."""
    import importlib

    _registry = importlib.import_module("archetypeos.models.registry")

    if hasattr(_registry, name):
        return getattr(_registry, name)
    raise AttributeError(f"module 'archetypeos.models' has no attribute {name!r}")
