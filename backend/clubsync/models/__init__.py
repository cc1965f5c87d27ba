"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy.

Note: Feature models live in features/ modules; register_models() imports
them lazily to avoid circular imports.
"""

from clubsync.models.base import Base


def register_models() -> None:
    """Import every feature model so Base.metadata knows all tables."""
    from clubsync.features.clubs import models as club_models  # noqa: F401
    from clubsync.features.events import models as event_models  # noqa: F401


__all__ = ["Base", "register_models"]
