"""Database decorators for error translation."""

from infrastructure.database.decorators.errors import persistence_guard

__all__ = ["persistence_guard"]
