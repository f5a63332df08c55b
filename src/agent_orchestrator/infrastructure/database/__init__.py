"""Database connection, models and stores."""
from .connection import DatabaseManager
from .base_model import BaseModel, SoftDeleteMixin, TimestampMixin, JSONType, utcnow

__all__ = [
    "DatabaseManager",
    "BaseModel",
    "SoftDeleteMixin",
    "TimestampMixin",
    "JSONType",
    "utcnow",
]
