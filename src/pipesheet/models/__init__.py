"""SQLAlchemy models."""

from .base import Base
from .property import PropertyEntry

__all__ = ["Base", "PropertyEntry"]
