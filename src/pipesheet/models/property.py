"""Scoped key-value properties (column preferences, header maps, sheet config).

Values are stored as JSON text exactly as written; every write replaces the
whole value so readers never see a partially merged entry.
"""

from __future__ import annotations

from sqlalchemy import Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class PropertyEntry(TimestampMixin, Base):
    __tablename__ = "property_entry"
    __table_args__ = (
        UniqueConstraint("scope", "key", name="uq_property_scope_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scope: Mapped[str] = mapped_column(String(20), index=True)  # user, document, script
    key: Mapped[str] = mapped_column(String(255), index=True)
    value: Mapped[str] = mapped_column(Text)
