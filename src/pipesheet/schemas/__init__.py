"""Pydantic schemas shared across the sync engine."""

from .columns import ColumnDescriptor, ColumnPreference, build_header_field_map
from .sync import GridRow, ProgressEvent, PullResult, PushResult, RowFailure, SyncStatus

__all__ = [
    "ColumnDescriptor",
    "ColumnPreference",
    "GridRow",
    "ProgressEvent",
    "PullResult",
    "PushResult",
    "RowFailure",
    "SyncStatus",
    "build_header_field_map",
]
