"""Sync state and result schemas."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from .columns import ColumnDescriptor


class SyncStatus(str, Enum):
    NOT_MODIFIED = "Not modified"
    MODIFIED = "Modified"
    SYNCED = "Synced"
    ERROR = "Error"

    @classmethod
    def parse(cls, text) -> SyncStatus | None:
        for status in cls:
            if str(text).strip().lower() == status.value.lower():
                return status
        return None


class GridRow(BaseModel):
    row: int
    remote_id: str | None = None
    cell_values: list = []
    sync_status: SyncStatus | None = None
    error_detail: str | None = None


class RowFailure(BaseModel):
    row: int
    remote_id: str | None = None
    message: str


class PushResult(BaseModel):
    total: int = 0
    synced: int = 0
    failed: int = 0
    skipped: int = 0
    failures: list[RowFailure] = []
    warnings: list[str] = []

    @property
    def summary(self) -> str:
        return f"Pushed {self.synced}/{self.total} rows ({self.failed} errors, {self.skipped} skipped)"


class PullResult(BaseModel):
    entity_type: str
    records: int = 0
    columns: list[ColumnDescriptor] = []


class ProgressEvent(BaseModel):
    phase: str
    current: int = 0
    total: int = 0
    message: str = ""
