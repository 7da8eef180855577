"""Render records into the grid, replacing whatever was there."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..grid.styles import SYNC_STATUS_HEADER, is_data_row, style_status_cell, style_status_header
from ..grid.surface import GridSurface
from ..schemas.columns import ColumnDescriptor
from ..schemas.sync import SyncStatus
from .codec import ValueCodec
from .field_rules import ID_KEY
from .naming import ID_HEADER
from .paths import get_value

logger = logging.getLogger(__name__)

TIMESTAMP_HEADER = "Last Synced"
FOOTER_PREFIX = "Last synced:"


@dataclass
class WriteOptions:
    include_sync_status: bool = True
    include_timestamp: bool = False
    include_footer: bool = False
    initial_status: SyncStatus = SyncStatus.SYNCED
    timestamp: datetime | None = None


@dataclass
class GridLayout:
    """Where things landed after a write."""

    columns: list[ColumnDescriptor]
    headers: list[str]
    id_col: int = 0
    timestamp_col: int | None = None
    status_col: int | None = None
    data_rows: list[int] = field(default_factory=list)

    def column_for(self, col: int) -> ColumnDescriptor | None:
        offset = col - 1
        if 0 <= offset < len(self.columns):
            return self.columns[offset]
        return None


def data_columns(columns: list[ColumnDescriptor]) -> list[ColumnDescriptor]:
    """Columns rendered after the identifier column."""
    return [col for col in columns if col.key != ID_KEY]


class GridWriter:
    """Write a full snapshot of records into a grid.

    Usage:
        writer = GridWriter(grid, ValueCodec(registry))
        layout = writer.write(records, columns, WriteOptions(include_footer=True))
    """

    def __init__(self, grid: GridSurface, codec: ValueCodec | None = None):
        self.grid = grid
        self.codec = codec or ValueCodec()

    def write(
        self,
        records: list[dict],
        columns: list[ColumnDescriptor],
        options: WriteOptions | None = None,
    ) -> GridLayout:
        options = options or WriteOptions()
        stamp = (options.timestamp or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M:%S")
        cols = data_columns(columns)

        headers = [ID_HEADER, *(col.header for col in cols)]
        layout = GridLayout(columns=cols, headers=headers)
        if options.include_timestamp:
            layout.timestamp_col = len(headers)
            headers.append(TIMESTAMP_HEADER)
        if options.include_sync_status:
            layout.status_col = len(headers)
            headers.append(SYNC_STATUS_HEADER)

        rows: list[list] = [headers]
        for record in records:
            row = [self.codec.decode(ID_KEY, get_value(record, ID_KEY))]
            row.extend(self.codec.decode(col.key, get_value(record, col.key)) for col in cols)
            if layout.timestamp_col is not None:
                row.append(stamp)
            if layout.status_col is not None:
                row.append(options.initial_status.value)
            rows.append(row)

        if options.include_footer:
            rows.append([])
            rows.append([f"{FOOTER_PREFIX} {stamp}"])

        self.grid.clear()
        self.grid.set_values(rows)

        for index, values in enumerate(rows[1:], start=1):
            if is_data_row(values):
                layout.data_rows.append(index)

        if layout.status_col is not None:
            style_status_header(self.grid, layout.status_col)
            for index in layout.data_rows:
                style_status_cell(self.grid, index, layout.status_col, options.initial_status)

        logger.info("Wrote %d rows x %d columns", len(records), len(headers))
        return layout
