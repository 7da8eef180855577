"""Per-row sync status kept in the grid's "Sync Status" column.

The status column is always found by its header text. The stored column
letter is only a hint to check first; it never overrides what the header
row says.
"""

from __future__ import annotations

import logging

from ..errors import ConfigurationError
from ..grid.styles import SYNC_STATUS_HEADER, is_data_row, style_status_cell, style_status_header
from ..grid.surface import GridSurface, column_index, column_letter
from ..schemas.sync import GridRow, SyncStatus
from ..storage.keys import sync_enabled_key, tracking_column_key
from ..storage.properties import PropertyStore
from .grid_writer import TIMESTAMP_HEADER
from .naming import ID_HEADER

logger = logging.getLogger(__name__)


def _header_is(value, text: str) -> bool:
    return str(value or "").strip().lower() == text.lower()


def _is_status_header(value) -> bool:
    return _header_is(value, SYNC_STATUS_HEADER)


def find_status_column(headers: list, hint: int | None = None) -> int | None:
    if hint is not None and 0 <= hint < len(headers) and _is_status_header(headers[hint]):
        return hint
    for index, header in enumerate(headers):
        if _is_status_header(header):
            return index
    return None


class RowChangeTracker:
    """Track Not modified / Modified / Synced / Error per grid row.

    Usage:
        tracker = RowChangeTracker(grid, document_props, "Sheet1")
        grid.on_edit(tracker.handle_edit)
        col = await tracker.locate_status_column()
        for row in tracker.modified_rows(): ...
    """

    def __init__(self, grid: GridSurface, sheet_state: PropertyStore, sheet_id: str):
        self.grid = grid
        self._sheet_state = sheet_state
        self.sheet_id = sheet_id
        self._status_col: int | None = None

    def _headers(self) -> list:
        values = self.grid.get_values()
        return values[0] if values else []

    def id_column(self) -> int:
        """Index of the "Pipedrive ID" column; column A when there is none."""
        for index, header in enumerate(self._headers()):
            if _header_is(header, ID_HEADER):
                return index
        return 0

    def status_column(self) -> int | None:
        """Current status column index, re-checked against the header row."""
        self._status_col = find_status_column(self._headers(), self._status_col)
        return self._status_col

    async def locate_status_column(self) -> int:
        """Find the status column, refreshing the stored hint.

        Raises ConfigurationError when the grid has no status column.
        """
        hint = self._status_col
        if hint is None:
            stored = await self._sheet_state.get(tracking_column_key(self.sheet_id))
            if stored:
                try:
                    hint = column_index(stored)
                except ValueError:
                    logger.debug("Ignoring bad tracking column hint %r", stored)

        col = find_status_column(self._headers(), hint)
        if col is None:
            await self._sheet_state.delete(tracking_column_key(self.sheet_id))
            raise ConfigurationError(
                f"No '{SYNC_STATUS_HEADER}' column found on {self.sheet_id}. Pull data with sync tracking enabled first."
            )
        if col != hint:
            logger.info("Sync status column for %s is now %s", self.sheet_id, column_letter(col))
        self._status_col = col
        await self._sheet_state.set(tracking_column_key(self.sheet_id), column_letter(col))
        return col

    async def forget_location(self) -> None:
        """Drop cached and stored hints (entity type or columns changed)."""
        self._status_col = None
        await self._sheet_state.delete(tracking_column_key(self.sheet_id))

    async def enable(self) -> int:
        """Add a status column to an existing grid; every record starts Not modified."""
        col = self.status_column()
        if col is None:
            col = len(self._headers())
            self.grid.set_cell(0, col, SYNC_STATUS_HEADER)
            for row in self.data_rows():
                self.set_status(row, SyncStatus.NOT_MODIFIED)
        style_status_header(self.grid, col)
        self._status_col = col
        await self._sheet_state.set(sync_enabled_key(self.sheet_id), "true")
        await self._sheet_state.set(tracking_column_key(self.sheet_id), column_letter(col))
        return col

    # ------------------------------------------------------------------

    def data_rows(self) -> list[int]:
        values = self.grid.get_values()
        id_col = self.id_column()
        return [index for index in range(1, len(values)) if is_data_row(values[index], id_col)]

    def handle_edit(self, row: int, col: int) -> None:
        """Edit observer: any edit outside the status column marks the row Modified.

        Values are not compared with what was there before.
        """
        if row <= 0:
            return
        status_col = self.status_column()
        if status_col is None or col == status_col:
            return
        values = self.grid.get_values()
        if row >= len(values) or not is_data_row(values[row], self.id_column()):
            return
        self.set_status(row, SyncStatus.MODIFIED)

    def status(self, row: int) -> SyncStatus | None:
        col = self.status_column()
        if col is None:
            return None
        return SyncStatus.parse(self.grid.get_cell(row, col))

    def set_status(self, row: int, status: SyncStatus, note: str | None = None) -> None:
        col = self.status_column()
        if col is None:
            raise ConfigurationError(f"No '{SYNC_STATUS_HEADER}' column found on {self.sheet_id}")
        self.grid.set_cell(row, col, status.value)
        self.grid.set_note(row, col, note)
        style_status_cell(self.grid, row, col, status)

    def mark_synced(self, row: int, note: str | None = None) -> None:
        self.set_status(row, SyncStatus.SYNCED, note)

    def mark_error(self, row: int, detail: str) -> None:
        self.set_status(row, SyncStatus.ERROR, f"Sync error: {detail}")

    def reset(self, status: SyncStatus = SyncStatus.SYNCED) -> None:
        for row in self.data_rows():
            self.set_status(row, status)

    def modified_rows(self) -> list[int]:
        return [row for row in self.data_rows() if self.status(row) is SyncStatus.MODIFIED]

    def read_row(self, row: int, id_col: int | None = None) -> GridRow:
        """Record ID and the editable cells of one row.

        The ID, status and "Last Synced" columns are left out of ``cell_values``.
        """
        if id_col is None:
            id_col = self.id_column()
        values = self.grid.get_values()[row]
        col = self.status_column()
        skipped = {id_col, col}
        skipped.update(i for i, header in enumerate(self._headers()) if _header_is(header, TIMESTAMP_HEADER))
        remote_id = values[id_col] if id_col < len(values) and values[id_col] is not None else ""
        status = self.status(row)
        return GridRow(
            row=row,
            remote_id=str(remote_id).strip() or None,
            cell_values=[v for i, v in enumerate(values) if i not in skipped],
            sync_status=status,
            error_detail=self.grid.get_note(row, col) if status is SyncStatus.ERROR else None,
        )

    def refresh_styling(self) -> None:
        col = self.status_column()
        if col is None:
            return
        style_status_header(self.grid, col)
        for row in self.data_rows():
            style_status_cell(self.grid, row, col, self.status(row))

    def counts(self) -> dict[SyncStatus, int]:
        totals = {status: 0 for status in SyncStatus}
        for row in self.data_rows():
            status = self.status(row)
            if status is not None:
                totals[status] += 1
        return totals
