"""Status-column chrome: colours, validation list and header note."""

from __future__ import annotations

from ..schemas.sync import SyncStatus
from .surface import CellFormat, GridSurface

SYNC_STATUS_HEADER = "Sync Status"
BORDER_COLOR = "#DADCE0"

HEADER_FORMAT = CellFormat(background="#E8F0FE", bold=True, border_color=BORDER_COLOR)
HEADER_NOTE = (
    "Tracks changes for two-way sync. Edited rows are marked Modified; "
    "push them back to Pipedrive to mark them Synced."
)

STATUS_FORMATS = {
    SyncStatus.NOT_MODIFIED: CellFormat(border_color=BORDER_COLOR),
    SyncStatus.MODIFIED: CellFormat(background="#FCE8E6", font_color="#D93025", border_color=BORDER_COLOR),
    SyncStatus.SYNCED: CellFormat(background="#E6F4EA", font_color="#137333", border_color=BORDER_COLOR),
    SyncStatus.ERROR: CellFormat(background="#FCE8E6", font_color="#D93025", bold=True, border_color=BORDER_COLOR),
}

STATUS_VALUES = [status.value for status in SyncStatus]

# ID-cell prefixes of rows that are not records (footers, separators).
NON_DATA_PREFIXES = ("last", "sync", "update")


def is_data_row(values: list, id_col: int = 0) -> bool:
    """Rows with an empty or footer-like ID cell carry no record."""
    if id_col >= len(values):
        return False
    cell = str(values[id_col] if values[id_col] is not None else "").strip().lower()
    if not cell:
        return False
    return not cell.startswith(NON_DATA_PREFIXES)


def style_status_header(grid: GridSurface, col: int) -> None:
    grid.set_format(0, col, HEADER_FORMAT)
    grid.set_note(0, col, HEADER_NOTE)


def style_status_cell(grid: GridSurface, row: int, col: int, status: SyncStatus | None) -> None:
    grid.set_validation(row, col, STATUS_VALUES)
    grid.set_format(row, col, STATUS_FORMATS.get(status) if status else None)
