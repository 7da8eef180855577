"""Tests for writing record snapshots into a grid."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from pipesheet.grid.styles import HEADER_FORMAT, STATUS_FORMATS, STATUS_VALUES
from pipesheet.schemas.sync import SyncStatus
from pipesheet.sync.flattener import SchemaFlattener
from pipesheet.sync.grid_writer import FOOTER_PREFIX, GridWriter, WriteOptions
from pipesheet.sync.preferences import default_selection
from tests.conftest import MOCK_DEAL

STAMP = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

DEAL_HEADERS = [
    "Pipedrive ID", "Deal Title", "Status", "Deal Value", "Currency",
    "Owner", "Created Date", "Last Updated",
]


@pytest.fixture
def columns():
    return default_selection(SchemaFlattener("deals").flatten(MOCK_DEAL), "deals")


class TestLayout:
    """Header row and cell values."""

    def test_headers_and_values(self, grid, columns):
        layout = GridWriter(grid).write([MOCK_DEAL], columns)

        assert grid.rows[0] == [*DEAL_HEADERS, "Sync Status"]
        assert grid.rows[1] == [
            1, "Acme Deal", "open", 200, "USD", "Dana Rep",
            "2024-01-15 10:00:00", "2024-02-01 08:30:00", "Synced",
        ]
        assert layout.id_col == 0
        assert layout.status_col == 8
        assert layout.data_rows == [1]

    def test_id_is_not_repeated_as_data_column(self, grid, columns):
        layout = GridWriter(grid).write([MOCK_DEAL], columns)
        assert grid.rows[0].count("Pipedrive ID") == 1
        assert all(col.key != "id" for col in layout.columns)
        assert layout.column_for(1).key == "title"
        assert layout.column_for(0) is None

    def test_custom_name_used_as_header(self, grid, columns):
        renamed = [c.model_copy(update={"custom_name": "Deal"}) if c.key == "title" else c for c in columns]
        GridWriter(grid).write([MOCK_DEAL], renamed)
        assert grid.rows[0][1] == "Deal"

    def test_timestamp_column_before_status(self, grid, columns):
        layout = GridWriter(grid).write(
            [MOCK_DEAL], columns, WriteOptions(include_timestamp=True, timestamp=STAMP)
        )
        assert grid.rows[0][-2:] == ["Last Synced", "Sync Status"]
        assert layout.timestamp_col == 8
        assert layout.status_col == 9
        assert grid.rows[1][8] == "2024-05-01 12:00:00"

    def test_without_status_column(self, grid, columns):
        layout = GridWriter(grid).write([MOCK_DEAL], columns, WriteOptions(include_sync_status=False))
        assert grid.rows[0] == DEAL_HEADERS
        assert layout.status_col is None
        assert grid.validations == {}

    def test_write_replaces_previous_content(self, grid, columns):
        grid.set_values([["old"], ["stale", "row", "with", "more", "cells"]])
        grid.set_note(1, 2, "old note")

        GridWriter(grid).write([], columns)

        assert grid.row_count == 1
        assert (1, 2) not in grid.notes


class TestStatusChrome:
    """Validation lists and colours on the status column."""

    def test_status_cells_styled(self, grid, columns):
        GridWriter(grid).write([MOCK_DEAL, {**MOCK_DEAL, "id": 2}], columns)

        assert grid.formats[(0, 8)] == HEADER_FORMAT
        assert grid.get_note(0, 8)
        for row in (1, 2):
            assert grid.validations[(row, 8)] == STATUS_VALUES
            assert grid.formats[(row, 8)] == STATUS_FORMATS[SyncStatus.SYNCED]

    def test_initial_status_option(self, grid, columns):
        GridWriter(grid).write([MOCK_DEAL], columns, WriteOptions(initial_status=SyncStatus.NOT_MODIFIED))
        assert grid.rows[1][8] == "Not modified"
        assert grid.formats[(1, 8)] == STATUS_FORMATS[SyncStatus.NOT_MODIFIED]

    def test_footer_rows_left_alone(self, grid, columns):
        layout = GridWriter(grid).write(
            [MOCK_DEAL], columns, WriteOptions(include_footer=True, timestamp=STAMP)
        )

        assert grid.rows[-1] == [f"{FOOTER_PREFIX} 2024-05-01 12:00:00"]
        assert layout.data_rows == [1]
        footer_row = grid.row_count - 1
        assert (footer_row, 8) not in grid.validations
        assert (footer_row, 8) not in grid.formats
