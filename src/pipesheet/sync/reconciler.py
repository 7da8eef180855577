"""Pull (Pipedrive -> grid) and push (grid -> Pipedrive) orchestration."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Callable

from ..api.client import PipedriveClient, PipedriveError
from ..api.fields import FieldDefinitionCache
from ..errors import ConfigurationError, ValueEncodingError
from ..grid.surface import GridSurface
from ..schemas.sync import ProgressEvent, PullResult, PushResult, RowFailure
from ..storage.keys import entity_type_key, filter_id_key, last_sync_key, sync_enabled_key
from ..storage.properties import PropertyStore
from .codec import ValueCodec
from .field_rules import CONTACT_FIELDS, ID_KEY, is_read_only_field, normalize_entity_type, payload_path
from .flattener import discover_columns
from .grid_writer import TIMESTAMP_HEADER, GridWriter, WriteOptions
from .naming import ID_HEADER, fallback_header_map
from .paths import contact_items, set_value
from .preferences import ColumnPreferenceStore, default_selection
from .tracker import RowChangeTracker

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]

PHASE_CONNECTING = "connecting"
PHASE_RETRIEVING = "retrieving"
PHASE_WRITING = "writing"
PHASE_PUSHING = "pushing"
PHASE_COMPLETE = "complete"


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def resolve_header(header, header_map: dict[str, str], fallback: dict[str, str]) -> str | None:
    text = str(header or "").strip()
    if not text:
        return None
    return header_map.get(text) or fallback.get(text)


class Reconciler:
    """Sync one sheet with one Pipedrive entity type.

    Usage:
        reconciler = Reconciler(client, grid, document_props, preferences, sheet_id="Sheet1")
        await reconciler.configure("deals", filter_id=12)
        await reconciler.pull()
        # ... user edits cells, tracker marks rows Modified ...
        result = await reconciler.push()
    """

    def __init__(
        self,
        client: PipedriveClient,
        grid: GridSurface,
        sheet_state: PropertyStore,
        preferences: ColumnPreferenceStore,
        sheet_id: str,
        fields: FieldDefinitionCache | None = None,
        sample_size: int = 5,
        on_progress: ProgressCallback | None = None,
    ):
        self.client = client
        self.grid = grid
        self.sheet_state = sheet_state
        self.preferences = preferences
        self.sheet_id = sheet_id
        self.fields = fields or FieldDefinitionCache(client)
        self.sample_size = sample_size
        self.on_progress = on_progress
        self.tracker = RowChangeTracker(grid, sheet_state, sheet_id)

    def _emit(self, phase: str, current: int = 0, total: int = 0, message: str = "") -> None:
        if self.on_progress is not None:
            self.on_progress(ProgressEvent(phase=phase, current=current, total=total, message=message))

    # ------------------------------------------------------------------
    # Sheet configuration
    # ------------------------------------------------------------------

    async def configure(self, entity_type: str, filter_id: int | str | None = None) -> None:
        entity_type = normalize_entity_type(entity_type)
        previous = await self.sheet_state.get(entity_type_key(self.sheet_id))

        await self.sheet_state.set(entity_type_key(self.sheet_id), entity_type)
        if filter_id in (None, ""):
            await self.sheet_state.delete(filter_id_key(self.sheet_id))
        else:
            await self.sheet_state.set(filter_id_key(self.sheet_id), str(filter_id))

        if previous and previous != entity_type:
            logger.info("%s switched from %s to %s", self.sheet_id, previous, entity_type)
            await self.tracker.forget_location()

    async def entity_type(self) -> str:
        stored = await self.sheet_state.get(entity_type_key(self.sheet_id))
        if not stored:
            raise ConfigurationError(
                f"No entity type configured for {self.sheet_id}. Choose deals, persons, organizations, "
                "activities, leads or products first."
            )
        return normalize_entity_type(stored)

    async def filter_id(self) -> str | None:
        return await self.sheet_state.get(filter_id_key(self.sheet_id))

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    async def pull(self, limit: int = 0, options: WriteOptions | None = None) -> PullResult:
        """Replace the grid with the current records of the configured filter."""
        entity_type = await self.entity_type()
        filter_id = await self.filter_id()
        options = options or WriteOptions()

        self.fields.clear()
        self._emit(PHASE_CONNECTING, message=f"Connecting to Pipedrive for {entity_type}")
        registry = await self.fields.registry(entity_type)

        self._emit(PHASE_RETRIEVING, message=f"Retrieving {entity_type}")
        records = await self.client.list_records(entity_type, filter_id=filter_id, limit=limit)
        logger.info("Retrieved %d %s for %s", len(records), entity_type, self.sheet_id)

        columns = await self.preferences.load_saved(entity_type, self.sheet_id)
        if columns is None:
            discovered = discover_columns(records[: self.sample_size], entity_type, registry)
            columns = default_selection(discovered, entity_type)
            await self.preferences.save(entity_type, self.sheet_id, columns)

        self._emit(PHASE_WRITING, 0, len(records), f"Writing {len(records)} rows")
        writer = GridWriter(self.grid, ValueCodec(registry))
        layout = writer.write(records, columns, options)

        if layout.status_col is not None:
            await self.tracker.forget_location()
            await self.tracker.locate_status_column()
            self.tracker.reset(options.initial_status)
            await self.sheet_state.set(sync_enabled_key(self.sheet_id), "true")

        self._emit(PHASE_COMPLETE, len(records), len(records), f"Pulled {len(records)} {entity_type}")
        return PullResult(entity_type=entity_type, records=len(records), columns=columns)

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def push(self) -> PushResult:
        """Send every Modified row to Pipedrive, one update call per row.

        A failing row is marked Error and the rest still go out. A missing
        status column raises ConfigurationError before anything is sent.
        """
        entity_type = await self.entity_type()
        status_col = await self.tracker.locate_status_column()

        self.fields.clear()
        registry = await self.fields.registry(entity_type)
        codec = ValueCodec(registry)

        header_map = await self.preferences.header_field_map(entity_type, self.sheet_id)
        fallback = fallback_header_map(entity_type)
        values = self.grid.get_values()
        headers = values[0] if values else []

        id_col = self._id_column(headers, header_map, fallback)
        counts = Counter(str(header or "").strip() for header in headers)
        repeated = {text for text, count in counts.items() if text and count > 1}
        column_keys: dict[int, str] = {}
        for index, header in enumerate(headers):
            if index in (id_col, status_col) or str(header).strip() == TIMESTAMP_HEADER:
                continue
            if str(header or "").strip() in repeated:
                logger.warning("Header %r is repeated on %s; column %d not pushed", header, self.sheet_id, index + 1)
                continue
            key = resolve_header(header, header_map, fallback)
            if key is None:
                logger.debug("No field for header %r on %s", header, self.sheet_id)
                continue
            column_keys[index] = key

        rows = self.tracker.modified_rows()
        result = PushResult(total=len(rows))
        self._emit(PHASE_PUSHING, 0, len(rows), f"Pushing {len(rows)} modified rows")

        for done, row in enumerate(rows, start=1):
            cells = values[row]
            remote_id = str(cells[id_col]).strip() if id_col < len(cells) and cells[id_col] is not None else ""
            if not remote_id:
                logger.warning("Row %d on %s has no %s; skipped", row + 1, self.sheet_id, ID_HEADER)
                result.skipped += 1
                continue

            encoded = self._encode_row(row, cells, column_keys, codec, entity_type, result)
            if not encoded:
                logger.warning("Row %d (%s) has nothing to push; skipped", row + 1, remote_id)
                result.skipped += 1
                continue

            try:
                payload = await self._build_payload(entity_type, remote_id, encoded)
                await self.client.update_record(entity_type, remote_id, payload)
            except PipedriveError as e:
                logger.warning("Failed to push %s %s: %s", entity_type, remote_id, e.message)
                self.tracker.mark_error(row, e.message)
                result.failed += 1
                result.failures.append(RowFailure(row=row, remote_id=remote_id, message=e.message))
            else:
                self.tracker.mark_synced(row, f"Synced at {_now()}")
                result.synced += 1

            self._emit(PHASE_PUSHING, done, len(rows), f"Pushed {done}/{len(rows)}")

        await self.sheet_state.set(last_sync_key(self.sheet_id), datetime.now(timezone.utc).isoformat())
        self.tracker.refresh_styling()

        logger.info("%s: %s", self.sheet_id, result.summary)
        self._emit(PHASE_COMPLETE, len(rows), len(rows), result.summary)
        return result

    @staticmethod
    def _id_column(headers: list, header_map: dict[str, str], fallback: dict[str, str]) -> int:
        for index, header in enumerate(headers):
            if resolve_header(header, header_map, fallback) == ID_KEY:
                return index
        return 0

    def _encode_row(
        self,
        row: int,
        cells: list,
        column_keys: dict[int, str],
        codec: ValueCodec,
        entity_type: str,
        result: PushResult,
    ) -> dict[str, object]:
        encoded: dict[str, object] = {}
        for index, key in column_keys.items():
            cell = cells[index] if index < len(cells) else ""
            if cell is None or str(cell).strip() == "":
                continue
            if is_read_only_field(key, entity_type):
                continue
            try:
                encoded[key] = codec.encode(key, cell)
            except ValueEncodingError as e:
                message = f"Row {row + 1}: skipped {key}: {e.message}"
                logger.warning("%s", message)
                result.warnings.append(message)

        codec.complete_ranges(encoded, set(column_keys.values()))
        # A composite parent is superseded by its own sub-columns.
        return {
            key: value
            for key, value in encoded.items()
            if not any(other.startswith(key + ".") for other in encoded)
        }

    async def _build_payload(self, entity_type: str, remote_id: str, encoded: dict[str, object]) -> dict:
        """Assemble the update body for one row.

        Contact arrays are replaced as a whole by the API, so an edited email
        or phone starts from the record's current items.
        """
        paths = {key: payload_path(key) for key in encoded}
        contacts = {path.split(".")[0] for path in paths.values()} & set(CONTACT_FIELDS)

        payload: dict = {}
        if contacts:
            current = await self.client.get_record(entity_type, remote_id)
            for field in sorted(contacts):
                items = contact_items(current.get(field))
                if items:
                    payload[field] = items

        for key, value in encoded.items():
            set_value(payload, paths[key], value)
        return payload

