"""Column preferences per (sheet, entity type, scope) and the header->field map.

The scope is the team when the user belongs to one, else the user. Team
preferences are seeded from the user's own the first time the team scope is
used; the individual entry is never deleted and stays as the fallback.
"""

from __future__ import annotations

import json
import logging

from pydantic import TypeAdapter, ValidationError

from ..schemas.columns import (
    ColumnDescriptor,
    ColumnPreference,
    build_header_field_map,
    load_columns,
    unique_headers,
)
from ..storage.keys import columns_key, header_map_key, team_scope_id, tracking_column_key
from ..storage.properties import PropertyStore
from .field_rules import DEFAULT_COLUMNS, ID_KEY, is_read_only_field
from .flattener import descriptor_for_key
from .naming import ID_HEADER

logger = logging.getLogger(__name__)

HeaderMap = TypeAdapter(dict[str, str])


class ColumnPreferenceStore:
    """Save and load the chosen columns for a sheet.

    Usage:
        store = ColumnPreferenceStore(script_props, "me@example.com", team_id="42")
        await store.save("deals", "Sheet1", columns)
        columns = await store.load("deals", "Sheet1")
        header_map = await store.header_field_map("deals", "Sheet1")
    """

    def __init__(
        self,
        properties: PropertyStore,
        user: str,
        team_id: str | None = None,
        sheet_state: PropertyStore | None = None,
    ):
        self._properties = properties
        self.user = user
        self.team_id = team_id
        self._sheet_state = sheet_state

    @property
    def scope_id(self) -> str:
        return team_scope_id(self.team_id) if self.team_id else self.user

    # ------------------------------------------------------------------

    async def save(self, entity_type: str, sheet_id: str, columns: list[ColumnDescriptor]) -> ColumnPreference:
        """Replace the stored columns and rebuild the header map."""
        preference = ColumnPreference(
            sheet_id=sheet_id,
            entity_type=entity_type,
            scope_id=self.scope_id,
            columns=unique_headers(columns),
        )

        if self.team_id:
            await self._migrate_individual(entity_type, sheet_id)

        await self._properties.set(columns_key(sheet_id, entity_type, self.scope_id), preference.to_json())

        header_map = build_header_field_map(preference.columns)
        header_map.setdefault(ID_HEADER, ID_KEY)
        await self._properties.set(header_map_key(sheet_id, entity_type), json.dumps(header_map))

        # Column positions may have moved; the tracker must look again.
        if self._sheet_state is not None:
            await self._sheet_state.delete(tracking_column_key(sheet_id))

        logger.info("Saved %d %s columns for %s (%s)", len(columns), entity_type, sheet_id, self.scope_id)
        return preference

    async def load(self, entity_type: str, sheet_id: str) -> list[ColumnDescriptor]:
        saved = await self.load_saved(entity_type, sheet_id)
        if saved is not None:
            return saved
        return default_columns(entity_type)

    async def load_saved(self, entity_type: str, sheet_id: str) -> list[ColumnDescriptor] | None:
        """Stored columns (team scope first, then individual) or None."""
        if self.team_id:
            team_columns = await self._read(columns_key(sheet_id, entity_type, self.scope_id), entity_type)
            if team_columns is not None:
                return team_columns
            migrated = await self._migrate_individual(entity_type, sheet_id)
            if migrated is not None:
                return migrated
        return await self._read(columns_key(sheet_id, entity_type, self.user), entity_type)

    async def header_field_map(self, entity_type: str, sheet_id: str) -> dict[str, str]:
        raw = await self._properties.get(header_map_key(sheet_id, entity_type))
        if raw:
            try:
                return HeaderMap.validate_json(raw)
            except ValidationError as e:
                logger.warning("Ignoring malformed header map for %s/%s: %s", sheet_id, entity_type, e)
        header_map = build_header_field_map(await self.load(entity_type, sheet_id))
        header_map.setdefault(ID_HEADER, ID_KEY)
        return header_map

    async def rename(self, entity_type: str, sheet_id: str, key: str, custom_name: str | None) -> ColumnPreference:
        """Set (or clear) a column's custom header and save."""
        columns = await self.load(entity_type, sheet_id)
        if not any(col.key == key for col in columns):
            raise KeyError(key)
        renamed = [
            col.model_copy(update={"custom_name": custom_name or None}) if col.key == key else col
            for col in columns
        ]
        return await self.save(entity_type, sheet_id, renamed)

    # ------------------------------------------------------------------

    async def _read(self, key: str, entity_type: str) -> list[ColumnDescriptor] | None:
        raw = await self._properties.get(key)
        if not raw:
            return None
        try:
            columns = load_columns(raw)
        except ValidationError as e:
            logger.warning("Ignoring malformed column preference %s: %s", key, e)
            return None
        return [
            col.model_copy(update={"read_only": is_read_only_field(col.key, entity_type)})
            for col in columns
        ]

    async def _migrate_individual(self, entity_type: str, sheet_id: str) -> list[ColumnDescriptor] | None:
        team_key = columns_key(sheet_id, entity_type, self.scope_id)
        if await self._properties.get(team_key):
            return None
        individual = await self._read(columns_key(sheet_id, entity_type, self.user), entity_type)
        if individual is None:
            return None
        await self._properties.set(team_key, ColumnPreference(
            sheet_id=sheet_id,
            entity_type=entity_type,
            scope_id=self.scope_id,
            columns=individual,
        ).to_json())
        logger.info("Copied %s column preferences for %s from %s to %s", entity_type, sheet_id, self.user, self.scope_id)
        return individual


def default_columns(entity_type: str) -> list[ColumnDescriptor]:
    keys = DEFAULT_COLUMNS.get(entity_type, (ID_KEY,))
    return unique_headers([descriptor_for_key(key, entity_type) for key in keys])


def default_selection(discovered: list[ColumnDescriptor], entity_type: str) -> list[ColumnDescriptor]:
    """Default columns, taken from discovered descriptors where possible."""
    by_key = {col.key: col for col in discovered}
    wanted = DEFAULT_COLUMNS.get(entity_type, (ID_KEY,))
    chosen = [by_key[key] for key in wanted if key in by_key]
    if len(chosen) <= 1:
        return default_columns(entity_type)
    return chosen
