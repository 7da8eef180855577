"""Property key naming.

Keys are part of the persisted format: changing one orphans stored data.
"""

from __future__ import annotations


def team_scope_id(team_id: str) -> str:
    return f"TEAM_{team_id}"


def columns_key(sheet_id: str, entity_type: str, scope_id: str) -> str:
    return f"COLUMNS_{sheet_id}_{entity_type}_{scope_id}"


def header_map_key(sheet_id: str, entity_type: str) -> str:
    return f"HEADER_TO_FIELD_MAP_{sheet_id}_{entity_type}"


def tracking_column_key(sheet_id: str) -> str:
    return f"TWOWAY_SYNC_TRACKING_COLUMN_{sheet_id}"


def sync_enabled_key(sheet_id: str) -> str:
    return f"TWOWAY_SYNC_ENABLED_{sheet_id}"


def last_sync_key(sheet_id: str) -> str:
    return f"TWOWAY_SYNC_LAST_SYNC_{sheet_id}"


def entity_type_key(sheet_id: str) -> str:
    return f"ENTITY_TYPE_{sheet_id}"


def filter_id_key(sheet_id: str) -> str:
    return f"FILTER_ID_{sheet_id}"
