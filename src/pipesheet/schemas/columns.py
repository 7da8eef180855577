"""Column descriptor schemas.

Descriptors are persisted as JSON arrays using camelCase keys
(``displayName``, ``isNested``, ...). Loading validates strictly: unknown
keys, a missing/blank ``key`` or an inconsistent ``isNested``/``parentKey``
pair are rejected instead of being carried forward.
"""

from __future__ import annotations

from pydantic import BaseModel, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel


class ColumnDescriptor(BaseModel):
    key: str
    display_name: str
    is_nested: bool = False
    parent_key: str | None = None
    read_only: bool = False
    category: str = "Standard Fields"
    custom_name: str | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "forbid"}

    @field_validator("key")
    @classmethod
    def _key_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("column key must be non-empty")
        return value

    @model_validator(mode="after")
    def _nesting_matches_parent(self) -> ColumnDescriptor:
        if self.is_nested != (self.parent_key is not None):
            raise ValueError(f"{self.key}: isNested must be set exactly when parentKey is")
        return self

    @property
    def header(self) -> str:
        """Text shown in the grid header: the custom name wins."""
        return self.custom_name or self.display_name


ColumnList = TypeAdapter(list[ColumnDescriptor])


class ColumnPreference(BaseModel):
    sheet_id: str
    entity_type: str
    scope_id: str
    columns: list[ColumnDescriptor] = []

    @model_validator(mode="after")
    def _keys_unique(self) -> ColumnPreference:
        seen: set[str] = set()
        for col in self.columns:
            if col.key in seen:
                raise ValueError(f"duplicate column key: {col.key}")
            seen.add(col.key)
        return self

    def to_json(self) -> str:
        return dump_columns(self.columns)


def load_columns(raw: str) -> list[ColumnDescriptor]:
    return ColumnList.validate_json(raw)


def dump_columns(columns: list[ColumnDescriptor]) -> str:
    return ColumnList.dump_json(columns, by_alias=True).decode()


def build_header_field_map(columns: list[ColumnDescriptor]) -> dict[str, str]:
    """Map the currently displayed header text back to the field key."""
    return {col.header: col.key for col in columns}


def unique_headers(columns: list[ColumnDescriptor]) -> list[ColumnDescriptor]:
    """Suffix repeated header text with " (2)", " (3)", ... in column order.

    Two custom fields with the same name would otherwise share a header and
    the header map could only point at one of them.
    """
    seen: dict[str, int] = {}
    result: list[ColumnDescriptor] = []
    for col in columns:
        count = seen.get(col.header, 0) + 1
        seen[col.header] = count
        if count > 1:
            suffix = f" ({count})"
            while f"{col.header}{suffix}" in seen:
                count += 1
                suffix = f" ({count})"
            if col.custom_name:
                col = col.model_copy(update={"custom_name": col.custom_name + suffix})
            else:
                col = col.model_copy(update={"display_name": col.display_name + suffix})
            seen[col.header] = 1
        result.append(col)
    return result
