"""Turn sample records into an ordered, deduplicated list of column descriptors.

Composite values get dedicated sub-columns instead of deep recursion:

* money ``{value, currency}``: descriptive parent plus ``<field>.amount``;
* address objects: descriptive parent plus one column per component;
* date/time ranges: the field itself is the start, ``<field>_until`` the end;
* contact arrays (email/phone): primary-value parent plus one column per
  label seen in the sample, never per array position.
"""

from __future__ import annotations

import logging

from ..api.fields import CUSTOM_FIELDS_PREFIX, HASH_KEY_RE, FieldKind, FieldRegistry
from ..errors import SchemaExtractionError
from ..schemas.columns import ColumnDescriptor, unique_headers
from .field_rules import (
    ADDRESS_COMPONENTS,
    COMMON_STANDARD_FIELDS,
    CONTACT_FIELDS,
    CUSTOM_CATEGORY,
    FALLBACK_COLUMNS,
    ID_KEY,
    PRIORITY_FIELDS,
    SKIPPED_KEYS,
    SKIPPED_SUBKEYS,
    STANDARD_FIELDS,
    TIMESTAMP_FIELDS,
    category_for,
    category_rank,
    is_read_only_field,
    main_category,
)
from .naming import COMPONENT_LABELS, format_basic_name, format_column_name
from .paths import is_contact_array, is_money

logger = logging.getLogger(__name__)

RANGE_KINDS = (FieldKind.DATE_RANGE, FieldKind.TIME_RANGE)
NAME_KEYS = ("name", "title", "subject")


def _looks_like_address(key: str, value) -> bool:
    if not isinstance(value, dict):
        return False
    if "formatted_address" in value or any(c in value for c in ADDRESS_COMPONENTS):
        return True
    return "address" in key


def _looks_like_range(value) -> bool:
    return isinstance(value, dict) and ("until" in value or ("start" in value and "end" in value))


class _ColumnCollector:
    """Ordered descriptor set; the first descriptor registered for a key wins."""

    def __init__(self, entity_type: str, registry: FieldRegistry | None):
        self.entity_type = entity_type
        self.registry = registry
        self.columns: dict[str, ColumnDescriptor] = {}

    def add(
        self,
        key: str,
        display_name: str | None = None,
        parent_key: str | None = None,
        category: str | None = None,
    ) -> None:
        if not isinstance(key, str) or not key.strip():
            logger.debug("Dropping column without a key (display name %r)", display_name)
            return
        if key in self.columns:
            return
        self.columns[key] = ColumnDescriptor(
            key=key,
            display_name=display_name or format_column_name(key, self.entity_type, self.registry),
            is_nested=parent_key is not None,
            parent_key=parent_key,
            read_only=is_read_only_field(key, self.entity_type),
            category=category or category_for(key, self.entity_type),
        )


class SchemaFlattener:
    """Flatten records of one entity type into column descriptors.

    Usage:
        flattener = SchemaFlattener("deals", registry)
        columns = flattener.flatten_samples(records[:5])
    """

    def __init__(self, entity_type: str, registry: FieldRegistry | None = None):
        self.entity_type = entity_type
        self.registry = registry

    def flatten(self, sample: dict) -> list[ColumnDescriptor]:
        return self.flatten_samples([sample])

    def flatten_samples(self, samples: list[dict]) -> list[ColumnDescriptor]:
        collector = _ColumnCollector(self.entity_type, self.registry)
        collector.add(ID_KEY, category=main_category(self.entity_type))
        try:
            for sample in samples:
                if not isinstance(sample, dict):
                    raise SchemaExtractionError(f"Sample record is {type(sample).__name__}, expected an object")
                self._collect(collector, sample)
        except (TypeError, AttributeError, ValueError) as e:
            raise SchemaExtractionError(f"Could not flatten {self.entity_type} sample: {e}") from e
        return unique_headers(sort_columns(list(collector.columns.values()), self.entity_type))

    # ------------------------------------------------------------------

    def _collect(self, collector: _ColumnCollector, sample: dict) -> None:
        standard = (
            *PRIORITY_FIELDS.get(self.entity_type, ()),
            *STANDARD_FIELDS.get(self.entity_type, ()),
            *COMMON_STANDARD_FIELDS,
            *TIMESTAMP_FIELDS,
        )
        for key in standard:
            if key in sample:
                self._add_field(collector, key, sample[key], sample)

        for key, value in sample.items():
            if key == "custom_fields" and isinstance(value, dict):
                for field_hash, custom_value in value.items():
                    self._add_field(collector, CUSTOM_FIELDS_PREFIX + str(field_hash), custom_value, value)
            else:
                self._add_field(collector, str(key), value, sample)

    def _base_name(self, key: str) -> str:
        return format_column_name(key, self.entity_type, self.registry)

    def _kind(self, key: str) -> FieldKind | None:
        if self.registry is None:
            return None
        return self.registry.kind_for(key)

    def _add_field(self, collector: _ColumnCollector, key: str, value, siblings: dict) -> None:
        name = key[len(CUSTOM_FIELDS_PREFIX):] if key.startswith(CUSTOM_FIELDS_PREFIX) else key
        if not name or name.startswith("_") or name in SKIPPED_KEYS:
            return

        # Flat component keys: <hash>_until, <hash>_locality, address_locality
        match = HASH_KEY_RE.match(name)
        suffix = match.group(2) if match else None
        if suffix is None:
            for component in (*ADDRESS_COMPONENTS, "formatted_address"):
                if name.endswith("_" + component) and name[: -len(component) - 1] in siblings:
                    suffix = component
                    break
        if suffix is not None:
            self._add_component(collector, key, suffix)
            return
        if name.endswith("_currency") and name[: -len("_currency")] in siblings:
            return

        kind = self._kind(key)
        base = self._base_name(key)
        custom = match is not None

        if is_money(value) or (kind is FieldKind.MONEY and isinstance(value, dict)):
            collector.add(key, f"{base} (Currency)")
            collector.add(f"{key}.amount", f"{base} - Amount", parent_key=key)
        elif kind is FieldKind.ADDRESS or _looks_like_address(name, value):
            collector.add(key, f"{base} (Address)" if custom else base)
            if isinstance(value, dict):
                for component in ADDRESS_COMPONENTS:
                    if component in value:
                        collector.add(
                            f"{key}.{component}",
                            f"{base} - {COMPONENT_LABELS[component]}",
                            parent_key=key,
                        )
        elif kind in RANGE_KINDS or _looks_like_range(value):
            if isinstance(value, dict) and "start" in value and "end" in value:
                collector.add(f"{key}.start", f"{base} - Start", parent_key=key)
                collector.add(f"{key}.end", f"{base} - End", parent_key=key)
            else:
                collector.add(key, f"{base} - Start")
                collector.add(f"{key}_until", f"{base} - End", parent_key=key)
        elif name in CONTACT_FIELDS or is_contact_array(value):
            collector.add(key, f"Primary {base}")
            for label in self._contact_labels(value):
                collector.add(f"{key}.{label}", f"{base} {label.title()}", parent_key=key)
        elif isinstance(value, dict):
            collector.add(key, base)
            for sub_key, sub_value in value.items():
                sub_key = str(sub_key)
                if not sub_key or sub_key.startswith("_") or sub_key in SKIPPED_SUBKEYS:
                    continue
                if isinstance(sub_value, (dict, list)):
                    continue
                collector.add(f"{key}.{sub_key}", parent_key=key)
        else:
            collector.add(key, base)

    def _add_component(self, collector: _ColumnCollector, key: str, suffix: str) -> None:
        if suffix in SKIPPED_SUBKEYS:
            return
        parent = key[: -len(suffix) - 1]
        base = self._base_name(parent)
        if suffix == "until":
            collector.add(key, f"{base} - End", parent_key=parent)
            return
        label = COMPONENT_LABELS.get(suffix) or format_basic_name(suffix)
        collector.add(key, f"{base} - {label}", parent_key=parent)

    @staticmethod
    def _contact_labels(value) -> list[str]:
        labels: list[str] = []
        if not isinstance(value, list):
            return labels
        for item in value:
            if not isinstance(item, dict):
                continue
            label = str(item.get("label") or "").strip().lower()
            if label and label not in labels:
                labels.append(label)
        return labels


def sort_columns(columns: list[ColumnDescriptor], entity_type: str) -> list[ColumnDescriptor]:
    """Identifier, name, owner, main fields, other top-level, then nested by parent."""
    priority = [ID_KEY, *NAME_KEYS, "owner_id", *PRIORITY_FIELDS.get(entity_type, ()), *TIMESTAMP_FIELDS]
    priority_index = {}
    for key in priority:
        priority_index.setdefault(key, len(priority_index))

    def top_level_rank(col: ColumnDescriptor):
        if col.key in priority_index:
            return (0, priority_index[col.key], 0, "")
        return (1, 0, category_rank(col.category), col.display_name.lower())

    top_level = sorted((c for c in columns if not c.is_nested), key=top_level_rank)
    parent_order = {col.key: i for i, col in enumerate(top_level)}

    nested = sorted(
        (c for c in columns if c.is_nested),
        key=lambda c: (parent_order.get(c.parent_key, len(parent_order)), c.parent_key, c.display_name.lower()),
    )
    return top_level + nested


def descriptor_for_key(key: str, entity_type: str, registry: FieldRegistry | None = None) -> ColumnDescriptor:
    """Descriptor for a known key without sample data (defaults, fallbacks)."""
    stripped = key[len(CUSTOM_FIELDS_PREFIX):] if key.startswith(CUSTOM_FIELDS_PREFIX) else key
    parent_key = key.rsplit(".", 1)[0] if "." in stripped else None
    return ColumnDescriptor(
        key=key,
        display_name=format_column_name(key, entity_type, registry),
        is_nested=parent_key is not None,
        parent_key=parent_key,
        read_only=is_read_only_field(key, entity_type),
        category=CUSTOM_CATEGORY if HASH_KEY_RE.match(stripped.split(".")[0]) else category_for(key, entity_type),
    )


def fallback_columns(entity_type: str) -> list[ColumnDescriptor]:
    keys = FALLBACK_COLUMNS.get(entity_type, (ID_KEY,))
    return unique_headers([descriptor_for_key(key, entity_type) for key in keys])


def discover_columns(
    samples: list[dict],
    entity_type: str,
    registry: FieldRegistry | None = None,
) -> list[ColumnDescriptor]:
    """Flatten samples, falling back to a minimal column set on bad data."""
    if not samples:
        return fallback_columns(entity_type)
    try:
        return SchemaFlattener(entity_type, registry).flatten_samples(samples)
    except SchemaExtractionError as e:
        logger.warning("Using fallback columns for %s: %s", entity_type, e.message)
        return fallback_columns(entity_type)
