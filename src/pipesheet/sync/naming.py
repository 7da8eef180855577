"""Display names for column keys."""

from __future__ import annotations

from ..api.fields import CUSTOM_FIELDS_PREFIX, HASH_KEY_RE, FieldRegistry
from .field_rules import (
    COMMON_STANDARD_FIELDS,
    DEFAULT_COLUMNS,
    RELATION_LABELS,
    STANDARD_FIELDS,
    TIMESTAMP_FIELDS,
)

ID_HEADER = "Pipedrive ID"

NAME_OVERRIDES = {
    "id": ID_HEADER,
    "title": "Deal Title",
    "value": "Deal Value",
    "currency": "Currency",
    "owner_id": "Owner",
    "org_id": "Organization",
    "person_id": "Person",
    "deal_id": "Deal",
    "stage_id": "Pipeline Stage",
    "pipeline_id": "Pipeline",
    "add_time": "Created Date",
    "update_time": "Last Updated",
    "created_at": "Created Date",
    "updated_at": "Last Updated",
    "user_id": "User",
    "creator_user_id": "Creator",
    "expected_close_date": "Expected Close Date",
    "stage_change_time": "Stage Change Time",
    "lost_reason": "Lost Reason",
    "visible_to": "Visible To",
    "label_ids": "Labels",
    "due_date": "Due Date",
    "due_time": "Due Time",
    "public_description": "Public Description",
    "email": "Email",
    "phone": "Phone",
    "emails": "Email",
    "phones": "Phone",
}

ENTITY_NAME_OVERRIDES = {
    "leads": {"title": "Lead Title", "value": "Lead Value"},
}

COMPONENT_LABELS = {
    "subpremise": "Suite/Apt",
    "street_number": "Street Number",
    "route": "Street Name",
    "locality": "City",
    "sublocality": "District",
    "admin_area_level_1": "State/Province",
    "admin_area_level_2": "County",
    "country": "Country",
    "postal_code": "ZIP/Postal Code",
    "formatted_address": "Complete Address",
    "until": "End Time/Date",
    "timezone_id": "Timezone",
    "currency": "Currency",
    "amount": "Amount",
}


def format_basic_name(key: str) -> str:
    """``next_activity_date`` -> ``Next Activity Date``."""
    words = key.replace("_", " ").replace(".", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def strip_id_suffix(key: str) -> str:
    if key.endswith("_id") and len(key) > 3:
        return key[:-3]
    return key


def _field_name(key: str, registry: FieldRegistry | None) -> str | None:
    if registry is None:
        return None
    return registry.name_for(key)


def relation_subfield_name(relation: str, subfield: str) -> str:
    """``owner_id.name`` -> ``Owner Name``."""
    label = RELATION_LABELS.get(relation) or format_basic_name(strip_id_suffix(relation))
    return f"{label} {format_basic_name(subfield)}"


def format_column_name(
    key: str,
    entity_type: str | None = None,
    registry: FieldRegistry | None = None,
) -> str:
    """Human-readable header for a column key."""
    if key.startswith(CUSTOM_FIELDS_PREFIX):
        key = key[len(CUSTOM_FIELDS_PREFIX):]

    parts = key.split(".")
    head = parts[0]

    # Custom field, possibly with a component suffix or sub-path.
    match = HASH_KEY_RE.match(head)
    if match:
        base_name = _field_name(match.group(1), registry) or "Custom Field"
        component = match.group(2) or (parts[1] if len(parts) > 1 else None)
        if component:
            return f"{base_name} - {COMPONENT_LABELS.get(component, format_basic_name(component))}"
        return base_name

    if len(parts) > 1:
        subfield = parts[-1]
        if head in RELATION_LABELS or head.endswith("_id"):
            return relation_subfield_name(head, subfield)
        parent = _field_name(head, registry) or NAME_OVERRIDES.get(head) or format_basic_name(head)
        if subfield in COMPONENT_LABELS:
            return f"{parent} - {COMPONENT_LABELS[subfield]}"
        if subfield in ("work", "home", "mobile", "other"):
            return f"{parent} {subfield.title()}"
        sub_name = format_basic_name(subfield)
        if parent.lower() in sub_name.lower():
            return sub_name
        return f"{parent} - {sub_name}"

    if head in RELATION_LABELS:
        return RELATION_LABELS[head]
    overrides = ENTITY_NAME_OVERRIDES.get(entity_type or "", {})
    if head in overrides:
        return overrides[head]
    if head in NAME_OVERRIDES:
        return NAME_OVERRIDES[head]
    named = _field_name(head, registry)
    if named:
        return named
    return format_basic_name(strip_id_suffix(head))


def fallback_header_map(entity_type: str) -> dict[str, str]:
    """Generated header -> key for every standard field of an entity type.

    Used when a header is missing from the saved header map, e.g. a grid
    written before preferences were saved.
    """
    keys = (
        *COMMON_STANDARD_FIELDS,
        *STANDARD_FIELDS.get(entity_type, ()),
        *DEFAULT_COLUMNS.get(entity_type, ()),
        *TIMESTAMP_FIELDS,
    )
    mapping: dict[str, str] = {}
    for key in keys:
        mapping.setdefault(format_column_name(key, entity_type), key)
        mapping.setdefault(key, key)
    return mapping
