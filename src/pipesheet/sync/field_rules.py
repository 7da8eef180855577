"""Pure field classification tables: entity types, read-only rules, categories.

Everything here is a function of the key and entity type only. Nothing reads
record data or cached state, so the same inputs always classify the same way.
"""

from __future__ import annotations

import re

from ..api.fields import CUSTOM_FIELDS_PREFIX, HASH_KEY_RE
from ..errors import ConfigurationError

ENTITY_TYPES = ("deals", "persons", "organizations", "activities", "leads", "products")

ID_KEY = "id"

MAIN_CATEGORY = {
    "deals": "Deal Fields",
    "persons": "Contact Fields",
    "organizations": "Organization Fields",
    "activities": "Activity Fields",
    "leads": "Lead Fields",
    "products": "Product Fields",
}
CUSTOM_CATEGORY = "Custom Fields"
SYSTEM_CATEGORY = "System Fields"
STANDARD_CATEGORY = "Standard Fields"

COMMON_STANDARD_FIELDS = ("id", "owner_id", "add_time", "update_time", "visible_to", "label_ids")

STANDARD_FIELDS = {
    "deals": (
        "title", "person_id", "org_id", "pipeline_id", "stage_id", "value", "currency",
        "stage_change_time", "status", "probability", "lost_reason", "close_time",
        "won_time", "lost_time", "expected_close_date",
    ),
    "persons": ("name", "first_name", "last_name", "org_id", "email", "phone", "emails", "phones"),
    "organizations": ("name", "address"),
    "activities": (
        "subject", "type", "deal_id", "lead_id", "person_id", "org_id", "project_id",
        "due_date", "due_time", "duration", "busy", "done", "location", "participants",
        "attendees", "public_description", "priority", "note",
    ),
    "leads": (
        "title", "person_id", "organization_id", "is_archived", "value",
        "expected_close_date", "was_seen", "channel", "channel_id", "note",
    ),
    "products": (
        "name", "code", "description", "unit", "tax", "category", "is_linkable", "prices",
        "billing_frequency", "billing_frequency_cycles",
    ),
}

# Sort order after id: name/title, owner, entity essentials, then timestamps.
PRIORITY_FIELDS = {
    "deals": (
        "title", "owner_id", "value", "currency", "status", "pipeline_id", "stage_id",
        "person_id", "org_id", "expected_close_date", "probability",
    ),
    "persons": ("name", "first_name", "last_name", "owner_id", "email", "phone", "emails", "phones", "org_id"),
    "organizations": ("name", "owner_id", "address"),
    "activities": ("subject", "owner_id", "type", "due_date", "due_time", "duration", "done", "deal_id", "person_id", "org_id"),
    "leads": ("title", "owner_id", "value", "person_id", "organization_id", "expected_close_date"),
    "products": ("name", "owner_id", "code", "description", "unit", "tax", "prices"),
}
TIMESTAMP_FIELDS = ("add_time", "update_time", "created_at", "updated_at")

# Columns used when nothing is saved for a sheet.
DEFAULT_COLUMNS = {
    "deals": ("id", "title", "status", "value", "currency", "owner_id", "add_time", "update_time"),
    "persons": ("id", "name", "email", "phone", "owner_id", "org_id", "add_time", "update_time"),
    "organizations": ("id", "name", "address", "owner_id", "add_time", "update_time"),
    "activities": ("id", "subject", "type", "due_date", "duration", "deal_id", "person_id", "org_id", "note"),
    "leads": ("id", "title", "owner_id", "person_id", "organization_id", "add_time", "update_time"),
    "products": ("id", "name", "code", "description", "unit", "tax", "active_flag"),
}

# Minimal set used when a sample cannot be flattened at all.
FALLBACK_COLUMNS = {
    "deals": ("id", "title", "value", "status", "stage_id"),
    "persons": ("id", "name", "email", "phone"),
    "organizations": ("id", "name", "address"),
    "activities": ("id", "subject", "type", "due_date"),
    "leads": ("id", "title", "value"),
    "products": ("id", "name", "code"),
}

RELATION_LABELS = {
    "owner_id": "Owner",
    "org_id": "Organization",
    "organization_id": "Organization",
    "person_id": "Person",
    "deal_id": "Deal",
    "user_id": "User",
    "creator_user_id": "Creator",
}

CONTACT_FIELDS = ("email", "phone", "emails", "phones")
CONTACT_LABELS = ("work", "home", "mobile", "other")

ADDRESS_COMPONENTS = (
    "subpremise", "street_number", "route", "sublocality", "locality",
    "admin_area_level_1", "admin_area_level_2", "country", "postal_code",
)
ADDRESS_OWNERS = ("organizations", "persons")

# Keys the flattener never turns into columns.
SKIPPED_KEYS = frozenset({"im", "lm", "first_char", "label", "labels", "visible_from", "cc_email"})
SKIPPED_SUBKEYS = frozenset({"id", "timezone_id", "timezone", "currency", "formatted_address", "complete_address"})

# --------------------------------------------------------------------------
# Read-only rules
# --------------------------------------------------------------------------

ALWAYS_EDITABLE = frozenset({"name", "first_name", "last_name", "label_ids"})

CROSS_ENTITY_PREFIXES = (
    ("org.", "organizations"),
    ("org_", "organizations"),
    ("organization.", "organizations"),
    ("person.", "persons"),
    ("deal.", "deals"),
    ("activity.", "activities"),
    ("product.", "products"),
    ("lead.", "leads"),
)

SERVER_COMPUTED = frozenset({
    # identifiers / audit
    "id", "creator_user_id", "user_id", "creator_id", "owner_id", "is_deleted",
    "cc_email", "origin", "origin_id", "source_name", "company_id",
    # timestamps
    "add_time", "update_time", "stage_change_time", "lost_time", "close_time", "won_time",
    "local_won_date", "local_lost_date", "local_close_date", "marked_as_done_time",
    "last_activity_date", "next_activity_time", "next_activity_date", "rotten_time",
    "last_incoming_mail_time", "last_outgoing_mail_time", "archive_time",
    "created_at", "updated_at",
    # computed values
    "formatted_value", "weighted_value", "formatted_weighted_value",
    "weighted_value_currency", "first_char",
})

ENTITY_READ_ONLY = {
    "deals": frozenset({
        "stage_order_nr", "person_name", "org_name", "next_activity_id", "last_activity_id",
        "next_activity_type", "next_activity_duration", "next_activity_note", "acv", "arr", "mrr",
    }),
    "persons": frozenset({"owner_name", "org_name", "has_pic", "pic_hash", "next_activity_id", "last_activity_id"}),
    "organizations": frozenset({"owner_name", "has_pic", "pic_hash", "next_activity_id", "last_activity_id"}),
    "leads": frozenset({"was_seen", "next_activity_id"}),
    "products": frozenset({"first_char", "active_flag", "selectable"}),
    "activities": frozenset({"assigned_to_user_id", "conference_meeting_client", "conference_meeting_url", "conference_meeting_id"}),
}

READ_ONLY_PATTERNS = tuple(
    re.compile(p)
    for p in (
        r"_name$", r"_email$", r"\.name$", r"\.email$", r"^cc_", r"_count$",
        r"_flag$", r"_hash$", r"has_pic", r"^formatted_(?!address)", r"\.id$",
    )
)

OWNER_PREFIXES = ("user.", "creator.", "owner.", "user_id.", "creator_user_id.", "owner_id.")


def custom_field_hash(key: str) -> str | None:
    """Return the custom field hash a column key refers to, if any."""
    if key.startswith(CUSTOM_FIELDS_PREFIX):
        key = key[len(CUSTOM_FIELDS_PREFIX):]
    match = HASH_KEY_RE.match(key.split(".", 1)[0])
    return match.group(1) if match else None


def is_custom_field(key: str) -> bool:
    return custom_field_hash(key) is not None


def payload_path(key: str) -> str:
    """Column key -> write path; custom fields always go under custom_fields."""
    if key.startswith(CUSTOM_FIELDS_PREFIX) or not is_custom_field(key):
        return key
    return CUSTOM_FIELDS_PREFIX + key


def is_address_component(key: str) -> bool:
    if key.startswith(CUSTOM_FIELDS_PREFIX):
        key = key[len(CUSTOM_FIELDS_PREFIX):]
    parts = key.split(".")
    if len(parts) >= 2 and parts[-1] in ADDRESS_COMPONENTS:
        parent = parts[-2]
        return "address" in parent or HASH_KEY_RE.match(parent) is not None
    match = HASH_KEY_RE.match(parts[0])
    return bool(len(parts) == 1 and match and match.group(2) in ADDRESS_COMPONENTS)


def is_read_only_field(key: str, entity_type: str) -> bool:
    """Whether a column is display-only for an entity type.

    Used both for rendering and to decide which cells a push may send.
    """
    if not key:
        return True
    if key in ALWAYS_EDITABLE:
        return False

    for prefix, owner in CROSS_ENTITY_PREFIXES:
        if key.startswith(prefix) and entity_type != owner:
            return True

    if key.startswith("address.") or is_address_component(key):
        return entity_type not in ADDRESS_OWNERS

    if key.startswith(OWNER_PREFIXES):
        return True

    if key in SERVER_COMPUTED or key in ENTITY_READ_ONLY.get(entity_type, ()):
        return True

    return any(pattern.search(key) for pattern in READ_ONLY_PATTERNS)


# --------------------------------------------------------------------------
# Categories
# --------------------------------------------------------------------------

SYSTEM_MARKERS = (
    "_count", "_flag", "_char", "_hash", "cc_email", "visible_", "hidden", "formatted_",
    "weighted_", "rotten_", "last_", "next_activity", "first_won", "stage_order", "company_id",
)
SYSTEM_EXACT = frozenset({"active", "deleted", "is_deleted", "origin", "origin_id", "source_name"})


def main_category(entity_type: str) -> str:
    return MAIN_CATEGORY.get(entity_type, STANDARD_CATEGORY)


def category_for(key: str, entity_type: str) -> str:
    """Custom, system or main category for a top-level key."""
    if is_custom_field(key):
        return CUSTOM_CATEGORY
    head = key.split(".", 1)[0]
    if head in COMMON_STANDARD_FIELDS or head in STANDARD_FIELDS.get(entity_type, ()):
        return main_category(entity_type)
    if head in SYSTEM_EXACT or any(marker in head for marker in SYSTEM_MARKERS):
        return SYSTEM_CATEGORY
    return main_category(entity_type)


def category_rank(category: str) -> int:
    if category == CUSTOM_CATEGORY:
        return 1
    if category == SYSTEM_CATEGORY:
        return 2
    return 0


def normalize_entity_type(entity_type: str | None) -> str:
    value = (entity_type or "").strip().lower()
    if value not in ENTITY_TYPES:
        raise ConfigurationError(
            f"Unknown entity type {entity_type!r}. Choose one of: {', '.join(ENTITY_TYPES)}"
        )
    return value
