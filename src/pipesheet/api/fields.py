"""Field definitions: a tagged field-type registry and its per-operation cache."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from .client import PipedriveClient, PipedriveError

logger = logging.getLogger(__name__)

CUSTOM_FIELDS_PREFIX = "custom_fields."
HASH_KEY_RE = re.compile(r"^([a-f0-9]{20,})(?:_([a-z0-9_]+))?$")


class FieldKind(Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    MONEY = "money"
    ADDRESS = "address"
    DATE_RANGE = "date_range"
    TIME_RANGE = "time_range"
    CONTACT_ARRAY = "contact_array"
    OPTION = "option"
    MULTI_OPTION = "multi_option"
    RELATION = "relation"


# Pipedrive ``field_type`` -> kind
FIELD_TYPE_KINDS = {
    "varchar": FieldKind.TEXT,
    "varchar_auto": FieldKind.TEXT,
    "varchar_options": FieldKind.TEXT,
    "text": FieldKind.TEXT,
    "phone": FieldKind.TEXT,
    "double": FieldKind.NUMBER,
    "int": FieldKind.NUMBER,
    "monetary": FieldKind.MONEY,
    "date": FieldKind.DATE,
    "time": FieldKind.TIME,
    "daterange": FieldKind.DATE_RANGE,
    "timerange": FieldKind.TIME_RANGE,
    "enum": FieldKind.OPTION,
    "visible_to": FieldKind.OPTION,
    "status": FieldKind.OPTION,
    "set": FieldKind.MULTI_OPTION,
    "address": FieldKind.ADDRESS,
    "user": FieldKind.RELATION,
    "org": FieldKind.RELATION,
    "people": FieldKind.RELATION,
    "stage": FieldKind.RELATION,
    "boolean": FieldKind.BOOLEAN,
}


@dataclass
class FieldDefinition:
    key: str
    name: str
    kind: FieldKind = FieldKind.TEXT
    options: dict[str, str] = field(default_factory=dict)  # option id -> label

    @classmethod
    def from_api(cls, data: dict) -> FieldDefinition:
        options = {}
        for option in data.get("options") or []:
            if isinstance(option, dict) and option.get("id") is not None:
                options[str(option["id"])] = str(option.get("label", ""))
        return cls(
            key=str(data.get("key", "")),
            name=str(data.get("name") or data.get("key", "")),
            kind=FIELD_TYPE_KINDS.get(data.get("field_type", ""), FieldKind.TEXT),
            options=options,
        )


def base_field_key(key: str) -> str:
    """Strip the custom_fields namespace and any sub-path from a column key.

    ``custom_fields.<hash>.amount`` and ``<hash>_until`` both resolve to
    ``<hash>``; ``owner_id.name`` resolves to ``owner_id``.
    """
    if key.startswith(CUSTOM_FIELDS_PREFIX):
        key = key[len(CUSTOM_FIELDS_PREFIX):]
    head = key.split(".", 1)[0]
    match = HASH_KEY_RE.match(head)
    if match:
        return match.group(1)
    return head


class FieldRegistry:
    """Lookup of field kind, name and options by column key."""

    def __init__(self, definitions: list[FieldDefinition] | None = None):
        self._by_key = {d.key: d for d in definitions or [] if d.key}

    @classmethod
    def from_definitions(cls, raw: list[dict]) -> FieldRegistry:
        return cls([FieldDefinition.from_api(item) for item in raw])

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._by_key)

    def get(self, key: str) -> FieldDefinition | None:
        if key in self._by_key:
            return self._by_key[key]
        return self._by_key.get(base_field_key(key))

    def kind_for(self, key: str) -> FieldKind | None:
        definition = self.get(key)
        return definition.kind if definition else None

    def name_for(self, key: str) -> str | None:
        definition = self.get(key)
        return definition.name if definition else None

    def option_label(self, key: str, option_id) -> str | None:
        definition = self.get(key)
        if not definition:
            return None
        return definition.options.get(str(option_id))

    def option_id(self, key: str, label: str) -> int | str | None:
        """Case-insensitive label -> option id lookup."""
        definition = self.get(key)
        if not definition:
            return None
        wanted = label.strip().lower()
        for option_id, option_label in definition.options.items():
            if option_label.strip().lower() == wanted:
                return int(option_id) if option_id.isdigit() else option_id
        return None

    def has_options(self, key: str) -> bool:
        definition = self.get(key)
        return bool(definition and definition.options)


class FieldDefinitionCache:
    """Read-through cache of field registries per entity type.

    Cleared at the start of every pull and push; entries never outlive one
    operation.
    """

    def __init__(self, client: PipedriveClient):
        self._client = client
        self._registries: dict[str, FieldRegistry] = {}

    def clear(self) -> None:
        self._registries.clear()

    async def registry(self, entity_type: str) -> FieldRegistry:
        if entity_type not in self._registries:
            try:
                raw = await self._client.list_fields(entity_type)
            except PipedriveError as e:
                logger.warning("Field definitions for %s unavailable: %s", entity_type, e.message)
                raw = []
            self._registries[entity_type] = FieldRegistry.from_definitions(raw)
        return self._registries[entity_type]
