"""Read and write values at dotted paths inside nested records.

Conventions when a path meets something other than a plain object:

* a key present literally on the record (``address.locality`` stored flat)
  is read directly;
* ``email.work`` / ``phone.mobile`` pick the item with that label, then the
  primary item, then the first; ``email.0`` picks by position;
* any other segment on an array of objects descends into the primary (or
  first) item;
* ``<hash>_until`` and ``<hash>_<component>`` read that member of a
  composite custom value, and ``amount`` reads a money object's ``value``;
* ``custom_fields.<hash>`` falls back to a root-level ``<hash>`` key.

Contact arrays at the end of a path collapse to their primary value, so a
read never hands back a raw contact array.
"""

from __future__ import annotations

from typing import Any

from ..api.fields import CUSTOM_FIELDS_PREFIX, HASH_KEY_RE
from .field_rules import CONTACT_FIELDS


def is_money(value) -> bool:
    return isinstance(value, dict) and "currency" in value and ("value" in value or "amount" in value)


def is_contact_array(value) -> bool:
    return (
        isinstance(value, list)
        and bool(value)
        and all(isinstance(item, dict) and "value" in item for item in value)
    )


def primary_item(items: list):
    """Primary item of a contact-style array, else the first."""
    for item in items:
        if isinstance(item, dict) and item.get("primary"):
            return item
    return items[0] if items else None


def labelled_item(items: list, label: str):
    wanted = label.lower()
    for item in items:
        if isinstance(item, dict) and str(item.get("label") or "").lower() == wanted:
            return item
    return None


def _step(current, segment: str):
    if isinstance(current, dict):
        if segment in current:
            return current[segment]
        if segment == "amount" and is_money(current):
            return current.get("value")
        match = HASH_KEY_RE.match(segment)
        if match and match.group(2) and match.group(1) in current:
            base = current[match.group(1)]
            return base.get(match.group(2)) if isinstance(base, dict) else None
        return None

    if isinstance(current, list):
        if segment.isdigit():
            index = int(segment)
            return current[index] if index < len(current) else None
        if is_contact_array(current):
            if segment == "primary":
                item = primary_item(current)
            else:
                item = labelled_item(current, segment)
            if item is not None:
                return item.get("value")
            if segment not in ("value", "label"):
                return None
        first = primary_item(current)
        return _step(first, segment) if first is not None else None

    return None


def _descend(current, segments: list[str]):
    for segment in segments:
        if current is None:
            return None
        current = _step(current, segment)
    if is_contact_array(current):
        item = primary_item(current)
        return item.get("value") if item else None
    return current


def get_value(record: dict, path: str) -> Any:
    """Value at ``path`` or None when any segment is absent."""
    if not isinstance(record, dict) or not path:
        return None

    if path in record:
        return _descend(record[path], [])

    if path.startswith(CUSTOM_FIELDS_PREFIX):
        segments = path[len(CUSTOM_FIELDS_PREFIX):].split(".")
        custom = record.get("custom_fields")
        if isinstance(custom, dict):
            found = _descend(custom, segments)
            if found is not None:
                return found
        return _descend(record, segments)

    return _descend(record, path.split("."))


def contact_items(value) -> list[dict]:
    """Copy a contact value as a list of ``{value, primary, label}`` items.

    Used to start an update from the record's current array so that items
    which are not edited keep their values, labels and primary flag.
    """
    if isinstance(value, str):
        return [{"value": value, "primary": True}] if value else []
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        if isinstance(item, dict) and "value" in item:
            entry = {"value": item["value"], "primary": bool(item.get("primary"))}
            if item.get("label"):
                entry["label"] = item["label"]
            items.append(entry)
        elif isinstance(item, str):
            items.append({"value": item, "primary": not items})
    return items


def _set_contact(target: dict, field: str, label: str, value) -> None:
    items = target.get(field)
    if isinstance(items, str):
        items = [{"value": items, "primary": True}]
    elif not isinstance(items, list):
        items = []

    existing = primary_item(items) if label == "primary" else labelled_item(items, label)
    if existing is not None:
        existing["value"] = value
    else:
        entry = {"value": value, "primary": not items}
        if label != "primary":
            entry["label"] = label
        items.append(entry)
    target[field] = items


def set_value(payload: dict, path: str, value) -> None:
    """Write ``value`` at ``path``, creating intermediate objects.

    Paths under ``custom_fields.`` land in the payload's ``custom_fields``
    object; everything else lands at the root. Inside custom fields an
    ``amount`` segment is written as the money object's ``value``.
    """
    target = payload
    in_custom = path.startswith(CUSTOM_FIELDS_PREFIX)
    if in_custom:
        target = payload.setdefault("custom_fields", {})
        path = path[len(CUSTOM_FIELDS_PREFIX):]

    segments = path.split(".")
    if len(segments) == 2 and segments[0] in CONTACT_FIELDS and not segments[1].isdigit():
        _set_contact(target, segments[0], segments[1], value)
        return
    if len(segments) == 1 and path in CONTACT_FIELDS and isinstance(target.get(path), list) and not isinstance(value, list):
        _set_contact(target, path, "primary", value)
        return

    for segment in segments[:-1]:
        child = target.get(segment)
        if not isinstance(child, dict):
            child = {}
            target[segment] = child
        target = child

    last = segments[-1]
    if in_custom and last == "amount" and len(segments) > 1:
        last = "value"
    target[last] = value
