"""Value transforms between remote payloads and grid cells.

Encoding (grid -> remote) depends on how a column classifies: option fields
turn labels into ids, date and time fields are normalised to ``YYYY-MM-DD``
and ``HH:MM:SS``, money amounts become numbers. Anything else passes through
unchanged. Decoding (remote -> grid) renders ids as labels and composite
objects as readable text.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, time, timedelta

from ..api.fields import FieldKind, FieldRegistry
from ..errors import ValueEncodingError
from .field_rules import CONTACT_FIELDS
from .paths import is_contact_array, is_money, primary_item

logger = logging.getLogger(__name__)

# Day zero of spreadsheet serial dates.
SERIAL_EPOCH = date(1899, 12, 30)

ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?(?:\.\d+)?\s*([AaPp]\.?[Mm]\.?)?$")
AMOUNT_RE = re.compile(r"^\s*([-+]?[\d.,\s]+?)\s*([A-Za-z]{3})?\s*$")

DATE_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%d.%m.%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
)

BOOLEAN_KEYS = frozenset({"busy", "done", "active_flag", "is_archived", "was_seen", "is_linkable", "selectable", "deleted"})
TRUE_WORDS = frozenset({"yes", "true", "1", "y", "x"})
FALSE_WORDS = frozenset({"no", "false", "0", "n", ""})

RANGE_KINDS = {FieldKind.DATE_RANGE: FieldKind.DATE, FieldKind.TIME_RANGE: FieldKind.TIME}

# Whole underscore-separated words only: "due_date" but not "update_time".
DATE_KEY_RE = re.compile(r"(?:^|[_.])(?:date|deadline|birthday)(?:[_.]|$)", re.IGNORECASE)


def is_date_key(key: str) -> bool:
    return DATE_KEY_RE.search(key) is not None


def encode_date(value) -> str:
    """Grid date value -> ``YYYY-MM-DD``."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (SERIAL_EPOCH + timedelta(days=int(value))).isoformat()

    text = str(value).strip()
    if not text:
        raise ValueEncodingError("empty date", value=value)
    if ISO_DATE_RE.match(text):
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError as e:
            raise ValueEncodingError(f"invalid date {text!r}", value=value) from e
    if "T" in text and ISO_DATE_RE.match(text.split("T", 1)[0]):
        return encode_date(text.split("T", 1)[0])
    if TIME_RE.match(text):
        raise ValueEncodingError(f"time {text!r} given for a date field", value=value)

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    raise ValueEncodingError(f"unrecognised date {text!r}", value=value)


def encode_time(value) -> str:
    """Grid time value -> ``HH:MM:SS`` (24-hour)."""
    if isinstance(value, datetime):
        return value.strftime("%H:%M:%S")
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Spreadsheet times are fractions of a day.
        if 0 <= value < 1:
            seconds = min(round(value * 86400), 86399)
            return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}:{seconds % 60:02d}"
        raise ValueEncodingError(f"unrecognised time {value!r}", value=value)

    text = str(value).strip()
    if "T" in text:
        text = re.split(r"[Zz+]|-(?=\d{2}:?\d{2}$)", text.split("T", 1)[1])[0]

    match = TIME_RE.match(text)
    if not match:
        raise ValueEncodingError(f"unrecognised time {value!r}", value=value)
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    meridiem = (match.group(4) or "").replace(".", "").lower()
    if meridiem == "pm" and hours < 12:
        hours += 12
    elif meridiem == "am" and hours == 12:
        hours = 0
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValueEncodingError(f"time out of range {value!r}", value=value)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def parse_amount(value) -> tuple[int | float, str | None]:
    """``"1,234.50 EUR"`` -> ``(1234.5, "EUR")``."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value, None
    match = AMOUNT_RE.match(str(value))
    if not match:
        raise ValueEncodingError(f"unrecognised amount {value!r}", value=value)
    number = match.group(1).replace(",", "").replace(" ", "")
    try:
        amount = float(number)
    except ValueError as e:
        raise ValueEncodingError(f"unrecognised amount {value!r}", value=value) from e
    currency = match.group(2).upper() if match.group(2) else None
    return (int(amount) if amount.is_integer() else amount), currency


def _number_text(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ValueCodec:
    """Encode/decode cell values for one entity type.

    Usage:
        codec = ValueCodec(registry)
        cell = codec.decode("label_ids", [3, 5])          # "Hot, VIP"
        ids = codec.encode("label_ids", "Hot, vip")       # [3, 5]
    """

    def __init__(self, registry: FieldRegistry | None = None):
        self.registry = registry or FieldRegistry()

    def classify(self, key: str) -> FieldKind:
        kind = self.registry.kind_for(key)
        last = key.rsplit(".", 1)[-1]

        if last == "amount" and "." in key:
            return FieldKind.NUMBER
        if kind in RANGE_KINDS:
            return RANGE_KINDS[kind]
        if kind is FieldKind.ADDRESS and "." in key.removeprefix("custom_fields."):
            return FieldKind.TEXT
        if kind is not None:
            return kind

        if key == "label_ids":
            return FieldKind.MULTI_OPTION
        if key in CONTACT_FIELDS:
            return FieldKind.CONTACT_ARRAY
        if last in BOOLEAN_KEYS:
            return FieldKind.BOOLEAN
        if last in ("due_time", "duration"):
            return FieldKind.TIME
        if is_date_key(last):
            return FieldKind.DATE
        if last.endswith("_time") or last.endswith("_at"):
            return FieldKind.DATETIME
        return FieldKind.TEXT

    # ------------------------------------------------------------------
    # grid -> remote
    # ------------------------------------------------------------------

    def encode(self, key: str, value):
        """Convert a grid cell for the remote API.

        Raises ValueEncodingError when the value cannot be converted; the
        caller skips that field.
        """
        kind = self.classify(key)

        if kind is FieldKind.MULTI_OPTION:
            return self._encode_options(key, value)
        if kind is FieldKind.OPTION and self.registry.has_options(key):
            return self._encode_option(key, value)
        if kind is FieldKind.DATE:
            return encode_date(value)
        if kind is FieldKind.TIME:
            return encode_time(value)
        if kind is FieldKind.NUMBER and key.endswith(".amount"):
            return parse_amount(value)[0]
        if kind is FieldKind.MONEY:
            amount, currency = parse_amount(value)
            if currency:
                return {"value": amount, "currency": currency}
            return amount
        if kind is FieldKind.BOOLEAN and isinstance(value, str):
            word = value.strip().lower()
            if word in TRUE_WORDS:
                return True
            if word in FALSE_WORDS:
                return False
        return value

    def _labels(self, value) -> list[str]:
        if isinstance(value, (list, tuple)):
            return [str(v).strip() for v in value if str(v).strip()]
        return [part.strip() for part in str(value).split(",") if part.strip()]

    def _resolve(self, key: str, label: str):
        option_id = self.registry.option_id(key, label)
        if option_id is not None:
            return option_id
        if not self.registry.has_options(key):
            # No option list known (e.g. lead label UUIDs): keep ids as typed.
            return int(label) if label.isdigit() else label
        if label.isdigit() and self.registry.option_label(key, label) is not None:
            return int(label)
        return None

    def _encode_options(self, key: str, value) -> list:
        labels = self._labels(value)
        ids = []
        for label in labels:
            option_id = self._resolve(key, label)
            if option_id is None:
                logger.warning("Dropping unknown option %r for %s", label, key)
                continue
            if option_id not in ids:
                ids.append(option_id)
        if labels and not ids:
            raise ValueEncodingError(f"no known options in {value!r}", key=key, value=value)
        return ids

    def _encode_option(self, key: str, value):
        option_id = self._resolve(key, str(value).strip())
        if option_id is None:
            raise ValueEncodingError(f"unknown option {value!r}", key=key, value=value)
        return option_id

    # ------------------------------------------------------------------
    # remote -> grid
    # ------------------------------------------------------------------

    def decode(self, key: str, value):
        """Convert a remote value into something a grid cell can show."""
        if value is None:
            return ""
        if isinstance(value, bool):
            return "Yes" if value else "No"

        kind = self.classify(key)

        if isinstance(value, dict):
            return self._decode_object(key, value)
        if isinstance(value, list):
            return self._decode_list(key, kind, value)

        if kind in (FieldKind.OPTION, FieldKind.MULTI_OPTION) and self.registry.has_options(key):
            return self._option_labels(key, str(value).split(","))
        if kind is FieldKind.DATE and isinstance(value, str):
            head = value.split("T", 1)[0].split(" ", 1)[0]
            return head if ISO_DATE_RE.match(head) else value
        if isinstance(value, float):
            return int(value) if value.is_integer() else value
        return value

    def _option_labels(self, key: str, ids) -> str:
        labels = []
        for option_id in ids:
            text = str(option_id).strip()
            if not text:
                continue
            labels.append(self.registry.option_label(key, text) or text)
        return ", ".join(labels)

    def _decode_object(self, key: str, value: dict):
        if is_money(value):
            amount = value.get("value", value.get("amount"))
            return f"{_number_text(amount)} {value.get('currency') or ''}".strip()
        if "until" in value:
            return f"{value.get('value') or ''} - {value.get('until') or ''}".strip(" -")
        if "start" in value and "end" in value:
            return f"{value.get('start') or ''} - {value.get('end') or ''}".strip(" -")
        if "formatted_address" in value:
            return value.get("formatted_address") or value.get("value") or ""
        for attr in ("label", "name", "value", "title", "subject"):
            if value.get(attr) not in (None, ""):
                return value[attr]
        return json.dumps(value, sort_keys=True)

    def _decode_list(self, key: str, kind: FieldKind, value: list):
        if not value:
            return ""
        if is_contact_array(value):
            item = primary_item(value)
            return item.get("value") or "" if item else ""
        if all(isinstance(item, dict) for item in value):
            if any("price" in item for item in value):
                return "; ".join(self._price_text(item) for item in value)
            if any("person_id" in item for item in value):
                return ",".join(str(item["person_id"]) for item in value if item.get("person_id") is not None)
            return ", ".join(str(self._decode_object(key, item)) for item in value)
        if kind in (FieldKind.OPTION, FieldKind.MULTI_OPTION):
            return self._option_labels(key, value)
        return ", ".join(str(item) for item in value)

    @staticmethod
    def _price_text(item: dict) -> str:
        text = f"{_number_text(item.get('price', ''))} {item.get('currency') or ''}".strip()
        if item.get("cost") not in (None, "", 0):
            text += f" (cost: {_number_text(item['cost'])})"
        return text

    # ------------------------------------------------------------------

    @staticmethod
    def complete_ranges(encoded: dict, known_keys: set[str]) -> None:
        """Fill the missing side of a start/end pair with the given side."""
        for key, value in list(encoded.items()):
            if key.endswith("_until"):
                partner = key[: -len("_until")]
            else:
                partner = key + "_until"
            if partner not in encoded and partner in known_keys:
                encoded[partner] = value
