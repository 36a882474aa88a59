"""
Raw record -> `CanonicalEvent` mapping.

Producers never agreed on a schema, so each canonical field is resolved
by an ordered list of rules tried in sequence; the first rule returning
a value wins. Rules are total: they return None instead of raising, so
one odd record can never abort a batch read.

Field names are looked up in their document spelling (`deviceType`),
their SQL spelling (`device_type`) and the lowercase form Postgres gives
unquoted identifiers (`devicetype`).
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from models import CanonicalEvent


# Fixed string format of `date` when stored as text, e.g. "2025-03-01T14:05:09".
DATE_STRING_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Columns that may hold the whole document as JSON (document-shaped tables).
DOCUMENT_COLUMNS = ("doc", "payload")

ID_FIELDS = ("_id", "id")

TEXT_FIELDS: Dict[str, Tuple[str, ...]] = {
    "url": ("url",),
    "device_type": ("deviceType", "device_type", "devicetype"),
    "event_type": ("eventType", "event_type", "eventtype"),
    "user_agent": ("userAgent", "user_agent", "useragent"),
    "referrer": ("referrer",),
    "language": ("language",),
    "page_title": ("pageTitle", "page_title", "pagetitle"),
}

INT_FIELDS: Dict[str, Tuple[str, ...]] = {
    "screen_width": ("screenWidth", "screen_width", "screenwidth"),
    "screen_height": ("screenHeight", "screen_height", "screenheight"),
    "load_time": ("loadTime", "load_time", "loadtime"),
}

Record = Mapping[str, Any]
TimestampRule = Callable[[Record, datetime], Optional[datetime]]


def flatten(raw: Record) -> Dict[str, Any]:
    """Merge an embedded JSON document into the row.

    Row columns win over document keys unless the column is NULL.
    """

    out: Dict[str, Any] = dict(raw)
    for column in DOCUMENT_COLUMNS:
        nested = raw.get(column)
        if isinstance(nested, dict):
            for key, value in nested.items():
                if out.get(key) is None:
                    out[key] = value
    return out


def _as_utc(value: datetime) -> datetime:
    # Naive values from `timestamp without time zone` columns are taken as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _native(field: str) -> TimestampRule:
    def rule(raw: Record, now: datetime) -> Optional[datetime]:
        value = raw.get(field)
        if isinstance(value, datetime):
            return _as_utc(value)
        return None

    rule.__name__ = f"native_{field}"
    return rule


def _date_string(raw: Record, now: datetime) -> Optional[datetime]:
    value = raw.get("date")
    if not isinstance(value, str):
        return None
    try:
        return _as_utc(datetime.strptime(value, DATE_STRING_FORMAT))
    except ValueError:
        # A present but unreadable date still counts as "recorded now".
        return now


TIMESTAMP_RULES: Sequence[TimestampRule] = (
    _native("date"),
    _native("timestamp"),
    _date_string,
)


def first_match(rules: Sequence[TimestampRule], raw: Record, now: datetime) -> Optional[datetime]:
    for rule in rules:
        value = rule(raw, now)
        if value is not None:
            return value
    return None


def _text(raw: Record, names: Sequence[str]) -> Optional[str]:
    for name in names:
        value = raw.get(name)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _integer(raw: Record, names: Sequence[str]) -> Optional[int]:
    for name in names:
        value = raw.get(name)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _identifier(raw: Record) -> Optional[str]:
    for name in ID_FIELDS:
        value = raw.get(name)
        if value is None or isinstance(value, bool):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def to_canonical(raw: Record, now: Optional[datetime] = None) -> Optional[CanonicalEvent]:
    """Map one raw record, or return None when it lacks an id or url."""

    now = now or datetime.now(timezone.utc)
    record = flatten(raw)

    event_id = _identifier(record)
    url = _text(record, TEXT_FIELDS["url"])
    if event_id is None or url is None:
        return None

    fields: Dict[str, Any] = {
        name: _text(record, names) for name, names in TEXT_FIELDS.items() if name != "url"
    }
    fields.update({name: _integer(record, names) for name, names in INT_FIELDS.items()})

    return CanonicalEvent(
        id=event_id,
        url=url,
        timestamp=first_match(TIMESTAMP_RULES, record, now),
        **fields,
    )
