"""
Timestamp helpers shared by the entity store and the reporting endpoints.

All stored timestamps are ISO-8601 UTC strings with millisecond precision and
a trailing ``Z`` (``2025-01-01T00:00:00.000Z``), so they sort lexicographically.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from backoffice.core.config import settings

TimestampLike = Union[str, datetime]

# Relative-time phrases per language. Months are approximated as 30 days and
# years as 365 days.
_RELATIVE_PHRASES = {
    "en": {
        "now": "moments ago",
        "minutes": "{n} minutes ago",
        "hours": "{n} hours ago",
        "days": "{n} days ago",
        "weeks": "{n} weeks ago",
        "months": "{n} months ago",
        "years": "{n} years ago",
    },
    "th": {
        "now": "เมื่อสักครู่",
        "minutes": "{n} นาทีที่แล้ว",
        "hours": "{n} ชั่วโมงที่แล้ว",
        "days": "{n} วันที่แล้ว",
        "weeks": "{n} สัปดาห์ที่แล้ว",
        "months": "{n} เดือนที่แล้ว",
        "years": "{n} ปีที่แล้ว",
    },
}

_DURATION_UNITS = {
    "en": {"seconds": "{n} seconds", "minutes": "{n} minutes", "hours": "{n} hours", "days": "{n} days"},
    "th": {"seconds": "{n} วินาที", "minutes": "{n} นาที", "hours": "{n} ชั่วโมง", "days": "{n} วัน"},
}

_MONTHS_SHORT = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
_THAI_MONTHS_SHORT = ["ม.ค.", "ก.พ.", "มี.ค.", "เม.ย.", "พ.ค.", "มิ.ย.", "ก.ค.", "ส.ค.", "ก.ย.", "ต.ค.", "พ.ย.", "ธ.ค."]


def _language(locale: Optional[str]) -> str:
    lang = (locale or settings.DEFAULT_LOCALE).split("-")[0].split("_")[0].lower()
    return lang if lang in _RELATIVE_PHRASES else "en"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: TimestampLike) -> datetime:
    """Parse an ISO string (``Z`` suffix allowed) or pass a datetime through.

    Naive values are taken to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def get_current_timestamp() -> str:
    return to_iso(_utcnow())


def add_timestamps(record: Dict[str, Any], is_update: bool = False) -> Dict[str, Any]:
    """
    Return a shallow copy of ``record`` with timestamps stamped.
    On create all of createdAt/updatedAt/lastModified share one instant; on
    update createdAt is left as it was.
    """
    now = get_current_timestamp()
    if is_update:
        return {**record, "updatedAt": now, "lastModified": now}
    return {**record, "createdAt": now, "updatedAt": now, "lastModified": now}


def get_relative_time(date: TimestampLike, locale: Optional[str] = None, now: Optional[datetime] = None) -> str:
    phrases = _RELATIVE_PHRASES[_language(locale)]
    now = now or _utcnow()
    diff_seconds = math.floor((now - parse_timestamp(date)).total_seconds())

    if diff_seconds < 60:
        return phrases["now"]

    minutes = diff_seconds // 60
    if minutes < 60:
        return phrases["minutes"].format(n=minutes)

    hours = minutes // 60
    if hours < 24:
        return phrases["hours"].format(n=hours)

    days = hours // 24
    if days < 7:
        return phrases["days"].format(n=days)

    weeks = days // 7
    if weeks < 4:
        return phrases["weeks"].format(n=weeks)

    months = days // 30
    if months < 12:
        return phrases["months"].format(n=months)

    return phrases["years"].format(n=days // 365)


def get_time_ago(timestamp: TimestampLike, now: Optional[datetime] = None) -> str:
    return get_relative_time(timestamp, now=now)


def is_recent(timestamp: TimestampLike, now: Optional[datetime] = None) -> bool:
    now = now or _utcnow()
    diff_hours = (now - parse_timestamp(timestamp)).total_seconds() / 3600
    return diff_hours < 24


def format_duration(start: TimestampLike, end: Optional[TimestampLike] = None, locale: Optional[str] = None) -> str:
    units = _DURATION_UNITS[_language(locale)]
    end_dt = parse_timestamp(end) if end is not None else _utcnow()
    seconds = math.floor((end_dt - parse_timestamp(start)).total_seconds())

    if seconds < 60:
        return units["seconds"].format(n=seconds)
    minutes = seconds // 60
    if minutes < 60:
        return units["minutes"].format(n=minutes)
    hours = minutes // 60
    if hours < 24:
        return units["hours"].format(n=hours)
    return units["days"].format(n=hours // 24)


def format_timestamp(
    timestamp: TimestampLike,
    include_time: bool = True,
    use_relative: bool = False,
    locale: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Display format, e.g. ``16 Oct 2025, 09:30`` (Thai: Buddhist-era year)."""
    if use_relative:
        return get_relative_time(timestamp, locale, now=now)

    value = parse_timestamp(timestamp)
    if _language(locale) == "th":
        text = f"{value.day} {_THAI_MONTHS_SHORT[value.month - 1]} {value.year + 543}"
    else:
        text = f"{value.day} {_MONTHS_SHORT[value.month - 1]} {value.year}"
    if include_time:
        text += f", {value.hour:02d}:{value.minute:02d}"
    return text
