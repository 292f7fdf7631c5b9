from datetime import datetime, timedelta, timezone
import re

import pytest

from backoffice.core.timestamps import (
    add_timestamps,
    format_duration,
    format_timestamp,
    get_current_timestamp,
    get_relative_time,
    get_time_ago,
    is_recent,
    parse_timestamp,
    to_iso,
)

NOW = datetime(2025, 1, 10, 12, 0, 0, tzinfo=timezone.utc)


def ago(**delta):
    return to_iso(NOW - timedelta(**delta))


def test_current_timestamp_format():
    assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$", get_current_timestamp())


def test_add_timestamps_on_create():
    record = {"name": "Sales"}
    stamped = add_timestamps(record)

    assert stamped["createdAt"] == stamped["updatedAt"] == stamped["lastModified"]
    assert "createdAt" not in record


def test_add_timestamps_on_update_keeps_created_at():
    record = {"name": "Sales", "createdAt": "2024-01-01T00:00:00.000Z"}
    stamped = add_timestamps(record, is_update=True)

    assert stamped["createdAt"] == "2024-01-01T00:00:00.000Z"
    assert stamped["updatedAt"] == stamped["lastModified"]
    assert stamped["updatedAt"] > stamped["createdAt"]


@pytest.mark.parametrize("delta, expected", [
    (timedelta(seconds=30), "moments ago"),
    (timedelta(minutes=5), "5 minutes ago"),
    (timedelta(hours=3), "3 hours ago"),
    (timedelta(days=2), "2 days ago"),
    (timedelta(days=14), "2 weeks ago"),
    (timedelta(days=60), "2 months ago"),
    (timedelta(days=800), "2 years ago"),
])
def test_relative_time_buckets(delta, expected):
    assert get_relative_time(to_iso(NOW - delta), locale="en-US", now=NOW) == expected


def test_relative_time_thai_and_unknown_locale():
    assert get_relative_time(ago(minutes=5), locale="th-TH", now=NOW) == "5 นาทีที่แล้ว"
    assert get_relative_time(ago(hours=2), locale="fr-FR", now=NOW) == "2 hours ago"


def test_time_ago_uses_default_locale():
    assert get_time_ago(ago(seconds=10), now=NOW) == "moments ago"


def test_is_recent():
    assert is_recent(ago(hours=23), now=NOW)
    assert not is_recent(ago(hours=25), now=NOW)


def test_format_duration():
    start = "2025-01-01T00:00:00.000Z"
    assert format_duration(start, "2025-01-01T00:00:45.000Z", locale="en") == "45 seconds"
    assert format_duration(start, "2025-01-01T01:30:00.000Z", locale="en") == "1 hours"
    assert format_duration(start, "2025-01-04T05:00:00.000Z", locale="en") == "3 days"


def test_format_timestamp():
    value = "2025-10-16T09:30:00.000Z"
    assert format_timestamp(value, locale="en") == "16 Oct 2025, 09:30"
    assert format_timestamp(value, include_time=False, locale="th") == "16 ต.ค. 2568"
    assert format_timestamp(ago(minutes=5), use_relative=True, locale="en", now=NOW) == "5 minutes ago"


def test_parse_timestamp():
    assert parse_timestamp("2025-01-01T00:00:00").tzinfo is not None
    assert parse_timestamp("2025-01-01T00:00:00.000Z") == datetime(2025, 1, 1, tzinfo=timezone.utc)
    with pytest.raises(TypeError):
        parse_timestamp(12345)
