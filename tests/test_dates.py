"""Tests for the dates module."""

from datetime import datetime, timezone

import pytest

from cleaninbox.dates import diff_days, format_date_short, is_older_than_days, parse_date
from conftest import NOW


def test_parse_iso_with_z():
    assert parse_date("2025-06-09T14:23:30Z") == datetime(2025, 6, 9, 14, 23, 30, tzinfo=timezone.utc)


def test_parse_rfc2822():
    parsed = parse_date("Mon, 09 Jun 2025 16:23:30 +0200")
    assert parsed == datetime(2025, 6, 9, 14, 23, 30, tzinfo=timezone.utc)


def test_parse_epoch_milliseconds():
    assert parse_date(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert parse_date(1_000) == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)


def test_naive_datetime_becomes_utc():
    assert parse_date(datetime(2025, 1, 1)).tzinfo == timezone.utc


@pytest.mark.parametrize("value", ["", "yesterday-ish", True, None])
def test_parse_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_date(value)


def test_diff_days_is_absolute():
    assert diff_days("2025-06-01", "2025-06-11") == 10
    assert diff_days("2025-06-11", "2025-06-01") == 10
    assert diff_days("2025-06-01T00:00:00Z", "2025-06-01T23:00:00Z") == 0


def test_is_older_than_days():
    assert is_older_than_days("2025-05-01T12:00:00Z", 30, now=NOW) is True
    assert is_older_than_days("2025-06-01T12:00:00Z", 30, now=NOW) is False


def test_format_date_short():
    assert format_date_short("2025-06-09T23:30:00-02:00") == "2025-06-10"
