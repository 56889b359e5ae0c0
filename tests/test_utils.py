from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from sparkbytes.catalog import CAMPUS_CENTER
from sparkbytes.utils import (
    attendee_label,
    email_in_domain,
    format_coordinates,
    format_time,
    format_time_range,
    normalize_email,
    parse_coordinates,
    to_naive_utc,
)


def test_parse_coordinates_reads_point_string():
    assert parse_coordinates("(-71.1097,42.3505)") == (-71.1097, 42.3505)
    assert parse_coordinates("( -71.10311 , 42.34991 )") == (-71.10311, 42.34991)


def test_parse_coordinates_falls_back_to_campus_center():
    assert parse_coordinates(None) == CAMPUS_CENTER
    assert parse_coordinates("") == CAMPUS_CENTER
    assert parse_coordinates("(1.0)") == CAMPUS_CENTER
    assert parse_coordinates("(a,b)") == CAMPUS_CENTER
    assert parse_coordinates("(1,2,3)") == CAMPUS_CENTER
    assert parse_coordinates("(nan,1)") == CAMPUS_CENTER


def test_parse_coordinates_uses_custom_default():
    assert parse_coordinates("garbage", default=(0.0, 0.0)) == (0.0, 0.0)


def test_format_coordinates_matches_parser():
    coords = (-71.10311, 42.34991)
    assert format_coordinates(coords) == "(-71.10311, 42.34991)"
    assert parse_coordinates(format_coordinates(coords)) == coords


def test_format_time_uses_twelve_hour_clock():
    assert format_time(datetime(2024, 4, 1, 0, 5)) == "12:05 AM"
    assert format_time(datetime(2024, 4, 1, 15, 30)) == "3:30 PM"
    assert format_time(datetime(2024, 4, 1, 12, 0)) == "12:00 PM"


def test_format_time_converts_naive_utc_to_display_zone():
    value = datetime(2024, 1, 15, 17, 0)
    assert format_time(value, tz=ZoneInfo("America/New_York")) == "12:00 PM"


def test_format_time_range():
    start = datetime(2024, 4, 1, 11, 0)
    end = datetime(2024, 4, 1, 13, 15)
    assert format_time_range(start, end) == "11:00 AM - 1:15 PM"
    assert format_time_range(start, None) == "11:00 AM"
    assert format_time_range(None, end) == ""


def test_to_naive_utc():
    aware = datetime(2024, 4, 1, 8, 0, tzinfo=ZoneInfo("America/New_York"))
    assert to_naive_utc(aware) == datetime(2024, 4, 1, 12, 0)
    naive = datetime(2024, 4, 1, 8, 0)
    assert to_naive_utc(naive) is naive
    assert to_naive_utc(datetime(2024, 4, 1, tzinfo=UTC)).tzinfo is None
    assert to_naive_utc(None) is None


def test_email_helpers():
    assert normalize_email("  Terrier@BU.edu ") == "terrier@bu.edu"
    assert email_in_domain("terrier@bu.edu", "bu.edu")
    assert email_in_domain("Terrier@BU.EDU", "@bu.edu")
    assert not email_in_domain("terrier@gmail.com", "bu.edu")
    assert not email_in_domain("@bu.edu", "bu.edu")
    assert not email_in_domain("terrier@notbu.edu", "bu.edu")


def test_attendee_label_pluralizes():
    assert attendee_label(0) == "0 people attending"
    assert attendee_label(1) == "1 person attending"
    assert attendee_label(3) == "3 people attending"
