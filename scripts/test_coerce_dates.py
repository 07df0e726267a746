#!/usr/bin/env python3
"""
Tests for value coercion helpers and schedule date resolution
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

from zoneinfo import ZoneInfo

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from scorefeed.coerce import (as_number_or_null, extract_value_by_path, first_number,
                              first_text, parse_datetime, text_value, to_utc_iso)
from scorefeed.dates import local_date_parts, resolve_target_date


def test_as_number_or_null():
    assert as_number_or_null(3) == 3
    assert as_number_or_null("12") == 12
    assert as_number_or_null(" 3.5 ") == 3.5
    assert as_number_or_null("7 SOG") == 7
    assert as_number_or_null(4.0) == 4
    assert as_number_or_null(0) == 0
    assert as_number_or_null(None) is None
    assert as_number_or_null("") is None
    assert as_number_or_null("abc") is None
    assert as_number_or_null(True) is None
    assert as_number_or_null(float("nan")) is None
    assert as_number_or_null(float("inf")) is None
    assert as_number_or_null({"value": 3}) is None


def test_text_value_prefers_locale_keys():
    assert text_value({"fr": "Les Canadiens", "default": "Canadiens"}) == "Canadiens"
    assert text_value({"en": "Bruins"}) == "Bruins"
    assert text_value({"cs": "Bruins CZ"}) == "Bruins CZ"
    assert text_value([None, "", {"en": " Leafs "}]) == "Leafs"
    assert text_value({"default": "", "nested": {"name": "Kraken"}}) == "Kraken"
    assert text_value(None) == ""
    assert text_value(12) == "12"


def test_extract_value_by_path():
    data = {"a": {"b": [{"c": 1}, {"c": 2}]}}
    assert extract_value_by_path(data, "a.b[1].c") == 2
    assert extract_value_by_path(data, "a.b[5].c") is None
    assert extract_value_by_path(data, "a.x") is None
    assert extract_value_by_path(data, "") is data


def test_first_number_keeps_zero_and_reports_absence():
    team = {"sog": 0, "shots": 5}
    assert first_number(team, ["shotsOnGoal", "sog", "shots"]) == 0
    assert first_number({"shots": "31"}, ["shotsOnGoal", "shots"]) == 31
    assert first_number({}, ["shotsOnGoal", "sog"]) is None
    assert first_number({"sog": "n/a"}, ["sog"]) is None


def test_first_text_with_callable_extractor():
    data = {"team": {"name": {"default": "Oilers"}}}
    assert first_text(data, [lambda d: None, "team.name"]) == "Oilers"
    assert first_text(data, ["team.missing"]) == ""


def test_parse_datetime_variants():
    assert to_utc_iso(parse_datetime("2024-01-10T23:00:00Z")) == "2024-01-10T23:00:00Z"
    assert to_utc_iso(parse_datetime("2026-02-14T20:10Z")) == "2026-02-14T20:10:00Z"
    assert to_utc_iso(parse_datetime("2024-01-10T18:00:00-05:00")) == "2024-01-10T23:00:00Z"
    assert to_utc_iso(parse_datetime("2024-01-10")) == "2024-01-10T00:00:00Z"
    assert parse_datetime("TBD") is None
    assert parse_datetime(None) is None
    assert to_utc_iso(None) == ""


def test_target_date_rolls_back_before_cutoff():
    for tz_name in ("America/Chicago", "America/New_York", "Europe/Helsinki",
                    "Asia/Tokyo", "Australia/Sydney", "UTC"):
        zone = ZoneInfo(tz_name)

        early = resolve_target_date(tz_name, datetime(2024, 3, 15, 9, 29, tzinfo=zone))
        assert early.date_iso == "2024-03-14", tz_name
        assert early.date_compact == "20240314"

        on_time = resolve_target_date(tz_name, datetime(2024, 3, 15, 9, 30, tzinfo=zone))
        assert on_time.date_iso == "2024-03-15", tz_name
        assert on_time.date_compact == "20240315"


def test_target_date_uses_local_calendar_date():
    # 03:00 UTC is still the previous evening in Chicago
    now = datetime(2024, 1, 11, 3, 0, tzinfo=timezone.utc)
    assert resolve_target_date("America/Chicago", now).date_iso == "2024-01-10"
    assert resolve_target_date("America/Chicago", now, use_previous_day_early=False).date_iso == "2024-01-10"

    # 15:00 UTC is 09:00 in Chicago: before the cutoff
    morning = datetime(2024, 1, 11, 15, 0, tzinfo=timezone.utc)
    assert resolve_target_date("America/Chicago", morning).date_iso == "2024-01-10"
    assert resolve_target_date("America/Chicago", morning, use_previous_day_early=False).date_iso == "2024-01-11"


def test_local_date_parts_weekday_is_sunday_based():
    sunday = datetime(2024, 10, 13, 12, 5, tzinfo=ZoneInfo("America/Chicago"))
    parts = local_date_parts("America/Chicago", sunday)
    assert parts.day_of_week == 0
    assert parts.minutes == 12 * 60 + 5
    assert parts.date_iso == "2024-10-13"
