"""Unit tests for availability: calendar window rules, time slot generation, multiple-dates pickers."""

from __future__ import annotations

import os
from datetime import date, datetime, timezone
from unittest.mock import patch

from src.booking_form.availability import (
    calendar_time_rows,
    eligible_dates,
    generate_time_slots,
    is_slot_offered,
    js_weekday,
    local_now,
    multiple_dates_time_options,
    parse_hhmm,
    week_grid,
    week_start,
)
from src.booking_form.normalizer import normalize_config

# Monday 2025-01-06 10:00 local
NOW = datetime(2025, 1, 6, 10, 0)


def _settings(**calendar):
    return normalize_config({"calendar_settings": calendar}).calendar_settings


def test_js_weekday_uses_sunday_zero():
    assert js_weekday(date(2025, 1, 5)) == 0
    assert js_weekday(date(2025, 1, 6)) == 1
    assert js_weekday(date(2025, 1, 11)) == 6


def test_sunday_closed_and_advance_window():
    s = _settings(advance_booking_days=7)
    assert is_slot_offered(s, date(2025, 1, 12), "10:00", NOW) is False  # Sunday
    assert is_slot_offered(s, date(2025, 1, 13), "10:00", NOW) is True  # today + 7, inclusive
    assert is_slot_offered(s, date(2025, 1, 14), "10:00", NOW) is False


def test_open_inclusive_close_exclusive():
    s = _settings()
    day = date(2025, 1, 7)
    assert is_slot_offered(s, day, "09:00", NOW) is True
    assert is_slot_offered(s, day, "17:30", NOW) is True
    assert is_slot_offered(s, day, "18:00", NOW) is False
    assert is_slot_offered(s, day, "08:30", NOW) is False


def test_past_and_current_slots_are_not_offered():
    s = _settings()
    assert is_slot_offered(s, date(2025, 1, 6), "09:30", NOW) is False
    assert is_slot_offered(s, date(2025, 1, 6), "10:00", NOW) is False
    assert is_slot_offered(s, date(2025, 1, 6), "10:30", NOW) is True


def test_live_check_only_consulted_after_window_rules():
    s = _settings()
    seen = []

    def check(day, t):
        seen.append((day, t))
        return t != "11:00"

    assert is_slot_offered(s, date(2025, 1, 7), "11:00", NOW, check) is False
    assert is_slot_offered(s, date(2025, 1, 7), "11:30", NOW, check) is True
    assert is_slot_offered(s, date(2025, 1, 12), "11:00", NOW, check) is False  # Sunday, never asked
    assert seen == [(date(2025, 1, 7), "11:00"), (date(2025, 1, 7), "11:30")]


def test_malformed_business_hours_offer_nothing():
    s = _settings(business_hours={"tuesday": {"open": "nine", "close": "18:00"}})
    assert is_slot_offered(s, date(2025, 1, 7), "10:00", NOW) is False
    assert is_slot_offered(s, date(2025, 1, 8), "10:00", NOW) is True


def test_generate_time_slots():
    assert generate_time_slots("09:00", "10:00", 30) == ["09:00", "09:30"]
    assert generate_time_slots("09:00", "10:00", 15) == ["09:00", "09:15", "09:30", "09:45"]
    assert generate_time_slots("10:00", "09:00", 30) == []
    assert generate_time_slots("bad", "10:00", 30) == []
    assert generate_time_slots("09:00", "10:00", 0) == []


def test_parse_hhmm_rejects_malformed():
    assert parse_hhmm("09:30") == 570
    assert parse_hhmm("24:00") is None
    assert parse_hhmm("9") is None
    assert parse_hhmm(None) is None


def test_calendar_rows_span_earliest_open_to_latest_close():
    s = _settings(business_hours={
        "monday": {"open": "10:00", "close": "12:00"},
        "tuesday": {"open": "11:00", "close": "13:00"},
        "wednesday": {"closed": True}, "thursday": {"closed": True}, "friday": {"closed": True},
        "saturday": {"closed": True}, "sunday": {"closed": True},
    })
    assert calendar_time_rows(s) == ["10:00", "10:30", "11:00", "11:30", "12:00", "12:30"]


def test_calendar_rows_fall_back_when_every_day_is_closed():
    closed = {k: {"closed": True} for k in ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")}
    rows = calendar_time_rows(_settings(business_hours=closed))
    assert rows[0] == "09:00"
    assert rows[-1] == "17:30"


def test_week_start_is_monday():
    assert week_start(date(2025, 1, 10)) == date(2025, 1, 6)
    assert week_start(date(2025, 1, 6)) == date(2025, 1, 6)
    assert week_start(date(2025, 1, 5)) == date(2024, 12, 30)


def test_week_grid_shape():
    s = _settings()
    grid = week_grid(s, date(2025, 1, 8), NOW)
    assert len(grid) == len(calendar_time_rows(s))
    assert all(len(row) == 7 for row in grid)
    assert grid[0][0].date_str == "2025-01-06"
    assert grid[0][6].offered is False  # Sunday
    assert grid[0][1].to_dict() == {"date": "2025-01-07", "time": "09:00", "offered": True}


def test_eligible_dates_skip_excluded_weekdays():
    s = _settings(booking_mode="multiple_dates", multiple_dates_settings={"date_range_days": 14})
    dates = eligible_dates(s, date(2025, 1, 6))
    assert len(dates) == 12
    assert dates[0] == date(2025, 1, 6)
    assert all(js_weekday(d) != 0 for d in dates)


def test_multiple_dates_time_options():
    s = _settings(multiple_dates_settings={"start_time": "10:00", "end_time": "12:00", "time_interval": 60})
    assert multiple_dates_time_options(s) == ["10:00", "11:00"]


def test_local_now_converts_to_store_timezone():
    with patch.dict(os.environ, {"TIMEZONE": "Asia/Tokyo"}):
        assert local_now(datetime(2025, 1, 6, 0, 0, tzinfo=timezone.utc)) == datetime(2025, 1, 6, 9, 0)
    assert local_now(NOW) == NOW
