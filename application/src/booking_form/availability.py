"""Which date/time slots a form offers: calendar window rules and multiple-dates pickers."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Callable
from zoneinfo import ZoneInfo

from .models import CalendarSettings

DEFAULT_TZ = "Asia/Tokyo"
CALENDAR_STEP_MINUTES = 30
FALLBACK_ROW_START = "09:00"
FALLBACK_ROW_END = "18:00"

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")

# (day, "HH:MM") -> bookable? Supplied by the live availability source.
BookableCheck = Callable[[date, str], bool]


def _tz() -> ZoneInfo:
    try:
        return ZoneInfo(os.environ.get("TIMEZONE", DEFAULT_TZ))
    except Exception:
        return ZoneInfo(DEFAULT_TZ)


def local_now(now: datetime | None = None) -> datetime:
    """Current wall-clock time in the store's timezone, as a naive datetime."""
    dt = now or datetime.now(_tz())
    if dt.tzinfo is not None:
        dt = dt.astimezone(_tz()).replace(tzinfo=None)
    return dt


def parse_hhmm(value: Any) -> int | None:
    """'HH:MM' -> minutes since midnight. Malformed input gives None."""
    if not isinstance(value, str):
        return None
    m = _HHMM.match(value.strip())
    if not m:
        return None
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def js_weekday(day: date) -> int:
    """0=Sunday .. 6=Saturday (the weekday numbering used in stored configs)."""
    return (day.weekday() + 1) % 7


def is_slot_offered(
    settings: CalendarSettings,
    day: date,
    slot_time: str,
    now: datetime | None = None,
    is_bookable: BookableCheck | None = None,
) -> bool:
    """
    Calendar mode: is (day, slot_time) selectable?

    Offered iff the day is within the advance window (inclusive, day granularity), the
    weekday is open, open <= time < close, and the slot is still in the future. The live
    availability check only runs for slots that pass the window rules.
    """
    current = local_now(now)
    today = current.date()
    if day > today + timedelta(days=settings.advance_booking_days):
        return False

    hours = settings.hours_for_weekday(js_weekday(day))
    if hours.closed:
        return False

    minutes = parse_hhmm(slot_time)
    open_at = parse_hhmm(hours.open)
    close_at = parse_hhmm(hours.close)
    if minutes is None or open_at is None or close_at is None:
        return False
    if not (open_at <= minutes < close_at):
        return False

    if datetime.combine(day, time(minutes // 60, minutes % 60)) <= current:
        return False

    if is_bookable is not None:
        return bool(is_bookable(day, slot_time))
    return True


def week_start(day: date) -> date:
    """Monday of day's week."""
    return day - timedelta(days=day.weekday())


def week_dates(start: date) -> list[date]:
    return [start + timedelta(days=i) for i in range(7)]


def generate_time_slots(start: Any, end: Any, interval: Any) -> list[str]:
    """start, start+interval, ... strictly before end. Malformed input gives []."""
    start_min = parse_hhmm(start)
    end_min = parse_hhmm(end)
    if start_min is None or end_min is None:
        return []
    if not isinstance(interval, int) or isinstance(interval, bool) or interval <= 0:
        return []
    return [format_hhmm(m) for m in range(start_min, end_min, interval)]


def calendar_time_rows(settings: CalendarSettings) -> list[str]:
    """Rows of the calendar grid: earliest open to latest close over open days, 30-minute steps."""
    opens: list[int] = []
    closes: list[int] = []
    for hours in settings.business_hours.values():
        if hours.closed:
            continue
        open_at = parse_hhmm(hours.open)
        close_at = parse_hhmm(hours.close)
        if open_at is None or close_at is None or close_at <= open_at:
            continue
        opens.append(open_at)
        closes.append(close_at)
    if not opens:
        return generate_time_slots(FALLBACK_ROW_START, FALLBACK_ROW_END, CALENDAR_STEP_MINUTES)
    return generate_time_slots(format_hhmm(min(opens)), format_hhmm(max(closes)), CALENDAR_STEP_MINUTES)


def eligible_dates(settings: CalendarSettings, today: date | None = None) -> list[date]:
    """Multiple-dates mode: today + i for i < date_range_days, skipping excluded weekdays."""
    mds = settings.multiple_dates_settings
    start = today or local_now().date()
    excluded = set(mds.exclude_weekdays)
    out: list[date] = []
    for i in range(max(mds.date_range_days, 0)):
        d = start + timedelta(days=i)
        if js_weekday(d) not in excluded:
            out.append(d)
    return out


def multiple_dates_time_options(settings: CalendarSettings) -> list[str]:
    mds = settings.multiple_dates_settings
    return generate_time_slots(mds.start_time, mds.end_time, mds.time_interval)


@dataclass
class CalendarCell:
    """One (day, time) cell of the weekly calendar grid."""
    date_str: str  # YYYY-MM-DD
    time: str  # HH:MM
    offered: bool

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date_str, "time": self.time, "offered": self.offered}


def week_grid(
    settings: CalendarSettings,
    start: date,
    now: datetime | None = None,
    is_bookable: BookableCheck | None = None,
) -> list[list[CalendarCell]]:
    """Rows (one per time) of seven cells starting at the Monday of start's week."""
    days = week_dates(week_start(start))
    current = local_now(now)
    return [
        [
            CalendarCell(
                date_str=d.isoformat(),
                time=row,
                offered=is_slot_offered(settings, d, row, current, is_bookable),
            )
            for d in days
        ]
        for row in calendar_time_rows(settings)
    ]
