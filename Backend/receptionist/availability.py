"""
Availability Manager

Per-business slot table, keyed by business-local date and duration bucket:

    {
        "2025-01-15": {
            "30": [["09:00", 2], ["10:00", 2]],
            "60": [["09:00", 2], ["10:00", 1]],
            ...
        }
    }

Each entry is [local start time, number of free providers]. An entry exists
only while its provider count is positive; a bucket with no free slots is
an empty list, never a missing key.

All functions here are pure: they return new slot tables and never mutate
their input. Reading, updating and writing the table back under a lock is
the caller's job (see ``receptionist.booking_service``).
"""

import copy
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

# Configured duration buckets, in minutes
DURATION_INTERVALS = (30, 45, 60, 90, 120, 150, 180, 240, 300, 360)
DEFAULT_DURATION_MINUTES = 60
SLOT_STEP_MINUTES = 60

WEEKDAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")

SlotTable = dict[str, dict[str, list]]


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass
class AvailableSlot:
    time: str
    provider_count: int

    def to_dict(self) -> dict:
        return {"time": self.time, "provider_count": self.provider_count}


@dataclass
class DayAvailability:
    """Outcome of a day lookup. Missing data is success=False, not an exception."""
    success: bool
    date: str
    available_slots: list[AvailableSlot] = field(default_factory=list)
    message: str = ""
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "date": self.date,
            "available_slots": [s.to_dict() for s in self.available_slots],
            "message": self.message,
            "error": self.error,
        }


@dataclass
class SlotCheck:
    available: bool
    provider_count: int = 0
    message: str = ""


# ============================================================================
# PROVIDER CALENDAR
# ============================================================================

@dataclass
class ProviderBooking:
    start_at: datetime
    end_at: datetime


@dataclass
class ProviderCalendar:
    """
    One provider's working week plus existing bookings.

    working_hours format:
        {"mon": {"start": "09:00", "end": "17:00"}, "tue": None, ...}
    Times are business-local.
    """
    id: str
    working_hours: dict[str, Optional[dict]] = field(default_factory=dict)
    bookings: list[ProviderBooking] = field(default_factory=list)


# ============================================================================
# HELPERS
# ============================================================================

def is_valid_date(date_str: str) -> bool:
    if not isinstance(date_str, str) or not _DATE_RE.match(date_str):
        return False
    try:
        date.fromisoformat(date_str)
    except ValueError:
        return False
    return True


def is_valid_time(time_str: str) -> bool:
    if not isinstance(time_str, str) or not _TIME_RE.match(time_str):
        return False
    hours, minutes = (int(p) for p in time_str.split(":"))
    return hours < 24 and minutes < 60


def find_best_duration_match(duration_minutes: Optional[int], default: int = DEFAULT_DURATION_MINUTES) -> str:
    """
    Bucket key for a service duration.

    Examples:
        find_best_duration_match(60) = "60"
        find_best_duration_match(100) = "120"
        find_best_duration_match(500) = "360"
        find_best_duration_match(None) = "60"
    """
    if not duration_minutes:
        return str(default)
    for minutes in DURATION_INTERVALS:
        if minutes >= duration_minutes:
            return str(minutes)
    return str(DURATION_INTERVALS[-1])


def periods_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap: [a_start, a_end) and [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _local_slot_start(date_str: str, time_str: str, tz: ZoneInfo) -> datetime:
    return datetime.combine(date.fromisoformat(date_str), time.fromisoformat(time_str), tzinfo=tz)


def _ordinal_suffix(day: int) -> str:
    if 11 <= day <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_date_for_display(date_str: str) -> str:
    """"2024-01-15" -> "Monday, 15th January"."""
    d = date.fromisoformat(date_str)
    return f"{d.strftime('%A')}, {d.day}{_ordinal_suffix(d.day)} {d.strftime('%B')}"


def format_time_for_display(time_str: str) -> str:
    """"10:30" -> "10:30 AM", "13:00" -> "1:00 PM", "00:15" -> "12:15 AM"."""
    hours, minutes = (int(p) for p in time_str.split(":"))
    suffix = "AM" if hours < 12 else "PM"
    return f"{hours % 12 or 12}:{minutes:02d} {suffix}"


def format_availability_message(date_str: str, slots: list[AvailableSlot]) -> str:
    display_date = format_date_for_display(date_str)

    if not slots:
        return f"Unfortunately, we're fully booked on {display_date}."
    if len(slots) == 1:
        return f"On {display_date}, I have {format_time_for_display(slots[0].time)} available."
    if len(slots) == 2:
        first, second = (format_time_for_display(s.time) for s in slots)
        return f"On {display_date}, I have {first} and {second} available."

    first = format_time_for_display(slots[0].time)
    last = format_time_for_display(slots[-1].time)
    return f"On {display_date}, I have availability from {first} to {last}."


# ============================================================================
# QUERIES
# ============================================================================

def check_day_availability(
    slots: SlotTable,
    date_str: str,
    service_duration_minutes: Optional[int] = None,
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> DayAvailability:
    """
    Free slots on a business-local date for the bucket matching the duration.

    Returns success=False for a malformed date or when the table has no
    entry for the date; a date whose bucket is empty is fully booked.
    """
    if not is_valid_date(date_str):
        return DayAvailability(success=False, date=date_str, error="Invalid date format")

    day = slots.get(date_str)
    if day is None:
        logger.info(f"No availability data for {date_str}")
        return DayAvailability(
            success=False,
            date=date_str,
            message=f"Sorry, I don't have any availability for {format_date_for_display(date_str)}.",
            error="No availability data",
        )

    duration_key = find_best_duration_match(service_duration_minutes, default_duration_minutes)
    entries = sorted(day.get(duration_key) or [], key=lambda entry: entry[0])
    available = [AvailableSlot(time=t, provider_count=count) for t, count in entries if count > 0]

    return DayAvailability(
        success=True,
        date=date_str,
        available_slots=available,
        message=format_availability_message(date_str, available),
    )


def is_slot_available(
    slots: SlotTable,
    date_str: str,
    time_str: str,
    duration_minutes: Optional[int] = None,
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> SlotCheck:
    """Whether time_str on date_str has a free provider for the duration's bucket."""
    if not is_valid_date(date_str):
        return SlotCheck(available=False, message="Invalid date format. Please use YYYY-MM-DD.")
    if not is_valid_time(time_str):
        return SlotCheck(available=False, message="Invalid time format. Please use HH:MM.")

    day = slots.get(date_str)
    if day is None:
        return SlotCheck(available=False, message=f"Sorry, {date_str} is fully booked. Please choose another date.")

    duration_key = find_best_duration_match(duration_minutes, default_duration_minutes)
    for slot_time, count in day.get(duration_key) or []:
        if slot_time == time_str and count > 0:
            return SlotCheck(available=True, provider_count=count)

    return SlotCheck(
        available=False,
        message=f"Sorry, {time_str} on {date_str} is no longer available. Please choose another time.",
    )


# ============================================================================
# UPDATE AFTER BOOKING
# ============================================================================

def _booking_local_dates(start_local: datetime, end_local: datetime) -> list[str]:
    dates = []
    current = start_local.date()
    while current <= end_local.date():
        dates.append(current.isoformat())
        current += timedelta(days=1)
    return dates


def update_availability_after_booking(slots: SlotTable, booking, time_zone: str) -> SlotTable:
    """
    New slot table with one provider removed from every slot the booking overlaps.

    Every duration bucket of every business-local date the booking spans is
    processed: a slot [start, start + bucket) that overlaps
    [booking.start_at, booking.end_at) loses one provider and is dropped when
    none remain. Other dates and non-overlapping slots are left as they are,
    except that stored entries with no providers are dropped.

    ``booking`` is anything with ``start_at``/``end_at`` datetimes.
    """
    tz = ZoneInfo(time_zone)
    booking_start = _as_utc(booking.start_at)
    booking_end = _as_utc(booking.end_at)

    updated = copy.deepcopy(slots)
    affected_dates = _booking_local_dates(booking_start.astimezone(tz), booking_end.astimezone(tz))

    for date_str in affected_dates:
        day = updated.get(date_str)
        if day is None:
            continue

        for duration_key, entries in day.items():
            bucket_minutes = int(duration_key)
            new_entries = []
            for slot_time, count in entries:
                slot_start = _local_slot_start(date_str, slot_time, tz).astimezone(timezone.utc)
                slot_end = slot_start + timedelta(minutes=bucket_minutes)

                if periods_overlap(slot_start, slot_end, booking_start, booking_end):
                    new_count = count - 1
                    logger.info(
                        f"Reducing providers for {duration_key}min slot at {date_str} {slot_time} "
                        f"from {count} to {new_count}"
                    )
                    if new_count > 0:
                        new_entries.append([slot_time, new_count])
                elif count > 0:
                    new_entries.append([slot_time, count])
            day[duration_key] = new_entries

    return updated


# ============================================================================
# GENERATION
# ============================================================================

def _provider_slots(
    provider: ProviderCalendar,
    day: date,
    duration_minutes: int,
    tz: ZoneInfo,
) -> list[str]:
    """Free slot start times for one provider on one day."""
    hours = provider.working_hours.get(WEEKDAY_KEYS[day.weekday()])
    if not hours:
        return []

    work_start = datetime.combine(day, time.fromisoformat(hours["start"]), tzinfo=tz)
    work_end = datetime.combine(day, time.fromisoformat(hours["end"]), tzinfo=tz)
    length = timedelta(minutes=duration_minutes)

    free = []
    slot_start = work_start
    while slot_start + length <= work_end:
        slot_end = slot_start + length
        booked = any(
            periods_overlap(slot_start, slot_end, _as_utc(b.start_at), _as_utc(b.end_at))
            for b in provider.bookings
        )
        if not booked:
            free.append(slot_start.strftime("%H:%M"))
        slot_start += timedelta(minutes=SLOT_STEP_MINUTES)
    return free


def compute_day_slots(providers: list[ProviderCalendar], day: date, time_zone: str) -> dict[str, list]:
    """Every duration bucket for one day, provider counts aggregated by start time."""
    tz = ZoneInfo(time_zone)
    day_slots: dict[str, list] = {}
    for minutes in DURATION_INTERVALS:
        counts: dict[str, int] = {}
        for provider in providers:
            for slot_time in _provider_slots(provider, day, minutes, tz):
                counts[slot_time] = counts.get(slot_time, 0) + 1
        day_slots[str(minutes)] = [[slot_time, counts[slot_time]] for slot_time in sorted(counts)]
    return day_slots


def generate_initial_business_availability(
    providers: list[ProviderCalendar],
    from_date: date,
    days: int,
    time_zone: str,
) -> SlotTable:
    """Slot table covering ``days`` business-local dates starting at from_date."""
    slots: SlotTable = {}
    for offset in range(days):
        day = from_date + timedelta(days=offset)
        slots[day.isoformat()] = compute_day_slots(providers, day, time_zone)
    logger.info(f"Generated availability for {days} days from {from_date.isoformat()} ({len(providers)} providers)")
    return slots


def rollover_availability(
    slots: SlotTable,
    providers: list[ProviderCalendar],
    today: date,
    days: int,
    time_zone: str,
) -> SlotTable:
    """
    Drop dates before ``today`` and generate any missing dates so the table
    covers ``days`` days starting today. Existing dates keep their counts.
    """
    today_key = today.isoformat()
    rolled = {date_str: copy.deepcopy(day) for date_str, day in slots.items() if date_str >= today_key}

    generated = 0
    for offset in range(days):
        day = today + timedelta(days=offset)
        if day.isoformat() not in rolled:
            rolled[day.isoformat()] = compute_day_slots(providers, day, time_zone)
            generated += 1

    logger.info(
        f"Availability rollover: dropped {len(slots) - (len(rolled) - generated)} past dates, "
        f"generated {generated} new dates"
    )
    return dict(sorted(rolled.items()))
