"""
Tests for the availability manager.

Run with: pytest tests/test_availability.py -v
"""

import copy
from datetime import date, datetime, timezone

import pytest

from receptionist.availability import (
    DURATION_INTERVALS,
    AvailableSlot,
    ProviderBooking,
    ProviderCalendar,
    check_day_availability,
    compute_day_slots,
    find_best_duration_match,
    format_availability_message,
    format_date_for_display,
    format_time_for_display,
    generate_initial_business_availability,
    is_slot_available,
    is_valid_date,
    is_valid_time,
    rollover_availability,
    update_availability_after_booking,
)

DAY = "2025-01-15"
OTHER_DAY = "2025-01-16"


def utc(day: str, hhmm: str) -> datetime:
    return datetime.fromisoformat(f"{day}T{hhmm}:00").replace(tzinfo=timezone.utc)


def booking(day: str, start: str, end: str) -> ProviderBooking:
    return ProviderBooking(start_at=utc(day, start), end_at=utc(day, end))


def bucket(slots, day: str, duration: str) -> dict[str, int]:
    return {slot_time: count for slot_time, count in slots[day][duration]}


def two_provider_day() -> dict:
    return {
        "30": [["07:00", 2], ["09:30", 2], ["10:00", 2], ["10:30", 2], ["11:30", 2], ["12:00", 2], ["16:00", 2]],
        "60": [["07:00", 2], ["09:00", 2], ["10:00", 2], ["11:00", 2], ["12:00", 2], ["16:00", 2]],
        "90": [["07:00", 2], ["09:00", 2], ["10:00", 2], ["11:30", 2], ["16:00", 2]],
        "120": [["07:00", 2], ["08:00", 2], ["10:00", 2], ["12:00", 2], ["16:00", 2]],
    }


# ============================================================================
# UPDATE AFTER BOOKING
# ============================================================================

class TestUpdateAfterBooking:
    def test_single_provider_slot_is_removed(self):
        slots = {DAY: {"60": [["13:00", 1], ["14:00", 1], ["15:00", 1]]}}

        updated = update_availability_after_booking(slots, booking(DAY, "14:00", "15:00"), "UTC")

        assert bucket(updated, DAY, "60") == {"13:00": 1, "15:00": 1}

    def test_two_providers_booked_one_at_a_time(self):
        slots = {DAY: {"60": [["10:00", 2]]}}

        once = update_availability_after_booking(slots, booking(DAY, "10:00", "11:00"), "UTC")
        twice = update_availability_after_booking(once, booking(DAY, "10:00", "11:00"), "UTC")

        assert once[DAY]["60"] == [["10:00", 1]]
        assert twice[DAY]["60"] == []

    def test_cross_bucket_consistency(self):
        """A 10:00-12:00 booking reduces every overlapping slot in every bucket by one."""
        slots = {DAY: two_provider_day()}

        updated = update_availability_after_booking(slots, booking(DAY, "10:00", "12:00"), "UTC")

        assert bucket(updated, DAY, "30") == {
            "07:00": 2, "09:30": 2, "10:00": 1, "10:30": 1, "11:30": 1, "12:00": 2, "16:00": 2,
        }
        assert bucket(updated, DAY, "60") == {
            "07:00": 2, "09:00": 2, "10:00": 1, "11:00": 1, "12:00": 2, "16:00": 2,
        }
        assert bucket(updated, DAY, "90") == {"07:00": 2, "09:00": 1, "10:00": 1, "11:30": 1, "16:00": 2}
        assert bucket(updated, DAY, "120") == {"07:00": 2, "08:00": 2, "10:00": 1, "12:00": 2, "16:00": 2}

    def test_removal_invariant(self):
        slots = {DAY: {key: [[t, 1] for t, _ in entries] for key, entries in two_provider_day().items()}}

        updated = update_availability_after_booking(slots, booking(DAY, "09:00", "13:00"), "UTC")

        for entries in updated[DAY].values():
            assert all(count > 0 for _, count in entries)
        assert "10:00" not in bucket(updated, DAY, "60")
        assert bucket(updated, DAY, "60")["16:00"] == 1

    def test_stored_zero_count_entries_are_dropped(self):
        slots = {DAY: {"60": [["09:00", 0], ["14:00", 1], ["16:00", 1]]}}

        updated = update_availability_after_booking(slots, booking(DAY, "14:00", "15:00"), "UTC")

        assert updated[DAY]["60"] == [["16:00", 1]]

    def test_slot_length_is_elapsed_time_across_dst_change(self):
        # Melbourne clocks go back at 03:00 on 2025-04-06: a 120 minute slot at
        # 01:00 local runs 14:00-16:00 UTC, not until 03:00 local (17:00 UTC)
        slots = {"2025-04-06": {"120": [["01:00", 1]]}}
        after_slot = ProviderBooking(
            start_at=datetime(2025, 4, 5, 16, 0, tzinfo=timezone.utc),
            end_at=datetime(2025, 4, 5, 17, 0, tzinfo=timezone.utc),
        )
        inside_slot = ProviderBooking(
            start_at=datetime(2025, 4, 5, 15, 0, tzinfo=timezone.utc),
            end_at=datetime(2025, 4, 5, 16, 0, tzinfo=timezone.utc),
        )

        assert update_availability_after_booking(slots, after_slot, "Australia/Melbourne") == slots
        updated = update_availability_after_booking(slots, inside_slot, "Australia/Melbourne")
        assert updated["2025-04-06"]["120"] == []

    def test_day_isolation(self):
        slots = {DAY: two_provider_day(), OTHER_DAY: two_provider_day()}

        updated = update_availability_after_booking(slots, booking(DAY, "10:00", "12:00"), "UTC")

        assert updated[OTHER_DAY] == two_provider_day()

    def test_full_exhaustion_leaves_empty_bucket(self):
        slots = {DAY: {"60": [["09:00", 1], ["10:00", 1]]}}

        updated = update_availability_after_booking(slots, booking(DAY, "09:00", "10:00"), "UTC")
        updated = update_availability_after_booking(updated, booking(DAY, "10:00", "11:00"), "UTC")

        assert DAY in updated
        assert updated[DAY]["60"] == []

    def test_input_is_not_mutated(self):
        slots = {DAY: two_provider_day()}
        original = copy.deepcopy(slots)

        update_availability_after_booking(slots, booking(DAY, "10:00", "12:00"), "UTC")

        assert slots == original

    def test_adjacent_slots_do_not_overlap(self):
        slots = {DAY: {"60": [["09:00", 1], ["11:00", 1]]}}

        updated = update_availability_after_booking(slots, booking(DAY, "10:00", "11:00"), "UTC")

        assert bucket(updated, DAY, "60") == {"09:00": 1, "11:00": 1}

    def test_booking_times_are_converted_to_business_time(self):
        # 23:00 UTC on the 14th is 10:00 on the 15th in Melbourne (UTC+11 in January)
        slots = {DAY: {"60": [["09:00", 1], ["10:00", 1], ["11:00", 1]]}}
        melbourne_booking = booking("2025-01-14", "23:00", "23:59")

        updated = update_availability_after_booking(slots, melbourne_booking, "Australia/Melbourne")

        assert bucket(updated, DAY, "60") == {"09:00": 1, "11:00": 1}

    def test_booking_spanning_midnight_updates_both_days(self):
        slots = {
            DAY: {"60": [["22:00", 1], ["23:00", 1]]},
            OTHER_DAY: {"60": [["00:00", 1], ["01:00", 1], ["02:00", 1]]},
        }
        overnight = ProviderBooking(start_at=utc(DAY, "23:00"), end_at=utc(OTHER_DAY, "02:00"))

        updated = update_availability_after_booking(slots, overnight, "UTC")

        assert bucket(updated, DAY, "60") == {"22:00": 1}
        assert bucket(updated, OTHER_DAY, "60") == {"02:00": 1}

    def test_naive_datetimes_are_utc(self):
        slots = {DAY: {"60": [["10:00", 1]]}}
        naive = ProviderBooking(start_at=datetime(2025, 1, 15, 10, 0), end_at=datetime(2025, 1, 15, 11, 0))

        updated = update_availability_after_booking(slots, naive, "UTC")

        assert updated[DAY]["60"] == []

    def test_unknown_date_is_ignored(self):
        slots = {OTHER_DAY: {"60": [["10:00", 1]]}}

        updated = update_availability_after_booking(slots, booking(DAY, "10:00", "11:00"), "UTC")

        assert updated == slots


# ============================================================================
# QUERIES
# ============================================================================

class TestCheckDayAvailability:
    SLOTS = {
        "2024-01-15": {
            "60": [["11:00", 1], ["10:00", 2]],
            "120": [["09:00", 1], ["10:00", 1], ["11:00", 1]],
        },
        "2024-01-16": {"60": [], "120": []},
    }

    def test_two_slots_message(self):
        result = check_day_availability(self.SLOTS, "2024-01-15", 60)

        assert result.success is True
        assert [s.time for s in result.available_slots] == ["10:00", "11:00"]
        assert result.message == "On Monday, 15th January, I have 10:00 AM and 11:00 AM available."

    def test_duration_selects_bucket(self):
        result = check_day_availability(self.SLOTS, "2024-01-15", 100)

        assert len(result.available_slots) == 3
        assert result.message == "On Monday, 15th January, I have availability from 9:00 AM to 11:00 AM."

    def test_no_duration_uses_default_bucket(self):
        result = check_day_availability(self.SLOTS, "2024-01-15")
        assert [s.provider_count for s in result.available_slots] == [2, 1]

    def test_configured_default_bucket(self):
        result = check_day_availability(self.SLOTS, "2024-01-15", None, default_duration_minutes=120)
        assert len(result.available_slots) == 3

    def test_fully_booked(self):
        result = check_day_availability(self.SLOTS, "2024-01-16", 60)

        assert result.success is True
        assert result.available_slots == []
        assert result.message == "Unfortunately, we're fully booked on Tuesday, 16th January."

    def test_missing_date(self):
        result = check_day_availability(self.SLOTS, "2024-02-01", 60)

        assert result.success is False
        assert result.error == "No availability data"

    def test_invalid_date(self):
        result = check_day_availability(self.SLOTS, "15/01/2024", 60)

        assert result.success is False
        assert result.error == "Invalid date format"


class TestIsSlotAvailable:
    SLOTS = {DAY: {"60": [["10:00", 1]], "120": []}}

    def test_available(self):
        check = is_slot_available(self.SLOTS, DAY, "10:00", 60)
        assert check.available is True
        assert check.provider_count == 1

    def test_taken_for_longer_duration(self):
        assert is_slot_available(self.SLOTS, DAY, "10:00", 120).available is False

    def test_invalid_time(self):
        check = is_slot_available(self.SLOTS, DAY, "25:00", 60)
        assert check.available is False
        assert "HH:MM" in check.message

    def test_unknown_date(self):
        assert is_slot_available(self.SLOTS, OTHER_DAY, "10:00", 60).available is False

    def test_no_duration_uses_configured_default_bucket(self):
        assert is_slot_available(self.SLOTS, DAY, "10:00").available is True
        assert is_slot_available(self.SLOTS, DAY, "10:00", default_duration_minutes=120).available is False


# ============================================================================
# HELPERS
# ============================================================================

class TestHelpers:
    @pytest.mark.parametrize(
        "duration, expected",
        [(None, "60"), (0, "60"), (30, "30"), (31, "45"), (60, "60"), (100, "120"), (360, "360"), (500, "360")],
    )
    def test_find_best_duration_match(self, duration, expected):
        assert find_best_duration_match(duration) == expected

    def test_date_and_time_validation(self):
        assert is_valid_date("2025-01-15") is True
        assert is_valid_date("2025-02-30") is False
        assert is_valid_date("2025-1-5") is False
        assert is_valid_time("09:30") is True
        assert is_valid_time("9:30") is False
        assert is_valid_time("24:00") is False

    def test_display_formats(self):
        assert format_date_for_display("2024-01-01") == "Monday, 1st January"
        assert format_date_for_display("2024-01-22") == "Monday, 22nd January"
        assert format_date_for_display("2024-01-13") == "Saturday, 13th January"
        assert format_time_for_display("00:15") == "12:15 AM"
        assert format_time_for_display("12:00") == "12:00 PM"
        assert format_time_for_display("13:30") == "1:30 PM"

    def test_single_slot_message(self):
        message = format_availability_message("2024-01-15", [AvailableSlot("14:00", 1)])

        assert message == "On Monday, 15th January, I have 2:00 PM available."


# ============================================================================
# GENERATION
# ============================================================================

MONDAY = date(2024, 1, 15)


def weekday_provider(provider_id: str, bookings=None) -> ProviderCalendar:
    return ProviderCalendar(
        id=provider_id,
        working_hours={"mon": {"start": "09:00", "end": "12:00"}, "tue": None},
        bookings=bookings or [],
    )


class TestGeneration:
    def test_single_provider_day(self):
        day = compute_day_slots([weekday_provider("a")], MONDAY, "UTC")

        assert set(day) == {str(minutes) for minutes in DURATION_INTERVALS}
        assert day["60"] == [["09:00", 1], ["10:00", 1], ["11:00", 1]]
        assert day["120"] == [["09:00", 1], ["10:00", 1]]
        assert day["180"] == [["09:00", 1]]
        assert day["240"] == []

    def test_counts_aggregate_across_providers(self):
        day = compute_day_slots([weekday_provider("a"), weekday_provider("b")], MONDAY, "UTC")
        assert day["60"] == [["09:00", 2], ["10:00", 2], ["11:00", 2]]

    def test_existing_bookings_remove_provider_slots(self):
        busy = weekday_provider("a", [booking("2024-01-15", "10:00", "11:00")])

        day = compute_day_slots([busy, weekday_provider("b")], MONDAY, "UTC")

        assert day["60"] == [["09:00", 2], ["10:00", 1], ["11:00", 2]]
        assert day["120"] == [["09:00", 1], ["10:00", 1]]

    def test_day_off_has_empty_buckets(self):
        day = compute_day_slots([weekday_provider("a")], date(2024, 1, 16), "UTC")

        assert set(day) == {str(minutes) for minutes in DURATION_INTERVALS}
        assert all(entries == [] for entries in day.values())

    def test_initial_availability_covers_window(self):
        slots = generate_initial_business_availability([weekday_provider("a")], MONDAY, 3, "UTC")
        assert list(slots) == ["2024-01-15", "2024-01-16", "2024-01-17"]

    def test_rollover_drops_past_and_fills_window(self):
        slots = {
            "2024-01-14": {"60": [["09:00", 1]]},
            "2024-01-15": {"60": [["11:00", 1]]},
        }

        rolled = rollover_availability(slots, [weekday_provider("a")], MONDAY, 3, "UTC")

        assert list(rolled) == ["2024-01-15", "2024-01-16", "2024-01-17"]
        # Existing dates keep their remaining capacity
        assert rolled["2024-01-15"] == {"60": [["11:00", 1]]}
        assert slots["2024-01-14"] == {"60": [["09:00", 1]]}
