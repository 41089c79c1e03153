"""Tests for the pure slot generator."""

from datetime import date, datetime, time, timedelta

import pytest

from chatbooking.core.exceptions import ValidationError
from chatbooking.models import Blackout, BusinessHours
from chatbooking.services.slot_service import ScheduleFacts, generate_slots

MONDAY = date(2030, 3, 4)


def weekday_hours(open_at=time(9, 0), close_at=time(17, 0)):
    return {
        day: BusinessHours(day_of_week=day, open_time=open_at, close_time=close_at, is_closed=False)
        for day in range(5)
    }


class TestSlotShape:
    """Slot boundaries and spacing"""

    def test_monday_nine_to_five_half_hour_slots(self):
        slots = generate_slots(30, 0, ScheduleFacts(hours=weekday_hours()), MONDAY, MONDAY)

        assert len(slots) == 16
        assert slots[0].start == datetime(2030, 3, 4, 9, 0)
        assert slots[-1].end == datetime(2030, 3, 4, 17, 0)
        assert all(s.available for s in slots)

    @pytest.mark.parametrize("duration,buffer", [(30, 0), (30, 10), (45, 15), (60, 0), (90, 30)])
    def test_every_slot_fits_hours_and_steps_by_duration_plus_buffer(self, duration, buffer):
        slots = generate_slots(duration, buffer, ScheduleFacts(hours=weekday_hours()), MONDAY, MONDAY)

        assert slots
        for slot in slots:
            assert slot.end - slot.start == timedelta(minutes=duration)
            assert slot.start >= datetime(2030, 3, 4, 9, 0)
            assert slot.end <= datetime(2030, 3, 4, 17, 0)
        for previous, current in zip(slots, slots[1:]):
            assert current.start - previous.start == timedelta(minutes=duration + buffer)

    def test_buffer_reduces_slot_count(self):
        slots = generate_slots(30, 10, ScheduleFacts(hours=weekday_hours()), MONDAY, MONDAY)

        assert len(slots) == 12
        assert slots[1].start == datetime(2030, 3, 4, 9, 40)

    def test_no_truncated_slot_at_closing(self):
        hours = weekday_hours(time(9, 0), time(10, 0))
        slots = generate_slots(45, 0, ScheduleFacts(hours=hours), MONDAY, MONDAY)

        assert [s.start.time() for s in slots] == [time(9, 0)]

    def test_multi_day_range_is_chronological(self):
        slots = generate_slots(60, 0, ScheduleFacts(hours=weekday_hours()), MONDAY, MONDAY + timedelta(days=6))

        assert [s.start for s in slots] == sorted(s.start for s in slots)
        # Five weekdays of eight hourly slots, weekend closed
        assert len(slots) == 40
        assert {s.start.date().weekday() for s in slots} == {0, 1, 2, 3, 4}

    def test_rejects_non_positive_duration(self):
        with pytest.raises(ValidationError):
            generate_slots(0, 0, ScheduleFacts(hours=weekday_hours()), MONDAY, MONDAY)


class TestClosedDays:
    """Days that yield nothing"""

    def test_day_without_hours_yields_no_slots(self):
        saturday = MONDAY + timedelta(days=5)
        assert generate_slots(30, 0, ScheduleFacts(hours=weekday_hours()), saturday, saturday) == []

    def test_closed_flag_yields_no_slots(self):
        hours = weekday_hours()
        hours[0].is_closed = True
        assert generate_slots(30, 0, ScheduleFacts(hours=hours), MONDAY, MONDAY) == []

    def test_missing_open_time_yields_no_slots(self):
        hours = {0: BusinessHours(day_of_week=0, open_time=None, close_time=time(17, 0), is_closed=False)}
        assert generate_slots(30, 0, ScheduleFacts(hours=hours), MONDAY, MONDAY) == []

    def test_end_before_start_range_is_empty(self):
        assert generate_slots(30, 0, ScheduleFacts(hours=weekday_hours()), MONDAY, MONDAY - timedelta(days=1)) == []


class TestAvailabilityFlags:
    """Blackouts and bookings mark slots unavailable"""

    def test_single_day_blackout_covers_whole_day(self):
        facts = ScheduleFacts(
            hours=weekday_hours(),
            blackouts=[Blackout(start_date=MONDAY, end_date=None, reason="Holiday")],
        )
        slots = generate_slots(30, 0, facts, MONDAY, MONDAY + timedelta(days=1))

        monday = [s for s in slots if s.start.date() == MONDAY]
        tuesday = [s for s in slots if s.start.date() != MONDAY]
        assert monday and not any(s.available for s in monday)
        assert tuesday and all(s.available for s in tuesday)

    def test_ranged_blackout_covers_through_end_date(self):
        facts = ScheduleFacts(
            hours=weekday_hours(),
            blackouts=[Blackout(start_date=MONDAY, end_date=MONDAY + timedelta(days=1), reason="Renovation")],
        )
        slots = generate_slots(30, 0, facts, MONDAY, MONDAY + timedelta(days=2))

        available_days = {s.start.date() for s in slots if s.available}
        assert available_days == {MONDAY + timedelta(days=2)}

    def test_booking_overlap_is_half_open(self):
        facts = ScheduleFacts(
            hours=weekday_hours(),
            bookings=[(datetime(2030, 3, 4, 9, 15), datetime(2030, 3, 4, 9, 45))],
        )
        slots = {s.start.time(): s.available for s in generate_slots(30, 0, facts, MONDAY, MONDAY)}

        assert slots[time(9, 0)] is False
        assert slots[time(9, 30)] is False
        assert slots[time(10, 0)] is True

    def test_adjacent_booking_does_not_block(self):
        facts = ScheduleFacts(
            hours=weekday_hours(),
            bookings=[(datetime(2030, 3, 4, 9, 30), datetime(2030, 3, 4, 10, 0))],
        )
        slots = {s.start.time(): s.available for s in generate_slots(30, 0, facts, MONDAY, MONDAY)}

        assert slots[time(9, 0)] is True
        assert slots[time(9, 30)] is False
        assert slots[time(10, 0)] is True

    def test_no_available_slot_overlaps_blackout_or_booking(self):
        booking = (datetime(2030, 3, 5, 11, 0), datetime(2030, 3, 5, 12, 30))
        facts = ScheduleFacts(
            hours=weekday_hours(),
            blackouts=[Blackout(start_date=MONDAY + timedelta(days=2), reason="Training")],
            bookings=[booking],
        )
        slots = generate_slots(45, 15, facts, MONDAY, MONDAY + timedelta(days=4))

        for slot in slots:
            if not slot.available:
                continue
            assert slot.start.date() != MONDAY + timedelta(days=2)
            assert not (slot.start < booking[1] and slot.end > booking[0])
