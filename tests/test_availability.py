"""
Tests for listing availability: inclusive ranges, blocked days and the
monthly calendar.
"""

import uuid
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException

from api.services.availability_service import (
    ACTIVE_BOOKING_STATUSES,
    AvailabilityService,
    build_month_calendar,
    expand_booked_days,
    is_range_available,
    iter_days,
    ranges_overlap,
)


class TestRanges:
    def test_overlap_is_inclusive(self):
        # A booking ending on the 10th blocks a rental starting on the 10th
        assert ranges_overlap(date(2025, 5, 1), date(2025, 5, 10), date(2025, 5, 10), date(2025, 5, 12))

    def test_adjacent_ranges_do_not_overlap(self):
        assert not ranges_overlap(date(2025, 5, 1), date(2025, 5, 9), date(2025, 5, 10), date(2025, 5, 12))

    def test_containing_range_overlaps(self):
        assert ranges_overlap(date(2025, 5, 1), date(2025, 5, 31), date(2025, 5, 10), date(2025, 5, 12))

    def test_iter_days(self):
        days = list(iter_days(date(2025, 2, 27), date(2025, 3, 1)))
        assert days == [date(2025, 2, 27), date(2025, 2, 28), date(2025, 3, 1)]

    def test_iter_days_single_day(self):
        assert list(iter_days(date(2025, 1, 1), date(2025, 1, 1))) == [date(2025, 1, 1)]


class TestIsRangeAvailable:
    def test_free(self):
        assert is_range_available(date(2025, 5, 1), date(2025, 5, 3), [], [])

    def test_blocked_day_inside_range(self):
        assert not is_range_available(date(2025, 5, 1), date(2025, 5, 3), [date(2025, 5, 3)], [])

    def test_blocked_day_outside_range(self):
        assert is_range_available(date(2025, 5, 1), date(2025, 5, 3), [date(2025, 5, 4)], [])

    def test_overlapping_booking(self):
        bookings = [(date(2025, 5, 3), date(2025, 5, 6))]
        assert not is_range_available(date(2025, 5, 1), date(2025, 5, 3), [], bookings)


class TestExpandBookedDays:
    def test_expand_and_clip(self):
        first, second = uuid.uuid4(), uuid.uuid4()
        days = expand_booked_days(
            [(first, date(2025, 4, 29), date(2025, 5, 2)), (second, date(2025, 5, 10), date(2025, 5, 10))],
            clip_start=date(2025, 5, 1),
            clip_end=date(2025, 5, 31),
        )
        assert days == {
            date(2025, 5, 1): first,
            date(2025, 5, 2): first,
            date(2025, 5, 10): second,
        }

    def test_later_booking_wins(self):
        first, second = uuid.uuid4(), uuid.uuid4()
        days = expand_booked_days(
            [(first, date(2025, 5, 1), date(2025, 5, 2)), (second, date(2025, 5, 2), date(2025, 5, 3))]
        )
        assert days[date(2025, 5, 2)] == second


class TestMonthCalendar:
    def test_february_leap_year_has_29_days(self):
        days = build_month_calendar(2024, 2, [], [])
        assert len(days) == 29
        assert all(d.is_available for d in days)

    def test_blocked_and_booked_days(self):
        booking_id = uuid.uuid4()
        days = build_month_calendar(
            2025,
            6,
            blocked_days=[date(2025, 6, 5), date(2025, 7, 1)],
            bookings=[(booking_id, date(2025, 5, 30), date(2025, 6, 2))],
        )
        by_day = {d.date: d for d in days}

        assert len(days) == 30
        assert by_day[date(2025, 6, 5)].is_available is False
        assert by_day[date(2025, 6, 5)].is_booked is False

        assert by_day[date(2025, 6, 1)].is_booked is True
        assert by_day[date(2025, 6, 1)].booking_id == booking_id
        assert by_day[date(2025, 6, 2)].is_available is False

        assert by_day[date(2025, 6, 3)].is_available is True
        assert by_day[date(2025, 6, 3)].booking_id is None


class TestAvailabilityService:
    async def test_reversed_range_is_400(self):
        with pytest.raises(HTTPException) as exc:
            await AvailabilityService().check_availability(uuid.uuid4(), date(2025, 5, 3), date(2025, 5, 1))
        assert exc.value.status_code == 400

    async def test_check_in_session_uses_active_statuses(self):
        service = AvailabilityService()
        motorcycle_id = uuid.uuid4()
        booking_ranges = AsyncMock(return_value=[(uuid.uuid4(), date(2025, 5, 2), date(2025, 5, 4))])

        with patch.object(service, "_blocked_days", AsyncMock(return_value=[])), \
             patch.object(service, "_booking_ranges", booking_ranges):
            free = await service.check_availability_in_session(
                None, motorcycle_id, date(2025, 5, 4), date(2025, 5, 6)
            )

        assert free is False
        assert booking_ranges.await_args.args[2] == ACTIVE_BOOKING_STATUSES
        assert ACTIVE_BOOKING_STATUSES == ("pending", "confirmed", "in_progress")

    async def test_check_in_session_free_range(self):
        service = AvailabilityService()
        with patch.object(service, "_blocked_days", AsyncMock(return_value=[])), \
             patch.object(service, "_booking_ranges", AsyncMock(return_value=[])):
            assert await service.check_availability_in_session(
                None, uuid.uuid4(), date(2025, 5, 4), date(2025, 5, 6)
            )
