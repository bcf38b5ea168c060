"""Pytest configuration and fixtures."""

from datetime import date

import pytest

from coach_booking.schema import (
    BookingWindowPolicy,
    CoachSchedule,
    WeeklyAvailabilityRule,
)

# 2025-02-03 is a Monday
MONDAY = date(2025, 2, 3)


@pytest.fixture
def monday() -> date:
    return MONDAY


@pytest.fixture
def monday_morning_schedule() -> CoachSchedule:
    """One-hour Monday window split into 30 minute slots."""
    return CoachSchedule(
        time_zone="America/New_York",
        rules=[
            WeeklyAvailabilityRule(days=["MONDAY"], start_time="09:00", end_time="10:00"),
        ],
        slot_duration_minutes=30,
    )


@pytest.fixture
def weekday_schedule() -> CoachSchedule:
    """Mon-Fri 09:00-17:00 plus a Wednesday evening, mixing day representations."""
    return CoachSchedule(
        time_zone="UTC",
        rules=[
            WeeklyAvailabilityRule(
                days=["monday", "Tuesday", 3, "THU", 5],
                start_time="09:00",
                end_time="17:00",
            ),
            WeeklyAvailabilityRule(days=["WEDNESDAY"], start_time="18:00", end_time="20:00"),
        ],
        slot_duration_minutes=60,
    )


@pytest.fixture
def sunday_schedule() -> CoachSchedule:
    """Sunday-only availability."""
    return CoachSchedule(
        time_zone="UTC",
        rules=[
            WeeklyAvailabilityRule(days=[0], start_time="10:00", end_time="12:00"),
        ],
        slot_duration_minutes=30,
    )


@pytest.fixture
def monday_policy() -> BookingWindowPolicy:
    """Window evaluated on Monday 2025-02-03: 2025-02-04 through 2025-02-19."""
    return BookingWindowPolicy.from_now(MONDAY)
