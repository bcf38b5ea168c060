"""Pydantic models for coach schedules, busy times, slots and request/response bodies."""

from datetime import date, datetime, timedelta
from enum import IntEnum
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AwareDatetime, BaseModel, Field, field_validator, model_validator

# Shared by the booking window and the date scan bound.
BOOKING_WINDOW_DAYS = 15


class Weekday(IntEnum):
    """Canonical weekday, Sunday-based (0=Sunday, 6=Saturday)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


# --- Coach availability (inputs to the slot engine) ---


class WeeklyAvailabilityRule(BaseModel):
    """One time-of-day window repeated on a set of weekdays."""

    days: list[Union[int, str]] = Field(
        ...,
        description="Weekday numbers 0=Sunday, 6=Saturday, or weekday names",
    )
    start_time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="Start time HH:MM")
    end_time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="End time HH:MM")


class CoachSchedule(BaseModel):
    """The coach's active recurring availability."""

    time_zone: str = Field(..., description="IANA timezone e.g. America/New_York")
    rules: list[WeeklyAvailabilityRule] = Field(default_factory=list)
    slot_duration_minutes: int = Field(..., gt=0)

    @field_validator("time_zone")
    @classmethod
    def known_time_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {value}")
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    def with_integration_time_zone(self, time_zone: Optional[str]) -> "CoachSchedule":
        """Return a copy using the calendar integration's zone when one is set."""
        if not time_zone or time_zone == self.time_zone:
            return self
        return CoachSchedule(
            time_zone=time_zone,
            rules=self.rules,
            slot_duration_minutes=self.slot_duration_minutes,
        )


class BusyInterval(BaseModel):
    """Occupied time range reported by the coach's calendar."""

    start: str  # ISO 8601 datetime
    end: str  # ISO 8601 datetime
    source: Optional[str] = None


class BookingWindowPolicy(BaseModel):
    """Which dates may be booked: no same-day, capped lookahead."""

    min_date: date
    max_date: date
    max_lookahead_days: int = Field(default=BOOKING_WINDOW_DAYS, ge=0)

    @model_validator(mode="after")
    def ordered_dates(self) -> "BookingWindowPolicy":
        if self.min_date > self.max_date:
            raise ValueError("min_date must not be after max_date")
        return self

    @classmethod
    def from_now(
        cls,
        now: Union[date, datetime],
        window_days: int = BOOKING_WINDOW_DAYS,
    ) -> "BookingWindowPolicy":
        """
        Build the window relative to an explicit evaluation instant.
        Starts tomorrow and ends window_days after that.
        """
        today = now.date() if isinstance(now, datetime) else now
        min_date = today + timedelta(days=1)
        return cls(
            min_date=min_date,
            max_date=min_date + timedelta(days=window_days),
            max_lookahead_days=window_days,
        )


# --- Engine outputs ---


class CandidateSlot(BaseModel):
    """A bookable unit in the coach's time zone."""

    start_time: AwareDatetime
    end_time: AwareDatetime


class SlotGroup(BaseModel):
    """Slots bucketed by part of day for display."""

    title: str
    slots: list[CandidateSlot]


# --- Request / Response ---


class CalendarReference(BaseModel):
    """Connected calendar to pull busy times from."""

    credential_id: str
    external_id: str


class AvailabilityRequest(BaseModel):
    """Common body for availability queries."""

    schedule: CoachSchedule
    busy_intervals: Optional[list[BusyInterval]] = Field(
        default=None,
        description="Busy times; fetched from the calendar when omitted",
    )
    calendar: Optional[CalendarReference] = None
    integration_time_zone: Optional[str] = Field(
        default=None,
        description="Time zone from the calendar integration, overrides the schedule's",
    )
    now: Optional[datetime] = Field(
        default=None,
        description="Evaluation instant for the booking window (defaults to current time)",
    )


class AvailableDatesRequest(AvailabilityRequest):
    """Request body for POST /availability/dates."""


class SlotsForDateRequest(AvailabilityRequest):
    """Request body for POST /availability/slots."""

    date: date


class AvailableDatesResponse(BaseModel):
    """Response from POST /availability/dates."""

    time_zone: str
    min_date: date
    max_date: date
    available_dates: list[date]
    message: Optional[str] = None


class SlotsForDateResponse(BaseModel):
    """Response from POST /availability/slots."""

    date: date
    time_zone: str
    slots: list[CandidateSlot]
    groups: list[SlotGroup]
