"""FastAPI application exposing the coach booking slot engine."""

import logging
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, HTTPException

from coach_booking.busy_times import BusyTimesClient
from coach_booking.scheduler import (
    compute_available_dates,
    compute_slots_for_date,
    group_slots_by_period,
    is_date_disabled,
    no_availability_message,
)
from coach_booking.schema import (
    AvailabilityRequest,
    AvailableDatesRequest,
    AvailableDatesResponse,
    BookingWindowPolicy,
    BusyInterval,
    CoachSchedule,
    SlotsForDateRequest,
    SlotsForDateResponse,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(title="Coach Booking", version="0.1.0")


def _resolve_schedule(request: AvailabilityRequest) -> CoachSchedule:
    """Schedule with the calendar integration's time zone applied."""
    try:
        return request.schedule.with_integration_time_zone(request.integration_time_zone)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _policy_for(request: AvailabilityRequest, schedule: CoachSchedule) -> BookingWindowPolicy:
    """Booking window relative to the request's (or current) instant in the coach's zone."""
    now = request.now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(schedule.tz)
    return BookingWindowPolicy.from_now(now)


def _load_busy_intervals(
    request: AvailabilityRequest,
    schedule: CoachSchedule,
) -> list[BusyInterval]:
    """Busy times from the request body, or fetched from the connected calendar."""
    if request.busy_intervals is not None:
        return request.busy_intervals
    if request.calendar is None:
        return []
    try:
        client = BusyTimesClient()
        return client.get_busy_times(
            credential_id=request.calendar.credential_id,
            external_id=request.calendar.external_id,
            time_zone=schedule.time_zone,
        )
    except ValueError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except httpx.HTTPStatusError as e:
        msg = f"Calendar API error ({e.response.status_code}): "
        if e.response.status_code == 401:
            msg += "Invalid or expired calendar token. Set CAL_API_KEY in your environment."
        else:
            msg += str(e)
        raise HTTPException(status_code=502, detail=msg)
    except httpx.RequestError as e:
        logger.error("Calendar API unreachable: %s", e)
        raise HTTPException(status_code=502, detail=f"Calendar API unreachable: {e}")


@app.post("/availability/dates", response_model=AvailableDatesResponse)
def available_dates(request: AvailableDatesRequest) -> AvailableDatesResponse:
    """
    Dates in the booking window with at least one free slot.
    Busy times come from the body or, when omitted, from the connected calendar.
    """
    schedule = _resolve_schedule(request)
    policy = _policy_for(request, schedule)
    busy = _load_busy_intervals(request, schedule)

    dates = compute_available_dates(schedule, busy, policy)

    return AvailableDatesResponse(
        time_zone=schedule.time_zone,
        min_date=policy.min_date,
        max_date=policy.max_date,
        available_dates=dates,
        message=None if dates else no_availability_message(policy),
    )


@app.post("/availability/slots", response_model=SlotsForDateResponse)
def slots_for_date(request: SlotsForDateRequest) -> SlotsForDateResponse:
    """Free slots for one date, plus the same slots grouped by part of day."""
    schedule = _resolve_schedule(request)
    policy = _policy_for(request, schedule)

    if request.date < policy.min_date or request.date > policy.max_date:
        raise HTTPException(
            status_code=422,
            detail=(
                f"Date {request.date.isoformat()} is outside the booking window "
                f"{policy.min_date.isoformat()} to {policy.max_date.isoformat()}"
            ),
        )

    if is_date_disabled(schedule, request.date, policy):
        slots = []
    else:
        busy = _load_busy_intervals(request, schedule)
        slots = compute_slots_for_date(schedule, request.date, busy)

    return SlotsForDateResponse(
        date=request.date,
        time_zone=schedule.time_zone,
        slots=slots,
        groups=group_slots_by_period(slots),
    )


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
