"""Deterministic slot engine for computing bookable coaching slots."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from coach_booking.schema import (
    BookingWindowPolicy,
    BusyInterval,
    CandidateSlot,
    CoachSchedule,
    SlotGroup,
    Weekday,
    WeeklyAvailabilityRule,
)

logger = logging.getLogger(__name__)

_WEEKDAY_ABBREVIATIONS = {day.name[:3]: day for day in Weekday}


def to_canonical_weekday(value: Union[int, str]) -> Optional[Weekday]:
    """
    Map a weekday number (0=Sunday) or name to Weekday.
    Names are case-insensitive and may be abbreviated to three letters.
    Returns None for anything unrecognised.
    """
    # bool is an int subclass; True must not mean MONDAY
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        if 0 <= value <= 6:
            return Weekday(value)
        return None
    if isinstance(value, str):
        name = value.strip().upper()
        if name in Weekday.__members__:
            return Weekday[name]
        return _WEEKDAY_ABBREVIATIONS.get(name)
    return None


def _weekday_of(day: date) -> Weekday:
    # Python: Monday=0, Sunday=6
    return Weekday((day.weekday() + 1) % 7)


def _rule_serves(rule: WeeklyAvailabilityRule, weekday: Weekday) -> bool:
    """Check if a rule's days include weekday; unknown entries never match."""
    for value in rule.days:
        canonical = to_canonical_weekday(value)
        if canonical is None:
            logger.debug("Ignoring unrecognised weekday %r in availability rule", value)
            continue
        if canonical == weekday:
            return True
    return False


def _parse_time(s: str) -> tuple[int, int]:
    """Parse HH:MM to (hour, minute)."""
    parts = s.split(":")
    return int(parts[0]), int(parts[1])


def _at_time(day: date, hhmm: str, tz: ZoneInfo) -> datetime:
    """
    Instant on day at HH:MM wall-clock time in tz, as UTC.
    A time skipped by a DST jump resolves to the instant after the jump.
    """
    hour, minute = _parse_time(hhmm)
    local = datetime(day.year, day.month, day.day, hour, minute, 0, tzinfo=tz)
    return datetime.fromtimestamp(local.timestamp(), timezone.utc)


def _parse_instant(value: str, tz: ZoneInfo) -> datetime:
    """Parse an ISO 8601 instant; naive values are read in tz."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def is_day_served(schedule: CoachSchedule, day: date) -> bool:
    """Check if any rule of the schedule covers day's weekday."""
    if not schedule.rules:
        return False
    weekday = _weekday_of(day)
    return any(_rule_serves(rule, weekday) for rule in schedule.rules)


def generate_candidate_slots(schedule: CoachSchedule, day: date) -> list[CandidateSlot]:
    """
    Generate fixed-length slots for day from every rule that serves it.
    Slots that would run past a rule's window end are dropped, not truncated.
    Slots from overlapping rules are concatenated in rule order, not merged.
    """
    tz = schedule.tz
    weekday = _weekday_of(day)
    duration = timedelta(minutes=schedule.slot_duration_minutes)

    slots: list[CandidateSlot] = []
    for rule in schedule.rules:
        if not _rule_serves(rule, weekday):
            continue

        current = _at_time(day, rule.start_time, tz)
        window_end = _at_time(day, rule.end_time, tz)

        # UTC arithmetic keeps slots a fixed length across DST changes
        while current < window_end:
            slot_end = current + duration
            if slot_end > window_end:
                break
            slots.append(
                CandidateSlot(
                    start_time=current.astimezone(tz),
                    end_time=slot_end.astimezone(tz),
                )
            )
            current = slot_end

    logger.debug("Generated %d candidate slots for %s", len(slots), day.isoformat())
    return slots


def overlaps(slot: CandidateSlot, busy: BusyInterval) -> bool:
    """
    Check if slot conflicts with a busy interval (half-open, touching ends are fine).
    A busy interval that cannot be parsed conflicts with every slot.
    """
    tz = slot.start_time.tzinfo or ZoneInfo("UTC")
    try:
        busy_start = _parse_instant(busy.start, tz)
        busy_end = _parse_instant(busy.end, tz)
    except ValueError:
        logger.warning(
            "Malformed busy interval %r-%r (source=%s), blocking slot",
            busy.start,
            busy.end,
            busy.source,
        )
        return True
    if busy_end.astimezone(timezone.utc) <= busy_start.astimezone(timezone.utc):
        logger.warning(
            "Empty or inverted busy interval %s-%s (source=%s), blocking slot",
            busy.start,
            busy.end,
            busy.source,
        )
        return True
    # Overlap: slot starts before busy ends AND slot ends after busy starts
    # Compared in UTC; same-zone comparisons would use wall-clock time
    slot_start = slot.start_time.astimezone(timezone.utc)
    slot_end = slot.end_time.astimezone(timezone.utc)
    return (
        slot_start < busy_end.astimezone(timezone.utc)
        and slot_end > busy_start.astimezone(timezone.utc)
    )


def filter_available_slots(
    candidates: list[CandidateSlot],
    busy_intervals: list[BusyInterval],
) -> list[CandidateSlot]:
    """Keep candidates that overlap no busy interval, preserving order."""
    available = [
        slot
        for slot in candidates
        if not any(overlaps(slot, busy) for busy in busy_intervals)
    ]
    logger.debug(
        "Filtered slots with %d busy intervals: %d -> %d",
        len(busy_intervals),
        len(candidates),
        len(available),
    )
    return available


def compute_slots_for_date(
    schedule: CoachSchedule,
    day: date,
    busy_intervals: list[BusyInterval],
) -> list[CandidateSlot]:
    """Available slots for a single date."""
    return filter_available_slots(generate_candidate_slots(schedule, day), busy_intervals)


def compute_available_dates(
    schedule: CoachSchedule,
    busy_intervals: list[BusyInterval],
    policy: BookingWindowPolicy,
) -> list[date]:
    """
    Dates in the booking window with at least one free slot, ascending.
    Scans at most max_lookahead_days + 1 dates from min_date and never past max_date.
    """
    dates: list[date] = []
    for offset in range(policy.max_lookahead_days + 1):
        current = policy.min_date + timedelta(days=offset)
        if current > policy.max_date:
            break
        if not is_day_served(schedule, current):
            continue
        if compute_slots_for_date(schedule, current, busy_intervals):
            dates.append(current)

    if not dates:
        logger.info(
            "No available dates between %s and %s",
            policy.min_date.isoformat(),
            policy.max_date.isoformat(),
        )
    return dates


def is_date_disabled(schedule: CoachSchedule, day: date, policy: BookingWindowPolicy) -> bool:
    """True when day is outside the booking window or not a working day."""
    if day < policy.min_date or day > policy.max_date:
        return True
    return not is_day_served(schedule, day)


def group_slots_by_period(slots: list[CandidateSlot]) -> list[SlotGroup]:
    """Bucket slots into Morning (<12), Afternoon (12-17) and Evening (>=17) by local start hour."""
    morning: list[CandidateSlot] = []
    afternoon: list[CandidateSlot] = []
    evening: list[CandidateSlot] = []

    for slot in slots:
        hour = slot.start_time.hour
        if hour < 12:
            morning.append(slot)
        elif hour < 17:
            afternoon.append(slot)
        else:
            evening.append(slot)

    groups = [
        SlotGroup(title="Morning", slots=morning),
        SlotGroup(title="Afternoon", slots=afternoon),
        SlotGroup(title="Evening", slots=evening),
    ]
    return [g for g in groups if g.slots]


def format_time(value: datetime) -> str:
    """12-hour clock label, e.g. '9:30 AM'."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def format_duration(minutes: int) -> str:
    """Readable duration, e.g. '45 minutes', '1 hour', '1 hour 30 minutes'."""
    if minutes < 60:
        return f"{minutes} minutes"
    if minutes == 60:
        return "1 hour"
    if minutes % 60 == 0:
        return f"{minutes // 60} hours"
    hours, remaining = divmod(minutes, 60)
    return (
        f"{hours} hour{'s' if hours > 1 else ''} "
        f"{remaining} minute{'s' if remaining > 1 else ''}"
    )


def no_availability_message(policy: BookingWindowPolicy) -> str:
    return f"No available booking slots in the next {policy.max_lookahead_days} days"
