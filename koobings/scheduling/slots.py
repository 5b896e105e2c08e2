"""
Slot Generation Service

Turns a staff member's working hours for one day into bookable start times:
- candidates are emitted every ``step`` minutes while the service still fits
- candidates overlapping a busy period are unavailable
- on the current day, candidates at or before "now" are unavailable

All functions are pure; the route layer fetches rows and passes them in.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from koobings.scheduling.errors import MalformedScheduleInput
from koobings.scheduling.intervals import format_time_of_day, overlaps
from koobings.scheduling.schedule import working_intervals_for_day

SLOT_STEP_MINUTES = 30

# Only these statuses hold a staff member's time. ACCEPTED is the legacy
# spelling of CONFIRMED and still appears in unmigrated rows.
BLOCKING_STATUSES = ("PENDING", "CONFIRMED", "ACCEPTED")


class BusyPeriod(NamedTuple):
    start: datetime
    end: datetime


class SlotAvailability(NamedTuple):
    start: datetime
    available: bool


def _require_positive(value: int, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise MalformedScheduleInput(f"{label} must be a positive number of minutes.")
    return value


def generate_slot_starts(
    start: datetime,
    end: datetime,
    duration_minutes: int,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> List[datetime]:
    """
    Enumerate candidate start times inside one working interval.

    Args:
        start: beginning of the working interval
        end: end of the working interval (exclusive)
        duration_minutes: length of the service being booked
        step_minutes: distance between consecutive candidates

    Returns:
        list[datetime]: chronological starts ``s`` with ``s + duration <= end``.
        A slot ending exactly on ``end`` is included.
    """
    _require_positive(duration_minutes, "Duration")
    _require_positive(step_minutes, "Step")
    if end < start:
        raise MalformedScheduleInput("Working hours end before they start.")

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)

    starts = []
    candidate = start
    while candidate + duration <= end:
        starts.append(candidate)
        candidate += step

    return starts


def generate_day_candidates(
    intervals: Sequence[Tuple[datetime, datetime]],
    duration_minutes: int,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> List[datetime]:
    candidates = set()
    for start, end in intervals:
        candidates.update(generate_slot_starts(start, end, duration_minutes, step_minutes))
    return sorted(candidates)


def busy_periods_from_appointments(appointments: Iterable[Any]) -> List[BusyPeriod]:
    """Busy periods of appointments that still hold the staff member's time."""
    periods = []
    for appointment in appointments:
        if appointment.status not in BLOCKING_STATUSES:
            continue
        if appointment.scheduled_for is None or not appointment.duration:
            continue
        periods.append(
            BusyPeriod(
                appointment.scheduled_for,
                appointment.scheduled_for + timedelta(minutes=appointment.duration),
            )
        )
    return periods


def busy_periods_from_unavailability(periods: Iterable[Any]) -> List[BusyPeriod]:
    return [BusyPeriod(period.start_time, period.end_time) for period in periods]


def annotate_slots(
    candidates: Sequence[datetime],
    duration_minutes: int,
    busy: Sequence[BusyPeriod],
    now: Optional[datetime] = None,
) -> List[SlotAvailability]:
    """Mark each candidate available or not; order is preserved."""
    _require_positive(duration_minutes, "Duration")
    duration = timedelta(minutes=duration_minutes)

    annotated = []
    for start in candidates:
        end = start + duration
        available = not any(overlaps(start, end, period.start, period.end) for period in busy)
        if available and now is not None and start.date() == now.date() and start <= now:
            available = False
        annotated.append(SlotAvailability(start, available))

    return annotated


def available_starts(annotated: Iterable[SlotAvailability]) -> List[datetime]:
    return [slot.start for slot in annotated if slot.available]


def compute_day_slots(
    schedule: Optional[Dict[str, Any]],
    target_date: date,
    duration_minutes: int,
    busy: Sequence[BusyPeriod] = (),
    now: Optional[datetime] = None,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> List[SlotAvailability]:
    """
    Annotated slots of one staff member for one day.

    ``schedule`` is the raw ``StaffAvailability.schedule`` JSON (``None`` when the
    staff member has no availability record). A missing record or a non-working
    weekday produces an empty list.
    """
    _require_positive(duration_minutes, "Duration")
    intervals = working_intervals_for_day(schedule, target_date)
    if not intervals:
        return []

    candidates = generate_day_candidates(intervals, duration_minutes, step_minutes)
    return annotate_slots(candidates, duration_minutes, busy, now)


def to_payload(
    annotated: Sequence[SlotAvailability],
    available_only: bool = False,
) -> Union[List[str], List[Dict[str, Any]]]:
    if available_only:
        return [format_time_of_day(start) for start in available_starts(annotated)]
    return [
        {"time": format_time_of_day(slot.start), "available": slot.available}
        for slot in annotated
    ]
