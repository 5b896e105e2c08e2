"""
Canonical staff schedule accessor.

``StaffAvailability.schedule`` is stored as JSON. The canonical shape is::

    {
        "monday": {
            "isWorking": true,
            "intervals": [{"start": "09:00", "end": "17:00"}],
            "lunchBreak": {"start": "12:00", "end": "13:00"}
        },
        ...
    }

Older rows use ``{"isWorking": ..., "timeSlots": [...]}`` or a bare
``{"start": ..., "end": ...}`` per weekday, optionally with
``lunchBreakStart`` / ``lunchBreakEnd``. All reads go through
``normalize_schedule`` so the rest of the code only sees the canonical shape.
"""

import logging
from datetime import date, datetime, time
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from koobings.scheduling.errors import MalformedScheduleInput
from koobings.scheduling.intervals import (
    format_time_of_day,
    parse_time_of_day,
    split_around_lunch,
)

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class DaySchedule(NamedTuple):
    is_working: bool
    intervals: List[Tuple[time, time]]
    lunch: Optional[Tuple[time, time]]


NOT_WORKING = DaySchedule(is_working=False, intervals=[], lunch=None)


def weekday_name(target_date: date) -> str:
    return WEEKDAYS[target_date.weekday()]


def _normalize_range(raw: Any, label: str) -> Dict[str, str]:
    if not isinstance(raw, dict) or "start" not in raw or "end" not in raw:
        raise MalformedScheduleInput(f"{label} must have a start and an end.")

    start = parse_time_of_day(raw["start"])
    end = parse_time_of_day(raw["end"])
    if end <= start:
        raise MalformedScheduleInput(
            f"{label} ends at {format_time_of_day(end)}, before it starts at {format_time_of_day(start)}."
        )

    return {"start": format_time_of_day(start), "end": format_time_of_day(end)}


def _normalize_lunch(day: Dict[str, Any], weekday: str) -> Optional[Dict[str, str]]:
    lunch = day.get("lunchBreak")
    if lunch is None and (day.get("lunchBreakStart") or day.get("lunchBreakEnd")):
        lunch = {"start": day.get("lunchBreakStart"), "end": day.get("lunchBreakEnd")}

    if lunch is not None and not isinstance(lunch, dict):
        raise MalformedScheduleInput(f"{weekday} lunch break must be an object.")
    if not lunch or not lunch.get("start") or not lunch.get("end"):
        return None

    return _normalize_range(lunch, f"{weekday} lunch break")


def _normalize_day(weekday: str, day: Any) -> Dict[str, Any]:
    if day is None:
        return {"isWorking": False, "intervals": [], "lunchBreak": None}
    if not isinstance(day, dict):
        raise MalformedScheduleInput(f"Schedule for {weekday} must be an object.")

    if "intervals" in day:
        raw_intervals = day["intervals"]
    elif "timeSlots" in day:
        logger.warning("Legacy timeSlots schedule shape found for %s", weekday)
        raw_intervals = day["timeSlots"]
    elif "start" in day or "end" in day:
        logger.warning("Legacy start/end schedule shape found for %s", weekday)
        raw_intervals = [{"start": day.get("start"), "end": day.get("end")}]
    elif "isWorking" in day:
        raw_intervals = []
    else:
        raise MalformedScheduleInput(f"Unrecognised schedule shape for {weekday}.")

    if raw_intervals is None:
        raw_intervals = []
    if not isinstance(raw_intervals, list):
        raise MalformedScheduleInput(f"Working intervals for {weekday} must be a list.")

    is_working = day.get("isWorking", True)
    if not isinstance(is_working, bool):
        raise MalformedScheduleInput(f"isWorking for {weekday} must be true or false.")
    if not is_working:
        return {"isWorking": False, "intervals": [], "lunchBreak": None}

    intervals = [
        _normalize_range(interval, f"{weekday} working hours")
        for interval in raw_intervals
    ]
    intervals.sort(key=lambda interval: interval["start"])

    return {
        "isWorking": bool(intervals),
        "intervals": intervals,
        "lunchBreak": _normalize_lunch(day, weekday),
    }


def normalize_schedule(raw: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Return the canonical form of a stored or submitted weekly schedule."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise MalformedScheduleInput("Schedule must be an object keyed by weekday.")

    by_weekday: Dict[str, Any] = {}
    for key, day in raw.items():
        weekday = str(key).strip().lower()
        if weekday not in WEEKDAYS:
            raise MalformedScheduleInput(f"Unknown weekday {key!r} in schedule.")
        by_weekday[weekday] = day

    return {weekday: _normalize_day(weekday, by_weekday.get(weekday)) for weekday in WEEKDAYS}


def get_day_schedule(raw_schedule: Optional[Dict[str, Any]], target_date: date) -> DaySchedule:
    if raw_schedule is None:
        return NOT_WORKING

    day = normalize_schedule(raw_schedule)[weekday_name(target_date)]
    if not day["isWorking"]:
        return NOT_WORKING

    lunch = None
    if day["lunchBreak"]:
        lunch = (
            parse_time_of_day(day["lunchBreak"]["start"]),
            parse_time_of_day(day["lunchBreak"]["end"]),
        )

    return DaySchedule(
        is_working=True,
        intervals=[
            (parse_time_of_day(interval["start"]), parse_time_of_day(interval["end"]))
            for interval in day["intervals"]
        ],
        lunch=lunch,
    )


def working_intervals_for_day(
    raw_schedule: Optional[Dict[str, Any]],
    target_date: date,
) -> List[Tuple[datetime, datetime]]:
    """
    Working hours of ``target_date`` with the lunch break removed, as datetimes.

    Each shift is split on its own and the pieces are returned in start order
    without merging, so slot candidates are generated per shift.
    """
    day = get_day_schedule(raw_schedule, target_date)
    if not day.is_working:
        return []

    lunch_start, lunch_end = day.lunch if day.lunch else (None, None)
    pieces = []
    for start, end in day.intervals:
        pieces.extend(split_around_lunch(start, end, lunch_start, lunch_end))

    return [
        (datetime.combine(target_date, start), datetime.combine(target_date, end))
        for start, end in sorted(pieces)
    ]
