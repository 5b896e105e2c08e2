"""
Half-open interval helpers.

Every interval is a ``(start, end)`` pair of comparable values
(``datetime.time`` or ``datetime.datetime``) read as ``[start, end)``.
"""

from datetime import datetime, time
from typing import List, Optional, Tuple, TypeVar, Union

from koobings.scheduling.errors import MalformedScheduleInput

T = TypeVar("T", time, datetime)
Interval = Tuple[T, T]

_TIME_FORMATS = ("%H:%M", "%H:%M:%S")


def parse_time_of_day(value: Union[str, time]) -> time:
    """
    Parse a wall-clock time.

    Accepts ``datetime.time`` as-is and ``"HH:mm"`` / ``"HH:mm:ss"`` strings.
    Anything else raises MalformedScheduleInput.
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise MalformedScheduleInput(f"Cannot read a time of day from {type(value).__name__}.")

    candidate = value.strip()
    for time_format in _TIME_FORMATS:
        try:
            return datetime.strptime(candidate, time_format).time()
        except ValueError:
            continue

    raise MalformedScheduleInput(f"Malformed time of day: {value!r}.")


def format_time_of_day(value: Union[datetime, time]) -> str:
    return value.strftime("%H:%M")


def overlaps(a_start: T, a_end: T, b_start: T, b_end: T) -> bool:
    """True when ``[a_start, a_end)`` and ``[b_start, b_end)`` share any instant."""
    return a_start < b_end and b_start < a_end


def split_around_lunch(
    start: T,
    end: T,
    lunch_start: Optional[T] = None,
    lunch_end: Optional[T] = None,
) -> List[Interval]:
    """
    Excise a lunch break from one working interval.

    Returns zero, one or two chronological intervals. A missing lunch bound
    leaves the working interval untouched.
    """
    if end < start:
        raise MalformedScheduleInput("Working hours end before they start.")

    if lunch_start is None or lunch_end is None:
        return [(start, end)]

    if lunch_end < lunch_start:
        raise MalformedScheduleInput("Lunch break ends before it starts.")

    pieces: List[Interval] = []

    if start < lunch_start:
        pieces.append((start, min(lunch_start, end)))

    if lunch_end < end:
        pieces.append((max(lunch_end, start), end))

    return [(piece_start, piece_end) for piece_start, piece_end in pieces if piece_start < piece_end]

