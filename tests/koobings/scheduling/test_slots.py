from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from koobings.scheduling.errors import MalformedScheduleInput
from koobings.scheduling.slots import (
    BusyPeriod,
    SlotAvailability,
    annotate_slots,
    available_starts,
    busy_periods_from_appointments,
    compute_day_slots,
    generate_day_candidates,
    generate_slot_starts,
    to_payload,
)

MONDAY = date(2026, 1, 5)


def at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


MONDAY_WITH_LUNCH = {
    'monday': {
        'isWorking': True,
        'intervals': [{'start': '09:00', 'end': '17:00'}],
        'lunchBreak': {'start': '12:00', 'end': '13:00'},
    },
}


@pytest.mark.parametrize(
    ('start', 'end', 'duration', 'step', 'expected_count'),
    [
        (at(9), at(17), 60, 30, 15),
        (at(9), at(17), 30, 30, 16),
        (at(9), at(12), 45, 30, 5),
        (at(9), at(10), 60, 30, 1),
        (at(9), at(10), 61, 30, 0),
        (at(9), at(9), 30, 30, 0),
        (at(9), at(17), 60, 60, 8),
        (at(9), at(17), 25, 15, 31),
    ],
)
def test_generate_slot_starts_count(start, end, duration, step, expected_count) -> None:
    starts = generate_slot_starts(start, end, duration, step)
    span_minutes = int((end - start).total_seconds() // 60)
    formula = (span_minutes - duration) // step + 1 if duration <= span_minutes else 0

    assert len(starts) == expected_count == formula


def test_generate_slot_starts_stays_inside_working_hours() -> None:
    starts = generate_slot_starts(at(9), at(17), 50, 30)

    assert starts == sorted(set(starts))
    assert all(at(9) <= slot and slot + timedelta(minutes=50) <= at(17) for slot in starts)


def test_generate_slot_starts_includes_slot_ending_on_the_boundary() -> None:
    starts = generate_slot_starts(at(9), at(12), 60, 30)

    assert starts[-1] == at(11)


@pytest.mark.parametrize(('duration', 'step'), [(0, 30), (-15, 30), (30, 0), (30, -30)])
def test_generate_slot_starts_rejects_non_positive_minutes(duration, step) -> None:
    with pytest.raises(MalformedScheduleInput):
        generate_slot_starts(at(9), at(17), duration, step)


def test_generate_day_candidates_concatenates_intervals_in_order() -> None:
    candidates = generate_day_candidates([(at(13), at(14)), (at(9), at(10))], 30, 30)

    assert candidates == [at(9), at(9, 30), at(13), at(13, 30)]


def test_annotate_slots_excludes_overlapping_candidates() -> None:
    candidates = generate_slot_starts(at(9), at(12), 30, 30)
    annotated = annotate_slots(candidates, 30, [BusyPeriod(at(10), at(10, 30))])
    starts = available_starts(annotated)

    assert at(10) not in starts
    assert at(9, 30) in starts
    assert at(10, 30) in starts
    assert [slot.start for slot in annotated] == candidates


def test_annotate_slots_today_filter_excludes_past_and_current_moment() -> None:
    candidates = generate_slot_starts(at(9), at(12), 30, 30)
    annotated = annotate_slots(candidates, 30, [], now=at(10))

    assert available_starts(annotated) == [at(10, 30), at(11), at(11, 30)]


def test_annotate_slots_today_filter_is_noop_for_other_days() -> None:
    candidates = generate_slot_starts(at(9), at(12), 30, 30)
    annotated = annotate_slots(candidates, 30, [], now=at(10, day=date(2026, 1, 4)))

    assert available_starts(annotated) == candidates


def test_busy_periods_only_count_live_appointments() -> None:
    appointments = [
        SimpleNamespace(status='CONFIRMED', scheduled_for=at(9), duration=30),
        SimpleNamespace(status='PENDING', scheduled_for=at(11), duration=45),
        SimpleNamespace(status='ACCEPTED', scheduled_for=at(15), duration=60),
        SimpleNamespace(status='CANCELLED', scheduled_for=at(13), duration=30),
        SimpleNamespace(status='REJECTED', scheduled_for=at(14), duration=30),
    ]

    assert busy_periods_from_appointments(appointments) == [
        BusyPeriod(at(9), at(9, 30)),
        BusyPeriod(at(11), at(11, 45)),
        BusyPeriod(at(15), at(16)),
    ]


def test_compute_day_slots_end_to_end_stepping_by_duration() -> None:
    busy = [BusyPeriod(at(14), at(15))]

    annotated = compute_day_slots(MONDAY_WITH_LUNCH, MONDAY, 60, busy=busy, step_minutes=60)

    assert available_starts(annotated) == [at(9), at(10), at(11), at(13), at(15), at(16)]


def test_compute_day_slots_end_to_end_with_default_step() -> None:
    busy = [BusyPeriod(at(14), at(15))]

    annotated = compute_day_slots(MONDAY_WITH_LUNCH, MONDAY, 60, busy=busy)
    starts = available_starts(annotated)

    assert starts == [
        at(9), at(9, 30), at(10), at(10, 30), at(11),
        at(13), at(15), at(15, 30), at(16),
    ]
    for excluded in (at(11, 30), at(12), at(13, 30), at(14)):
        assert excluded not in starts


def test_compute_day_slots_is_idempotent() -> None:
    busy = [BusyPeriod(at(10), at(11))]

    first = compute_day_slots(MONDAY_WITH_LUNCH, MONDAY, 30, busy=busy, now=at(9, 15))
    second = compute_day_slots(MONDAY_WITH_LUNCH, MONDAY, 30, busy=busy, now=at(9, 15))

    assert first == second


def test_compute_day_slots_without_schedule_or_on_day_off_is_empty() -> None:
    assert compute_day_slots(None, MONDAY, 30) == []
    assert compute_day_slots(MONDAY_WITH_LUNCH, date(2026, 1, 6), 30) == []


def test_compute_day_slots_when_lunch_covers_the_whole_day() -> None:
    schedule = {
        'monday': {
            'intervals': [{'start': '12:00', 'end': '13:00'}],
            'lunchBreak': {'start': '12:00', 'end': '13:00'},
        },
    }

    assert compute_day_slots(schedule, MONDAY, 30) == []


def test_to_payload_formats_both_styles() -> None:
    annotated = [SlotAvailability(at(9), True), SlotAvailability(at(9, 30), False)]

    assert to_payload(annotated) == [
        {'time': '09:00', 'available': True},
        {'time': '09:30', 'available': False},
    ]
    assert to_payload(annotated, available_only=True) == ['09:00']


def test_compute_day_slots_generates_each_shift_on_its_own_grid() -> None:
    schedule = {
        'monday': {
            'intervals': [{'start': '09:00', 'end': '10:45'}, {'start': '10:45', 'end': '12:00'}],
        },
    }

    annotated = compute_day_slots(schedule, MONDAY, 30)

    assert available_starts(annotated) == [at(9), at(9, 30), at(10), at(10, 45), at(11, 15)]
