from datetime import datetime, timezone

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from koobings.models import Appointment, Client, StaffUnavailability
from koobings.routes.appointment_routes import (
    CreateAppointmentRequest,
    UpdateAppointmentStatusRequest,
    create_appointment,
    list_appointments,
    update_appointment_status,
)


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('koobings.routes.appointment_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr(
        'koobings.routes.appointment_routes.business_now',
        lambda business: datetime(2026, 1, 5, 8, 0),
    )


def booking(salon, **overrides) -> CreateAppointmentRequest:
    fields = {
        'staff_id': salon['staff'].id,
        'service_id': salon['service'].id,
        'scheduled_for': datetime(2026, 1, 5, 10, 0),
        'client_name': 'Julia Costa',
        'client_email': 'Julia@Example.com ',
    }
    fields.update(overrides)
    return CreateAppointmentRequest(**fields)


def test_create_appointment_request_normalizes_fields() -> None:
    request = CreateAppointmentRequest(
        staff_id=1,
        service_id=1,
        scheduled_for=datetime(2026, 1, 5, 9, 0),
        client_name='  Julia ',
        client_email=' JULIA@EXAMPLE.COM ',
        notes='   ',
    )

    assert request.client_name == 'Julia'
    assert request.client_email == 'julia@example.com'
    assert request.notes is None


@pytest.mark.parametrize(
    'overrides',
    [
        {'client_email': 'not-an-email'},
        {'client_name': '   '},
        {'duration': 0},
        {'notes': 'x' * 601},
    ],
)
def test_create_appointment_request_rejects_invalid_fields(overrides) -> None:
    fields = {
        'staff_id': 1,
        'service_id': 1,
        'scheduled_for': datetime(2026, 1, 5, 9, 0),
        'client_name': 'Julia',
        'client_email': 'julia@example.com',
    }
    fields.update(overrides)

    with pytest.raises(ValidationError):
        CreateAppointmentRequest(**fields)


def test_update_status_request_rejects_unknown_status() -> None:
    assert UpdateAppointmentStatusRequest(status=' confirmed ').status == 'CONFIRMED'
    with pytest.raises(ValidationError):
        UpdateAppointmentStatusRequest(status='maybe')


def test_create_appointment_books_pending_slot_and_creates_client(db, salon) -> None:
    appointment = create_appointment(booking(salon, notes='First visit'), db=db)

    assert appointment.status == 'PENDING'
    assert appointment.scheduled_for == datetime(2026, 1, 5, 10, 0)
    assert appointment.duration == 60
    client = db.get(Client, appointment.client_id)
    assert client.email == 'julia@example.com'
    assert client.business_id == salon['business'].id


def test_create_appointment_reuses_existing_client(db, salon) -> None:
    first = create_appointment(booking(salon), db=db)
    second = create_appointment(booking(salon, scheduled_for=datetime(2026, 1, 5, 15, 0)), db=db)

    assert first.client_id == second.client_id
    assert db.query(Client).count() == 1


def test_create_appointment_converts_aware_times_to_business_time(db, salon) -> None:
    appointment = create_appointment(
        booking(salon, scheduled_for=datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)),
        db=db,
    )

    # Lisbon is on UTC in January.
    assert appointment.scheduled_for == datetime(2026, 1, 5, 10, 0)


def test_create_appointment_rejects_overlapping_booking(db, salon) -> None:
    create_appointment(booking(salon), db=db)

    with pytest.raises(HTTPException) as exception_info:
        create_appointment(booking(salon, scheduled_for=datetime(2026, 1, 5, 10, 30)), db=db)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This time is already booked.'


def test_create_appointment_rejects_slot_held_by_legacy_accepted_booking(db, salon) -> None:
    db.add(Appointment(
        business_id=salon['business'].id,
        staff_id=salon['staff'].id,
        service_id=salon['service'].id,
        scheduled_for=datetime(2026, 1, 5, 10, 0),
        duration=60,
        status='ACCEPTED',
    ))
    db.commit()

    with pytest.raises(HTTPException) as exception_info:
        create_appointment(booking(salon), db=db)

    assert exception_info.value.status_code == 409
    assert db.query(Appointment).count() == 1


def test_create_appointment_allows_back_to_back_bookings(db, salon) -> None:
    create_appointment(booking(salon), db=db)
    after = create_appointment(booking(salon, scheduled_for=datetime(2026, 1, 5, 11, 0)), db=db)
    before = create_appointment(booking(salon, scheduled_for=datetime(2026, 1, 5, 9, 0)), db=db)

    assert after.id and before.id


def test_create_appointment_rejects_unavailability_period(db, salon) -> None:
    db.add(StaffUnavailability(
        staff_id=salon['staff'].id,
        start_time=datetime(2026, 1, 5, 0, 0),
        end_time=datetime(2026, 1, 6, 0, 0),
        reason='Vacation',
    ))
    db.commit()

    with pytest.raises(HTTPException) as exception_info:
        create_appointment(booking(salon), db=db)

    assert exception_info.value.status_code == 409


@pytest.mark.parametrize(
    'scheduled_for',
    [
        datetime(2026, 1, 5, 11, 30),
        datetime(2026, 1, 5, 16, 30),
        datetime(2026, 1, 5, 8, 30),
        datetime(2026, 1, 4, 10, 0),
    ],
)
def test_create_appointment_rejects_times_outside_working_hours(db, salon, monkeypatch, scheduled_for) -> None:
    monkeypatch.setattr(
        'koobings.routes.appointment_routes.business_now',
        lambda business: datetime(2026, 1, 1, 8, 0),
    )

    with pytest.raises(HTTPException) as exception_info:
        create_appointment(booking(salon, scheduled_for=scheduled_for), db=db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == "Appointment is outside the staff member's working hours."


def test_create_appointment_rejects_past_times(db, salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_appointment(booking(salon, scheduled_for=datetime(2026, 1, 5, 8, 0)), db=db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Appointments must be scheduled in the future.'


def test_create_appointment_returns_not_found_for_unknown_service(db, salon) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_appointment(booking(salon, service_id=999), db=db)

    assert exception_info.value.status_code == 404


def test_unique_slot_index_turns_a_lost_race_into_conflict(db, salon, monkeypatch) -> None:
    db.add(Appointment(
        business_id=salon['business'].id,
        staff_id=salon['staff'].id,
        service_id=salon['service'].id,
        scheduled_for=datetime(2026, 1, 5, 10, 0),
        duration=60,
        status='PENDING',
    ))
    db.commit()
    # Simulate the competing request passing the conflict check before the other insert committed.
    monkeypatch.setattr('koobings.routes.appointment_routes.ensure_no_conflict', lambda *args, **kwargs: None)

    with pytest.raises(HTTPException) as exception_info:
        create_appointment(booking(salon), db=db)

    assert exception_info.value.status_code == 409
    assert db.query(Appointment).count() == 1


def test_cancelled_appointment_frees_the_slot(db, salon) -> None:
    first = create_appointment(booking(salon), db=db)
    update_appointment_status(
        appointment_id=first.id,
        data=UpdateAppointmentStatusRequest(status='CANCELLED'),
        current_user=salon['owner'],
        db=db,
    )

    second = create_appointment(booking(salon), db=db)

    assert second.scheduled_for == first.scheduled_for


def test_update_appointment_status_rejects_invalid_transition(db, salon) -> None:
    appointment = create_appointment(booking(salon), db=db)
    update_appointment_status(
        appointment_id=appointment.id,
        data=UpdateAppointmentStatusRequest(status='REJECTED'),
        current_user=salon['owner'],
        db=db,
    )

    with pytest.raises(HTTPException) as exception_info:
        update_appointment_status(
            appointment_id=appointment.id,
            data=UpdateAppointmentStatusRequest(status='CONFIRMED'),
            current_user=salon['owner'],
            db=db,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'Cannot change an appointment from REJECTED to CONFIRMED.'


def test_update_appointment_status_is_scoped_to_the_business(db, salon) -> None:
    appointment = create_appointment(booking(salon), db=db)
    outsider = salon['owner']
    outsider.business_id = salon['business'].id + 1

    with pytest.raises(HTTPException) as exception_info:
        update_appointment_status(
            appointment_id=appointment.id,
            data=UpdateAppointmentStatusRequest(status='CONFIRMED'),
            current_user=outsider,
            db=db,
        )

    assert exception_info.value.status_code == 404


def test_list_appointments_filters_by_day(db, salon) -> None:
    create_appointment(booking(salon), db=db)
    create_appointment(booking(salon, scheduled_for=datetime(2026, 1, 6, 10, 0)), db=db)

    monday = list_appointments(date='2026-01-05', current_user=salon['owner'], db=db)
    everything = list_appointments(date=None, current_user=salon['owner'], db=db)

    assert [appointment.scheduled_for for appointment in monday] == [datetime(2026, 1, 5, 10, 0)]
    assert len(everything) == 2
