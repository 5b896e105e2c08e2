import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from koobings.auth.dependencies import require_business_user
from koobings.database import get_db
from koobings.models.appointment import (
    ACCEPTED,
    APPOINTMENT_STATUSES,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    NO_SHOW,
    PENDING,
    REJECTED,
    Appointment,
)
from koobings.models.client import Client
from koobings.models.service import Service
from koobings.models.staff import Staff
from koobings.models.user import User
from koobings.routes.common import (
    DATABASE_UNAVAILABLE_DETAIL,
    business_now,
    day_bounds,
    ensure_database_ready,
    load_busy_periods,
    parse_iso_date,
    to_business_local,
)
from koobings.scheduling.errors import MalformedScheduleInput
from koobings.scheduling.intervals import overlaps
from koobings.scheduling.schedule import working_intervals_for_day

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600
ALLOWED_STATUS_TRANSITIONS = {
    PENDING: {CONFIRMED, REJECTED, CANCELLED},
    CONFIRMED: {COMPLETED, NO_SHOW, CANCELLED},
    ACCEPTED: {COMPLETED, NO_SHOW, CANCELLED},
}


class CreateAppointmentRequest(BaseModel):
    staff_id: int
    service_id: int
    scheduled_for: datetime
    client_name: str
    client_email: str
    client_phone: str | None = None
    notes: str | None = None
    duration: int | None = None

    @field_validator('client_name')
    @classmethod
    def validate_client_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Client name is required.')
        return normalized

    @field_validator('client_email')
    @classmethod
    def validate_client_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized or '@' not in normalized:
            raise ValueError('A valid client email is required.')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError('Duration must be a positive number of minutes.')
        return value


class UpdateAppointmentStatusRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in APPOINTMENT_STATUSES:
            raise ValueError('Invalid appointment status.')
        return normalized


class AppointmentResponse(BaseModel):
    id: int
    business_id: int
    staff_id: int
    service_id: int | None = None
    client_id: int | None = None
    scheduled_for: datetime
    duration: int
    status: str
    notes: str | None = None

    class Config:
        from_attributes = True


def find_or_create_client(db: Session, business_id: int, data: CreateAppointmentRequest) -> Client:
    client = db.query(Client).filter(
        Client.business_id == business_id,
        Client.email == data.client_email,
    ).first()

    if client is None:
        client = Client(
            business_id=business_id,
            name=data.client_name,
            email=data.client_email,
            phone=data.client_phone,
        )
        db.add(client)
        db.flush()
    elif data.client_phone and not client.phone:
        client.phone = data.client_phone

    return client


def ensure_within_working_hours(staff: Staff, start_time: datetime, end_time: datetime) -> None:
    schedule = staff.availability.schedule if staff.availability else None
    try:
        intervals = working_intervals_for_day(schedule, start_time.date())
    except MalformedScheduleInput as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    if not any(interval_start <= start_time and end_time <= interval_end for interval_start, interval_end in intervals):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Appointment is outside the staff member\'s working hours.',
        )


def ensure_no_conflict(
    db: Session,
    staff_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_appointment_id: int | None = None,
) -> None:
    busy = load_busy_periods(db, staff_id, start_time, end_time, exclude_appointment_id=exclude_appointment_id)
    if any(overlaps(start_time, end_time, period.start, period.end) for period in busy):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time is already booked.',
        )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(data: CreateAppointmentRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        # Row lock on the staff member serialises concurrent bookings for the same person.
        staff = db.query(Staff).filter(
            Staff.id == data.staff_id,
            Staff.is_active.is_(True),
        ).with_for_update().first()
        if not staff:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Staff member not found.',
            )

        service = db.query(Service).filter(
            Service.id == data.service_id,
            Service.business_id == staff.business_id,
            Service.is_active.is_(True),
        ).first()
        if not service or not service.is_performed_by(staff.id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Service not found.',
            )

        duration_minutes = data.duration or service.duration
        start_time = to_business_local(data.scheduled_for, staff.business).replace(second=0, microsecond=0)
        end_time = start_time + timedelta(minutes=duration_minutes)

        if start_time <= business_now(staff.business):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Appointments must be scheduled in the future.',
            )

        ensure_within_working_hours(staff, start_time, end_time)
        ensure_no_conflict(db, staff.id, start_time, end_time)

        client = find_or_create_client(db, staff.business_id, data)

        appointment = Appointment(
            business_id=staff.business_id,
            client_id=client.id,
            staff_id=staff.id,
            service_id=service.id,
            scheduled_for=start_time,
            duration=duration_minutes,
            status=PENDING,
            notes=data.notes,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)

        logger.info(
            "Booked appointment %s for staff %s at %s",
            appointment.id,
            staff.id,
            start_time.isoformat(),
        )
        return appointment
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Lost booking race for staff %s at %s", data.staff_id, data.scheduled_for)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time is already booked.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
    except HTTPException:
        db.rollback()
        raise


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    date: str | None = Query(default=None),
    current_user: User = Depends(require_business_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    query = db.query(Appointment).filter(Appointment.business_id == current_user.business_id)
    if date:
        range_start, range_end = day_bounds(parse_iso_date(date))
        query = query.filter(
            Appointment.scheduled_for >= range_start,
            Appointment.scheduled_for < range_end,
        )

    try:
        return query.order_by(Appointment.scheduled_for.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    current_user: User = Depends(require_business_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.business_id == current_user.business_id,
        ).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Appointment not found.',
            )

        current_status = (appointment.status or PENDING).upper()
        if data.status not in ALLOWED_STATUS_TRANSITIONS.get(current_status, set()):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f'Cannot change an appointment from {current_status} to {data.status}.',
            )

        if data.status == CONFIRMED:
            start_time = appointment.scheduled_for
            end_time = start_time + timedelta(minutes=appointment.duration or 0)
            ensure_no_conflict(db, appointment.staff_id, start_time, end_time, exclude_appointment_id=appointment.id)

        appointment.status = data.status
        db.commit()
        db.refresh(appointment)

        logger.info("Appointment %s moved from %s to %s", appointment.id, current_status, data.status)
        return appointment
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
