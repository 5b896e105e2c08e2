import logging
from datetime import date, datetime, time, timedelta

import pytz
from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from koobings.core import config
from koobings.database import ensure_appointment_schema, ensure_unavailability_schema
from koobings.models.appointment import Appointment
from koobings.models.availability import StaffUnavailability
from koobings.models.business import Business
from koobings.models.staff import Staff
from koobings.models.user import User
from koobings.scheduling.slots import (
    BLOCKING_STATUSES,
    BusyPeriod,
    busy_periods_from_appointments,
    busy_periods_from_unavailability,
)

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

# Appointments are looked up from the previous day so ones running past midnight still block.
BUSY_LOOKBACK = timedelta(days=1)


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
        ensure_unavailability_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def business_timezone(business: Business | None):
    tz_name = (business.timezone if business else None) or config.DEFAULT_TIMEZONE
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning("Invalid timezone '%s' for business %s, using UTC", tz_name, business.id if business else None)
        return pytz.UTC


def business_now(business: Business | None) -> datetime:
    """Current wall-clock time in the business timezone, as a naive datetime."""
    return datetime.now(business_timezone(business)).replace(tzinfo=None)


def to_business_local(value: datetime, business: Business | None) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(business_timezone(business)).replace(tzinfo=None)


def parse_iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Date must be an ISO date (YYYY-MM-DD).',
        ) from exc


def day_bounds(target_date: date) -> tuple[datetime, datetime]:
    day_start = datetime.combine(target_date, time.min)
    return day_start, day_start + timedelta(days=1)


def load_busy_periods(
    db: Session,
    staff_id: int,
    range_start: datetime,
    range_end: datetime,
    exclude_appointment_id: int | None = None,
) -> list[BusyPeriod]:
    appointment_query = db.query(Appointment).filter(
        Appointment.staff_id == staff_id,
        Appointment.status.in_(BLOCKING_STATUSES),
        Appointment.scheduled_for >= range_start - BUSY_LOOKBACK,
        Appointment.scheduled_for < range_end,
    )
    if exclude_appointment_id is not None:
        appointment_query = appointment_query.filter(Appointment.id != exclude_appointment_id)

    unavailability = db.query(StaffUnavailability).filter(
        StaffUnavailability.staff_id == staff_id,
        StaffUnavailability.start_time < range_end,
        StaffUnavailability.end_time > range_start,
    ).all()

    return (
        busy_periods_from_appointments(appointment_query.all())
        + busy_periods_from_unavailability(unavailability)
    )


def get_business_staff(db: Session, staff_id: int, current_user: User) -> Staff:
    staff = db.query(Staff).filter(
        Staff.id == staff_id,
        Staff.business_id == current_user.business_id,
    ).first()
    if not staff:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Staff member not found.',
        )
    return staff
