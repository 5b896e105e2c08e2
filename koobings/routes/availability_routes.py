from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from koobings.core import config
from koobings.database import get_db
from koobings.models.service import Service
from koobings.models.staff import Staff
from koobings.routes.common import (
    DATABASE_UNAVAILABLE_DETAIL,
    business_now,
    day_bounds,
    ensure_database_ready,
    load_busy_periods,
    parse_iso_date,
)
from koobings.scheduling.errors import MalformedScheduleInput
from koobings.scheduling.slots import available_starts, compute_day_slots, to_payload

router = APIRouter(tags=['availability'])


class AvailableStaffResponse(BaseModel):
    id: int
    name: str
    available_slots: int


def get_service_or_404(db: Session, service_id: int) -> Service:
    service = db.query(Service).filter(Service.id == service_id, Service.is_active.is_(True)).first()
    if not service:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Service not found.',
        )
    return service


def staff_schedule(staff: Staff) -> dict | None:
    return staff.availability.schedule if staff.availability else None


@router.get('/slots')
def list_slots(
    staff_id: int | None = Query(default=None),
    service_id: int | None = Query(default=None),
    date: str | None = Query(default=None),
    duration: int | None = Query(default=None),
    available_only: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    if staff_id is None or service_id is None or not date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Staff ID, service ID and date are required.',
        )

    target_date = parse_iso_date(date)

    if duration is not None and duration <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Duration must be a positive number of minutes.',
        )

    ensure_database_ready()

    try:
        staff = db.query(Staff).filter(Staff.id == staff_id, Staff.is_active.is_(True)).first()
        if not staff:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Staff member not found.',
            )

        service = get_service_or_404(db, service_id)
        if service.business_id != staff.business_id or not service.is_performed_by(staff.id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Service not found.',
            )

        duration_minutes = duration or service.duration
        range_start, range_end = day_bounds(target_date)
        busy = load_busy_periods(db, staff.id, range_start, range_end)

        annotated = compute_day_slots(
            staff_schedule(staff),
            target_date,
            duration_minutes,
            busy=busy,
            now=business_now(staff.business),
            step_minutes=config.SLOT_STEP_MINUTES,
        )

        return to_payload(annotated, available_only=available_only)
    except MalformedScheduleInput as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/staff', response_model=list[AvailableStaffResponse])
def list_available_staff(
    service_id: int = Query(...),
    date: str = Query(...),
    db: Session = Depends(get_db),
):
    target_date = parse_iso_date(date)

    ensure_database_ready()

    try:
        service = get_service_or_404(db, service_id)
        staff_members = db.query(Staff).filter(
            Staff.business_id == service.business_id,
            Staff.is_active.is_(True),
        ).order_by(Staff.name.asc()).all()

        range_start, range_end = day_bounds(target_date)
        available_staff: list[AvailableStaffResponse] = []

        for staff in staff_members:
            if not service.is_performed_by(staff.id):
                continue

            annotated = compute_day_slots(
                staff_schedule(staff),
                target_date,
                service.duration,
                busy=load_busy_periods(db, staff.id, range_start, range_end),
                now=business_now(staff.business),
                step_minutes=config.SLOT_STEP_MINUTES,
            )
            open_slots = available_starts(annotated)
            if open_slots:
                available_staff.append(
                    AvailableStaffResponse(id=staff.id, name=staff.name, available_slots=len(open_slots))
                )

        return available_staff
    except MalformedScheduleInput as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
