import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from koobings.auth.dependencies import require_business_user
from koobings.database import get_db
from koobings.models.availability import StaffAvailability, StaffUnavailability
from koobings.models.user import User
from koobings.routes.common import (
    DATABASE_UNAVAILABLE_DETAIL,
    ensure_database_ready,
    get_business_staff,
    to_business_local,
)
from koobings.scheduling.errors import MalformedScheduleInput
from koobings.scheduling.schedule import normalize_schedule

router = APIRouter(tags=['staff'])

logger = logging.getLogger(__name__)


class StaffScheduleRequest(BaseModel):
    schedule: dict[str, Any]


class StaffScheduleResponse(BaseModel):
    staff_id: int
    schedule: dict[str, Any]


class UnavailabilityRequest(BaseModel):
    start_time: datetime
    end_time: datetime
    reason: str | None = None

    @model_validator(mode='after')
    def validate_range(self) -> 'UnavailabilityRequest':
        if (self.start_time.tzinfo is None) != (self.end_time.tzinfo is None):
            raise ValueError('Start and end times must both carry a timezone offset, or neither.')
        if self.end_time <= self.start_time:
            raise ValueError('Unavailability must end after it starts.')
        return self


class UpdateUnavailabilityRequest(BaseModel):
    start_time: datetime | None = None
    end_time: datetime | None = None
    reason: str | None = None


class UnavailabilityResponse(BaseModel):
    id: int
    staff_id: int
    start_time: datetime
    end_time: datetime
    reason: str | None = None

    class Config:
        from_attributes = True


@router.get('/{staff_id}/availability', response_model=StaffScheduleResponse)
def get_staff_schedule(
    staff_id: int,
    current_user: User = Depends(require_business_user),
    db: Session = Depends(get_db),
):
    staff = get_business_staff(db, staff_id, current_user)
    raw_schedule = staff.availability.schedule if staff.availability else None

    try:
        return StaffScheduleResponse(staff_id=staff.id, schedule=normalize_schedule(raw_schedule))
    except MalformedScheduleInput as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.put('/{staff_id}/availability', response_model=StaffScheduleResponse)
def update_staff_schedule(
    staff_id: int,
    data: StaffScheduleRequest,
    current_user: User = Depends(require_business_user),
    db: Session = Depends(get_db),
):
    try:
        schedule = normalize_schedule(data.schedule)
    except MalformedScheduleInput as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    try:
        staff = get_business_staff(db, staff_id, current_user)
        if staff.availability is None:
            staff.availability = StaffAvailability(schedule=schedule)
        else:
            staff.availability.schedule = schedule
        db.commit()

        logger.info("Updated weekly schedule for staff %s", staff.id)
        return StaffScheduleResponse(staff_id=staff.id, schedule=schedule)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/{staff_id}/unavailability', response_model=list[UnavailabilityResponse])
def list_unavailability(
    staff_id: int,
    current_user: User = Depends(require_business_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()
    staff = get_business_staff(db, staff_id, current_user)

    return db.query(StaffUnavailability).filter(
        StaffUnavailability.staff_id == staff.id,
    ).order_by(StaffUnavailability.start_time.asc()).all()


@router.post('/{staff_id}/unavailability', response_model=UnavailabilityResponse, status_code=status.HTTP_201_CREATED)
def create_unavailability(
    staff_id: int,
    data: UnavailabilityRequest,
    current_user: User = Depends(require_business_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        staff = get_business_staff(db, staff_id, current_user)
        period = StaffUnavailability(
            staff_id=staff.id,
            start_time=to_business_local(data.start_time, staff.business),
            end_time=to_business_local(data.end_time, staff.business),
            reason=data.reason,
        )
        db.add(period)
        db.commit()
        db.refresh(period)

        return period
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.patch('/{staff_id}/unavailability/{unavailability_id}', response_model=UnavailabilityResponse)
def update_unavailability(
    staff_id: int,
    unavailability_id: int,
    data: UpdateUnavailabilityRequest,
    current_user: User = Depends(require_business_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        staff = get_business_staff(db, staff_id, current_user)
        period = db.query(StaffUnavailability).filter(
            StaffUnavailability.id == unavailability_id,
            StaffUnavailability.staff_id == staff.id,
        ).first()
        if not period:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Unavailability period not found.',
            )

        start_time = to_business_local(data.start_time, staff.business) if data.start_time else period.start_time
        end_time = to_business_local(data.end_time, staff.business) if data.end_time else period.end_time
        if end_time <= start_time:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Unavailability must end after it starts.',
            )

        period.start_time = start_time
        period.end_time = end_time
        if data.reason is not None:
            period.reason = data.reason
        db.commit()
        db.refresh(period)

        return period
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.delete('/{staff_id}/unavailability/{unavailability_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_unavailability(
    staff_id: int,
    unavailability_id: int,
    current_user: User = Depends(require_business_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        staff = get_business_staff(db, staff_id, current_user)
        period = db.query(StaffUnavailability).filter(
            StaffUnavailability.id == unavailability_id,
            StaffUnavailability.staff_id == staff.id,
        ).first()
        if not period:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Unavailability period not found.',
            )

        db.delete(period)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
