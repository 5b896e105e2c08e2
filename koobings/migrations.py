"""
Versioned data-correction migrations.

Each migration runs once per database: applied versions are recorded in
``schema_migrations``. Migration functions check before they write, so a
partially applied run can be repeated safely.
"""

import logging
from datetime import timedelta
from typing import Callable, List, NamedTuple

from sqlalchemy.orm import Session

from koobings.database import SessionLocal
from koobings.models.appointment import ACCEPTED, CONFIRMED, Appointment
from koobings.models.availability import StaffAvailability
from koobings.models.schema_migration import SchemaMigration
from koobings.models.service import Service
from koobings.scheduling.errors import MalformedScheduleInput
from koobings.scheduling.intervals import overlaps
from koobings.scheduling.schedule import normalize_schedule
from koobings.scheduling.slots import BLOCKING_STATUSES

logger = logging.getLogger(__name__)

# Earliest start, relative to a row, of a booking that can still run into it.
CLASH_LOOKBACK = timedelta(days=1)


class Migration(NamedTuple):
    version: str
    description: str
    apply: Callable[[Session], int]


def normalize_staff_schedules(db: Session) -> int:
    changed = 0
    for availability in db.query(StaffAvailability).all():
        try:
            normalized = normalize_schedule(availability.schedule)
        except MalformedScheduleInput as exc:
            logger.warning("Skipping schedule of staff %s: %s", availability.staff_id, exc)
            continue

        if normalized != availability.schedule:
            availability.schedule = normalized
            changed += 1
    return changed


def backfill_appointment_durations(db: Session) -> int:
    changed = 0
    appointments = db.query(Appointment).filter(
        (Appointment.duration.is_(None)) | (Appointment.duration <= 0),
        Appointment.service_id.is_not(None),
    ).all()

    for appointment in appointments:
        service = db.get(Service, appointment.service_id)
        if service is None or not service.duration:
            continue
        appointment.duration = service.duration
        changed += 1
    return changed


def _find_clash(db: Session, appointment: Appointment) -> Appointment | None:
    start = appointment.scheduled_for
    end = start + timedelta(minutes=appointment.duration)
    neighbours = db.query(Appointment).filter(
        Appointment.id != appointment.id,
        Appointment.staff_id == appointment.staff_id,
        Appointment.status.in_(BLOCKING_STATUSES),
        Appointment.scheduled_for >= start - CLASH_LOOKBACK,
        Appointment.scheduled_for < end,
    ).order_by(Appointment.scheduled_for).all()

    for other in neighbours:
        if not other.duration:
            continue
        if overlaps(start, end, other.scheduled_for, other.scheduled_for + timedelta(minutes=other.duration)):
            return other
    return None


def map_accepted_to_confirmed(db: Session) -> int:
    """Promote ACCEPTED rows to CONFIRMED unless that would overlap another live booking."""
    changed = 0
    for appointment in db.query(Appointment).filter(Appointment.status == ACCEPTED).all():
        if not appointment.duration:
            logger.warning("Appointment %s left as ACCEPTED: it has no duration", appointment.id)
            continue

        clash = _find_clash(db, appointment)
        if clash is not None:
            logger.warning(
                "Appointment %s left as ACCEPTED: it overlaps appointment %s",
                appointment.id,
                clash.id,
            )
            continue
        appointment.status = CONFIRMED
        changed += 1
    return changed


MIGRATIONS: List[Migration] = [
    Migration('0001', 'Normalize staff schedules to the canonical weekday shape', normalize_staff_schedules),
    Migration('0002', 'Back-fill missing appointment durations from their service', backfill_appointment_durations),
    Migration('0003', 'Map legacy ACCEPTED appointments to CONFIRMED', map_accepted_to_confirmed),
]


def applied_versions(db: Session) -> set[str]:
    return {version for (version,) in db.query(SchemaMigration.version).all()}


def run_pending_migrations(session_factory=SessionLocal, migrations: List[Migration] | None = None) -> List[str]:
    """Apply every migration not yet recorded; returns the versions applied by this call."""
    pending = MIGRATIONS if migrations is None else migrations
    newly_applied: List[str] = []

    db = session_factory()
    try:
        done = applied_versions(db)
        for migration in pending:
            if migration.version in done:
                continue

            try:
                changed = migration.apply(db)
                db.add(SchemaMigration(version=migration.version, description=migration.description))
                db.commit()
            except Exception:
                db.rollback()
                logger.exception("Migration %s failed", migration.version)
                raise

            logger.info("Applied migration %s (%s): %d rows changed", migration.version, migration.description, changed)
            newly_applied.append(migration.version)
    finally:
        db.close()

    return newly_applied
