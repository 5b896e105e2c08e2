from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from koobings.core import config


def _connect_args(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(config.DATABASE_URL, connect_args=_connect_args(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False
_unavailability_schema_checked = False


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('duration', 'ALTER TABLE appointments ADD COLUMN duration INTEGER'),
            ('notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR'),
            ('created_at', 'ALTER TABLE appointments ADD COLUMN created_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_staff_start ON appointments(staff_id, scheduled_for)')
            )
            connection.execute(text('DROP INDEX IF EXISTS uq_appointments_staff_slot'))
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_staff_live_slot ON appointments(staff_id, scheduled_for) '
                    "WHERE status IN ('PENDING', 'CONFIRMED', 'ACCEPTED')"
                )
            )

        _appointment_schema_checked = True


def ensure_unavailability_schema() -> None:
    global _unavailability_schema_checked

    if _unavailability_schema_checked:
        return

    with _schema_lock:
        if _unavailability_schema_checked:
            return

        inspector = inspect(engine)

        if 'staff_unavailability' not in inspector.get_table_names():
            _unavailability_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('staff_unavailability')}

        with engine.begin() as connection:
            if 'reason' not in existing_columns:
                connection.execute(text('ALTER TABLE staff_unavailability ADD COLUMN reason VARCHAR'))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_staff_unavailability_range '
                    'ON staff_unavailability(staff_id, start_time, end_time)'
                )
            )

        _unavailability_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
