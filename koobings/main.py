import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from koobings.core import config
from koobings.database import Base, engine, ensure_appointment_schema, ensure_unavailability_schema
from koobings.migrations import run_pending_migrations
from koobings import models  # noqa: F401
from koobings.routes import appointment_routes, auth_routes, availability_routes, staff_routes

app = FastAPI(title='Koobings API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        ensure_unavailability_schema()
        if config.RUN_MIGRATIONS_ON_STARTUP:
            run_pending_migrations()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Koobings API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(staff_routes.router, prefix='/staff')
