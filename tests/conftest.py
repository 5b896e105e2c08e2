import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from koobings.auth.passwords import hash_password  # noqa: E402
from koobings.database import Base  # noqa: E402
from koobings.models import Business, Service, Staff, StaffAvailability, User  # noqa: E402

WORKING_WEEK = {
    day: {
        'isWorking': True,
        'intervals': [{'start': '09:00', 'end': '17:00'}],
        'lunchBreak': {'start': '12:00', 'end': '13:00'},
    }
    for day in ('monday', 'tuesday', 'wednesday', 'thursday', 'friday')
}


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def salon(db):
    business = Business(name='Mari Nails', slug='mari-nails', timezone='Europe/Lisbon', settings={})
    db.add(business)
    db.flush()

    staff = Staff(business_id=business.id, name='Mari', email='mari@example.com')
    service = Service(business_id=business.id, name='Manicure', duration=60, price=25.0)
    db.add_all([staff, service])
    db.flush()

    db.add(StaffAvailability(staff_id=staff.id, schedule=WORKING_WEEK))
    owner = User(
        email='owner@example.com',
        hashed_password=hash_password('s3cret-pass'),
        role='business',
        business_id=business.id,
    )
    db.add(owner)
    db.commit()

    return {'business': business, 'staff': staff, 'service': service, 'owner': owner}
