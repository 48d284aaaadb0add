import os
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from backend.auth.jwt_handler import create_access_token  # noqa: E402
from backend.core import config  # noqa: E402
from backend.database import Database, get_db  # noqa: E402
from backend.main import create_app  # noqa: E402
from backend.models.availability import AvailabilityWindow, CounselorSettings, TimeOff  # noqa: E402
from backend.models.user import CounselorProfile, User  # noqa: E402
from backend.routes import appointment_routes  # noqa: E402
from backend.services.booking_service import BookingService  # noqa: E402

UTC = ZoneInfo('UTC')
NOW = datetime(2030, 1, 1, 0, 0)
MONDAY = date(2030, 1, 7)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture(autouse=True)
def utc_scheduling_zone(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'SCHEDULING_TIMEZONE', 'UTC')


@pytest.fixture
def database():
    database = Database('sqlite://')
    database.create_schema()
    try:
        yield database
    finally:
        database.drop_schema()
        database.dispose()


@pytest.fixture
def db(database: Database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db: Session):
    counter = {'value': 0}

    def _make_user(role: str = 'student', *, is_active: bool = True, **fields) -> User:
        counter['value'] += 1
        user = User(
            email=fields.pop('email', f'{role}{counter["value"]}@campus.edu'),
            first_name=fields.pop('first_name', role.title()),
            last_name=fields.pop('last_name', str(counter['value'])),
            role=role,
            is_active=is_active,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_counselor(db: Session, make_user):
    def _make_counselor(
        *,
        slot_minutes: int | None = 30,
        windows: tuple[tuple[int, time, time], ...] = ((1, time(9, 0), time(12, 0)),),
        verified: bool = True,
        **fields,
    ) -> User:
        counselor = make_user('counselor', **fields)
        db.add(CounselorProfile(user_id=counselor.id, specialization='Anxiety', languages_spoken='en', is_verified=verified))
        if slot_minutes is not None:
            db.add(CounselorSettings(counselor_id=counselor.id, slot_minutes=slot_minutes))
        for weekday, start_time, end_time in windows:
            db.add(AvailabilityWindow(counselor_id=counselor.id, weekday=weekday, start_time=start_time, end_time=end_time))
        db.commit()
        return counselor

    return _make_counselor


@pytest.fixture
def add_time_off(db: Session):
    def _add_time_off(counselor: User, start_at: datetime, end_at: datetime) -> TimeOff:
        time_off = TimeOff(counselor_id=counselor.id, start_at=start_at, end_at=end_at)
        db.add(time_off)
        db.commit()
        return time_off

    return _add_time_off


@pytest.fixture
def service(db: Session) -> BookingService:
    return BookingService(db, zone=UTC, clock=fixed_clock)


@pytest.fixture
def app(database: Database):
    application = create_app(database)

    def fixed_clock_booking_service(db: Session = Depends(get_db)) -> BookingService:
        return BookingService(db, zone=UTC, clock=fixed_clock)

    application.dependency_overrides[appointment_routes.get_booking_service] = fixed_clock_booking_service
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def auth_headers(user: User) -> dict[str, str]:
    return {'Authorization': f'Bearer {create_access_token(user.id, user.role)}'}


@pytest.fixture
def headers_for():
    return auth_headers
