import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment before the app (and its settings) is imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite://"

from app.main import app
from app.api.deps import get_token_engine
from app.core.database import Base, get_db, get_redis
from app.core.security import TokenConfig, TokenEngine, UserRole, get_password_hash
from app.models import Admin, Appointment, AppointmentStatus, Doctor, Patient

TEST_SECRET = "test-secret-key"
TEST_PASSWORD = "Password123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FixedClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeRedis:
    """Just the commands the login rate limiter uses."""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, seconds, value):
        self.store[key] = str(value)

    def incr(self, key):
        self.store[key] = str(int(self.store.get(key, 0)) + 1)
        return int(self.store[key])


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FixedClock(datetime(2030, 1, 15, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def token_engine(clock):
    return TokenEngine(TokenConfig(secret=TEST_SECRET), clock=clock)


@pytest.fixture
def api_token_engine():
    # Wall-clock engine shared by the test and the app under test
    return TokenEngine(TokenConfig(secret=TEST_SECRET))


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def client(db_session, api_token_engine, fake_redis):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_token_engine] = lambda: api_token_engine
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_admin(db_session):
    def factory(username="admin", password=TEST_PASSWORD):
        admin = Admin(username=username, password_hash=get_password_hash(password))
        db_session.add(admin)
        db_session.commit()
        db_session.refresh(admin)
        return admin
    return factory


@pytest.fixture
def make_doctor(db_session):
    counter = {"n": 0}

    def factory(name="Dr. Asha Rao", specialty="Cardiology", email=None,
                available_times=("AM", "PM"), password=TEST_PASSWORD):
        counter["n"] += 1
        doctor = Doctor(
            name=name,
            specialty=specialty,
            email=email or f"doctor{counter['n']}@example.com",
            phone=f"90000000{counter['n']:02d}",
            password_hash=get_password_hash(password),
        )
        doctor.available_times = list(available_times)
        db_session.add(doctor)
        db_session.commit()
        db_session.refresh(doctor)
        return doctor
    return factory


@pytest.fixture
def make_patient(db_session):
    counter = {"n": 0}

    def factory(name="Maria Lopez", email=None, password=TEST_PASSWORD):
        counter["n"] += 1
        patient = Patient(
            name=name,
            email=email or f"patient{counter['n']}@example.com",
            phone=f"80000000{counter['n']:02d}",
            address="12 Harbour Road",
            password_hash=get_password_hash(password),
        )
        db_session.add(patient)
        db_session.commit()
        db_session.refresh(patient)
        return patient
    return factory


@pytest.fixture
def make_appointment(db_session):
    def factory(doctor, patient, when, status=AppointmentStatus.SCHEDULED):
        appointment = Appointment(
            doctor_id=doctor.id,
            patient_id=patient.id,
            appointment_time=when,
            status=AppointmentStatus(status).value,
        )
        db_session.add(appointment)
        db_session.commit()
        db_session.refresh(appointment)
        return appointment
    return factory


@pytest.fixture
def auth_headers(api_token_engine):
    def build(user_id, role: UserRole):
        return {"Authorization": f"Bearer {api_token_engine.issue(user_id, role)}"}
    return build

