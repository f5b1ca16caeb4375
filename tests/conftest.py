"""
Pytest Configuration and Shared Fixtures
========================================

This module provides shared fixtures for all MediCare Reminder tests.
Fixtures include database sessions, test clients, and sample data.
"""

import os
import sys
from datetime import datetime, date, timedelta
from typing import Generator, Dict, Any, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Keep the app away from the on-disk database and real timers
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("REMINDERS_ENABLED", "false")

from database import Base, build_engine, get_db
from models import User, Medicine, DoseLog, DoseStatus, TimeSlot, MedicineColor
from actions.quick_confirm import card_sessions
from app import app


# ==================== DATABASE FIXTURES ====================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite"""
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)

    yield engine

    # Cleanup
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a test database session"""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine
    )

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database override"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_card_sessions():
    """Guard sessions are process-wide; isolate them per test"""
    card_sessions.clear()
    yield
    card_sessions.clear()


# ==================== SAMPLE DATA FIXTURES ====================

@pytest.fixture
def sample_user_data() -> Dict[str, Any]:
    """Sample profile data for creating test users"""
    return {
        "name": "Asha Rao",
        "email": "asha.rao@example.com",
        "age": 67,
        "gender": "female",
        "caretaker_email": "ravi.rao@example.com"
    }


@pytest.fixture
def sample_medicine_data() -> Dict[str, Any]:
    """Medicine taken morning and night"""
    return {
        "name": "Metformin",
        "dosage": "500mg",
        "morning": True,
        "morning_time": "08:00",
        "afternoon": False,
        "afternoon_time": "13:00",
        "night": True,
        "night_time": "21:00",
        "before_food": False,
        "days_remaining": 30,
        "start_date": date.today()
    }


@pytest.fixture
def test_user(db_session: Session, sample_user_data: Dict) -> User:
    """Create and return a test user"""
    user = User(**sample_user_data)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_medicine(db_session: Session, test_user: User, sample_medicine_data: Dict) -> Medicine:
    """Create and return a test medicine linked to test user"""
    medicine = Medicine(
        user_id=test_user.id,
        color=MedicineColor.PRIMARY,
        **sample_medicine_data
    )
    db_session.add(medicine)
    db_session.commit()
    db_session.refresh(medicine)
    return medicine


@pytest.fixture
def test_dose_log(db_session: Session, test_user: User, test_medicine: Medicine) -> DoseLog:
    """A pending morning dose for today"""
    today = date.today()
    log = DoseLog(
        user_id=test_user.id,
        medicine_id=test_medicine.id,
        scheduled_date=today,
        scheduled_time=datetime.combine(today, datetime.min.time()).replace(hour=8),
        status=DoseStatus.PENDING,
        time_slot=TimeSlot.MORNING
    )
    db_session.add(log)
    db_session.commit()
    db_session.refresh(log)
    return log


@pytest.fixture
def make_dose_log(db_session: Session, test_user: User, test_medicine: Medicine):
    """Factory for dose logs with a given status and scheduled time"""

    def _make(
        status: DoseStatus,
        scheduled_time: datetime,
        time_slot: TimeSlot = TimeSlot.MORNING,
        medicine: Medicine = None
    ) -> DoseLog:
        med = medicine or test_medicine
        log = DoseLog(
            user_id=test_user.id,
            medicine_id=med.id,
            scheduled_date=scheduled_time.date(),
            scheduled_time=scheduled_time,
            status=status,
            time_slot=time_slot,
            taken_time=scheduled_time if status in (DoseStatus.TAKEN, DoseStatus.SUSPECTED) else None
        )
        db_session.add(log)
        db_session.commit()
        db_session.refresh(log)
        return log

    return _make


@pytest.fixture
def history_logs(make_dose_log) -> List[DoseLog]:
    """Two fully-taken days ending today, and a day with a miss before that"""
    now = datetime.now().replace(hour=8, minute=0, second=0, microsecond=0)
    logs = []
    for days_ago, slot, status in [
        (0, TimeSlot.MORNING, DoseStatus.TAKEN),
        (0, TimeSlot.NIGHT, DoseStatus.TAKEN),
        (1, TimeSlot.MORNING, DoseStatus.TAKEN),
        (2, TimeSlot.MORNING, DoseStatus.MISSED),
        (2, TimeSlot.NIGHT, DoseStatus.TAKEN),
    ]:
        when = now - timedelta(days=days_ago)
        if slot == TimeSlot.NIGHT:
            when = when.replace(hour=21)
        logs.append(make_dose_log(status, when, time_slot=slot))
    return logs


# ==================== MARKERS ====================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "api: mark test as an API test")
