# tests/conftest.py
import os
import tempfile
from datetime import date, datetime, time, timedelta

os.environ["SKIP_DB_INIT"] = "1"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.db import get_db, init_db, make_engine
from app.deps import get_admin_policy
from app.main import app
from app.models import Booking
from app.policy import EmailAllowListPolicy, Principal
from app.repository import InMemoryBookingRepository, new_id
from app.workflow import BookingWorkflow

ADMIN_EMAIL = "admin@example.com"

MEMBER = Principal(id="u-1", email="u1@example.com", display_name="User1")
OTHER = Principal(id="u-2", email="u2@example.com", display_name="User2")
ADMIN = Principal(id="a-1", email="Admin@Example.com", display_name="Admin")

# Fixed "now" for workflow tests
NOW = datetime(2025, 2, 1, 9, 0)


def headers_for(principal):
    return {
        "X-User-Id": principal.id,
        "X-User-Email": principal.email,
        "X-User-Name": principal.display_name,
    }


def future_day(days=7):
    return date.today() + timedelta(days=days)


@pytest.fixture(scope="function")
def test_db_session():
    # temp DB
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    engine = make_engine(f"sqlite:///{tmp.name}")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    init_db(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
        os.unlink(tmp.name)


@pytest.fixture(scope="function")
def client(test_db_session):
    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_admin_policy] = lambda: EmailAllowListPolicy([ADMIN_EMAIL])

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def member_headers():
    return headers_for(MEMBER)


@pytest.fixture
def other_headers():
    return headers_for(OTHER)


@pytest.fixture
def admin_headers():
    return headers_for(ADMIN)


@pytest.fixture
def repo():
    return InMemoryBookingRepository()


@pytest.fixture
def workflow(repo):
    return BookingWorkflow(repo, admin_policy=EmailAllowListPolicy([ADMIN_EMAIL]), clock=lambda: NOW)


# —— Factories ——
@pytest.fixture
def make_booking(test_db_session):
    def _make_booking(venue="auditorium", day=None, start="10:00", end="11:00",
                      status="pending", requester=MEMBER, purpose="meeting"):
        day = day or future_day()
        b = Booking(
            id=new_id(),
            requester_id=requester.id,
            requester_display_name=requester.display_name,
            requester_email=requester.email,
            venue=venue,
            starts_at=datetime.combine(day, time.fromisoformat(start)),
            ends_at=datetime.combine(day, time.fromisoformat(end)),
            purpose=purpose,
            participant_count=10,
            status=status,
            created_at=datetime.now(),
        )
        test_db_session.add(b)
        test_db_session.commit()
        return b
    return _make_booking


@pytest.fixture
def seed(repo):
    """Insert a row straight into the in-memory store, bypassing the workflow."""
    def _seed(venue="auditorium", day=date(2025, 3, 1), start="10:00", end="11:00",
              status="pending", requester=MEMBER):
        return repo.create_booking({
            "requester_id": requester.id,
            "requester_display_name": requester.display_name,
            "requester_email": requester.email,
            "venue": venue,
            "starts_at": datetime.combine(day, time.fromisoformat(start)),
            "ends_at": datetime.combine(day, time.fromisoformat(end)),
            "purpose": "seeded",
            "participant_count": 5,
            "special_requirements": None,
            "status": status,
            "created_at": NOW,
        })
    return _seed
