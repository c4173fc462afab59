"""
Shared fixtures: an in-memory SQLite database built from the ORM models,
a scripted distance provider and an API client wired to both.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SWEEP_ENABLED", "false")

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from expresslane.auth.schemas import UserSession
from expresslane.auth.utils import create_access_token, get_password_hash
from expresslane.database import Base, get_db
from expresslane.exceptions import DistanceServiceUnavailableError
from expresslane.main import app
from expresslane.models import TollBooth, User, UserRole
from expresslane.tolls.distance import DistanceProvider, DistanceResult, get_distance_provider


class FakeDistanceProvider(DistanceProvider):
    """Answers from a table keyed by destination coordinate"""

    def __init__(self):
        self.routes = {}
        self.error = None
        self.calls = []

    @staticmethod
    def _key(lat, lng):
        return (round(float(lat), 6), round(float(lng), 6))

    def set_route(self, toll, km, minutes=15):
        meters = int((Decimal(str(km)) * 1000).to_integral_value())
        self.routes[self._key(toll.latitude, toll.longitude)] = DistanceResult(
            distance_meters=meters, duration_seconds=int(minutes * 60)
        )

    def fail_route(self, toll, status="ZERO_RESULTS"):
        self.routes[self._key(toll.latitude, toll.longitude)] = DistanceResult(error=status)

    def get_distances(self, origin, destinations):
        self.calls.append((origin, list(destinations)))
        if self.error is not None:
            raise self.error
        results = [
            self.routes.get(self._key(d.lat, d.lng), DistanceResult(error="NOT_FOUND"))
            for d in destinations
        ]
        if len(destinations) == 1 and not results[0].ok:
            raise DistanceServiceUnavailableError(f"Distance service error: {results[0].error}")
        return results


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def provider():
    return FakeDistanceProvider()


@pytest.fixture
def make_toll(db):
    counter = {"n": 0}

    def _make(name=None, fee="50.00", highway="NH66"):
        counter["n"] += 1
        n = counter["n"]
        toll = TollBooth(
            name=name or f"Toll Plaza {n}",
            highway=highway,
            latitude=Decimal("10.0") + Decimal(n) / 100,
            longitude=Decimal("76.0") + Decimal(n) / 100,
            express_lane_fee=Decimal(fee)
        )
        db.add(toll)
        db.commit()
        db.refresh(toll)
        return toll

    return _make


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(balance="1000.00", role=UserRole.DRIVER, email=None):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            password=get_password_hash("secret123"),
            role=role,
            license_plate=f"KL07AB{1000 + counter['n']}" if role == UserRole.DRIVER else None,
            balance=Decimal(balance)
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def driver(make_user):
    return make_user(balance="200.00")


@pytest.fixture
def admin(make_user):
    return make_user(balance="0.00", role=UserRole.ADMIN, email="admin@example.com")


@pytest.fixture
def driver_session(driver):
    return UserSession(user_id=driver.id, role=UserRole.DRIVER)


@pytest.fixture
def admin_session(admin):
    return UserSession(user_id=admin.id, role=UserRole.ADMIN)


def auth_headers(user):
    token = create_access_token(
        data={"sub": str(user.id), "role": user.role.value},
        expires_delta=timedelta(minutes=5)
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(session_factory, provider):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_distance_provider] = lambda: provider
    yield TestClient(app)
    app.dependency_overrides.clear()
