"""
Fleet service test configuration
================================

Every test runs against a fresh in-memory SQLite schema. The environment is
set before any application module is imported so the shared engine binds to
the test database.
"""
import itertools
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from shared.core.auth import create_user_token
from shared.core.database import Base, SessionLocal, engine
from shared.models.users import Users
from shared.utils.enums import UserRole, UserStatus
from fleet_service.app.main import app
from fleet_service.app.models import Company, Equipment

_sequence = itertools.count(1)


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_company(db):
    def _make(name=None, **fields):
        company = Company(name=name or f"Company {next(_sequence)}", **fields)
        db.add(company)
        db.commit()
        db.refresh(company)
        return company
    return _make


@pytest.fixture
def make_user(db):
    def _make(company, role=UserRole.MANAGER, status=UserStatus.ACTIVE, email=None):
        n = next(_sequence)
        user = Users(
            company_id=company.id if company else None,
            username=f"user{n}",
            first_name="User",
            last_name=str(n),
            email=email or f"user{n}@example.com",
            role=role.value,
            status=status.value,
        )
        # plain hash is enough, nobody logs in through this service
        user.password = "not-a-real-hash"
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_equipment(db):
    def _make(company, **fields):
        n = next(_sequence)
        fields.setdefault("equipment_type", "vehicle")
        equipment = Equipment(
            billun_id=f"BLN-2024-{n:06d}",
            internal_id=f"INT-{n}",
            license_plate=f"AB-{n:03d}-CD",
            name=f"Truck {n}",
            company_id=company.id,
            **fields,
        )
        db.add(equipment)
        db.commit()
        db.refresh(equipment)
        return equipment
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_user_token(user)}"}
    return _headers


@pytest.fixture
def acme(make_company):
    return make_company("Acme Logistics")


@pytest.fixture
def borel(make_company):
    return make_company("Borel Transports")


@pytest.fixture
def invite_payload():
    def _payload(target, **overrides):
        payload = {
            "targetCompanyName": target.name if hasattr(target, "name") else target,
            "contactEmail": "fleet.manager@example.com",
            "contactName": "Jeanne Martin",
            "message": "Let's share our fleets",
        }
        payload.update(overrides)
        return payload
    return _payload
