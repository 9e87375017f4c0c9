"""Shared fixtures: in-memory database, seeded users and bearer tokens."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orderflow.main import app
from orderflow.domain.models import Base, User
from orderflow.infrastructure.db import get_db
from orderflow.infrastructure.auth_local import create_access_token

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

USERS = [
    # username, role, commission rate
    ("admin", "admin", None),
    ("vendor", "vendor", Decimal("10.00")),
    ("vendor2", "vendor", Decimal("8.00")),
    ("partner", "partner", Decimal("15.00")),
    ("producer_a", "producer", None),
    ("producer_b", "producer", None),
    ("producer_c", "producer", None),
    ("client", "client", None),
    ("logistics", "logistics", None),
    ("finance", "finance", None),
]

@pytest.fixture
def db():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def users(db):
    """Seeded users keyed by username."""
    rows = {}
    for username, role, rate in USERS:
        user = User(username=username, name=username.replace("_", " ").title(), role=role, commission_rate=rate)
        db.add(user)
        rows[username] = user
    db.commit()
    return {name: user.id for name, user in rows.items()}

@pytest.fixture
def client(db, users):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def auth(users):
    """auth("vendor") -> Authorization header for that seeded user."""
    roles = {username: role for username, role, _ in USERS}

    def headers(username: str) -> dict:
        token = create_access_token(username, users[username], roles[username])
        return {"Authorization": f"Bearer {token}"}

    return headers

def future(days: int = 10) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()

@pytest.fixture
def make_budget(client, auth, users):
    """Create a budget through the API; keyword overrides go into the payload."""
    def create(items=None, **overrides):
        payload = {
            "title": "Event kit",
            "client_id": users["client"],
            "delivery_deadline": future(),
            "items": items or [
                {"product_name": "Mug", "quantity": 2, "unit_price": 10, "producer_id": users["producer_a"]},
                {"product_name": "Bag", "quantity": 1, "unit_price": 50, "producer_id": users["producer_b"]},
            ],
        }
        payload.update(overrides)
        response = client.post("/api/budgets/", json=payload, headers=auth("vendor"))
        assert response.status_code == 201, response.text
        return response.json()
    return create

@pytest.fixture
def make_order(client, auth, make_budget):
    """Create, send and convert a budget; returns the order JSON."""
    def create(**budget_overrides):
        budget = make_budget(**budget_overrides)
        response = client.put(f"/api/budgets/{budget['id']}/status", json={"status": "sent"}, headers=auth("vendor"))
        assert response.status_code == 200, response.text
        response = client.post(f"/api/budgets/{budget['id']}/convert", json={}, headers=auth("vendor"))
        assert response.status_code == 201, response.text
        return response.json()
    return create
