from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.deps import get_db
from app.db.models.user import User
from app.main import app


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_unknown_user_returns_404(client):
    response = client.get(f"/users/{uuid4()}")
    assert response.status_code == 404


def test_patch_creates_user_with_default_preferences(client):
    user_id = uuid4()

    response = client.patch(f"/users/{user_id}", json={"name": "Sam"})

    assert response.status_code == 200
    body = response.json()
    assert body["userId"] == str(user_id)
    assert body["name"] == "Sam"
    assert body["preferences"] == {
        "maxHoursPerDay": 8,
        "workDays": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
    }


def test_preferences_are_merged(client):
    user_id = uuid4()
    client.patch(f"/users/{user_id}", json={"preferences": {"workDays": ["Saturday", "Sunday"]}})

    response = client.patch(f"/users/{user_id}", json={"preferences": {"maxHoursPerDay": 4}})

    assert response.status_code == 200
    assert response.json()["preferences"] == {"maxHoursPerDay": 4, "workDays": ["Saturday", "Sunday"]}
    fetched = client.get(f"/users/{user_id}")
    assert fetched.json()["preferences"]["maxHoursPerDay"] == 4


@pytest.mark.parametrize(
    "preferences",
    [
        {"maxHoursPerDay": 0},
        {"maxHoursPerDay": 25},
        {"workDays": ["Funday"]},
        {"workDays": []},
    ],
)
def test_invalid_preferences_are_rejected(client, preferences):
    response = client.patch(f"/users/{uuid4()}", json={"preferences": preferences})
    assert response.status_code == 422
