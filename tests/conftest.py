# tests/conftest.py
"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, rebuilt for every test
- Config store backed by a temp file
- TestClient with both dependencies overridden
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from supportdesk.core.database import Base, build_engine, get_db
from supportdesk.integrations.store import ConfigStore, get_config_store
from supportdesk.main import app

engine = build_engine("sqlite://", poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

STAFF = {"X-User-Id": "staff-1"}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def config_store(tmp_path):
    return ConfigStore(tmp_path / "app-config.json")


@pytest.fixture
def client(db, config_store):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_config_store] = lambda: config_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def catalog(client):
    """One active studio and category, created in that order."""
    studio = client.post("/studios", json={"name": "Bandra"}, headers=STAFF).json()
    category = client.post(
        "/categories",
        json={"name": "Equipment", "defaultPriority": "medium", "defaultSlaHours": 48},
        headers=STAFF,
    ).json()
    return {"studio_id": studio["id"], "category_id": category["id"]}


@pytest.fixture
def make_ticket(client, catalog):
    def _make(headers=STAFF, **fields):
        body = {"title": "Mirror cracked", "description": "Studio 2 mirror"}
        body.update(fields)
        r = client.post("/tickets", json=body, headers=headers)
        assert r.status_code == 201, r.text
        return r.json()

    return _make
