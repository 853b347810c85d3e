from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from factories import create_client, create_company, make_user
from gst_invoicer.core.deps import get_current_user
from gst_invoicer.core.settings import settings
from gst_invoicer.db.base import Base
from gst_invoicer.db.session import get_db
from gst_invoicer.main import app


@pytest.fixture()
def db_session(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "uploads_dir", str(tmp_path / "uploads"))
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture()
def api(db_session):
    """TestClient on the in-memory database with real authentication."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    client_instance = TestClient(app)
    try:
        yield client_instance
    finally:
        client_instance.close()
        app.dependency_overrides.clear()


@pytest.fixture()
def owner(db_session):
    return make_user(db_session, "owner@example.com")


@pytest.fixture()
def acting(api, owner):
    """Mutable holder for the authenticated user; tests swap ``acting["user"]`` to change identity."""
    state = {"user": owner}
    app.dependency_overrides[get_current_user] = lambda: state["user"]
    return state


@pytest.fixture()
def client(api, acting):
    return api


@pytest.fixture()
def parties(client):
    company = create_company(client)
    buyer = create_client(client)
    return company, buyer
