from __future__ import annotations

import os

# Settings and the module-level engine read these at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_KEY"] = "test-key"
os.environ["ANALYTICS_MAX_REQUESTS"] = "1000"
os.environ["PUBLIC_BASE_URL"] = "https://quotes.example.com"

from datetime import timedelta
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quote_portal.api import admin_quotes, public_quotes
from quote_portal.db import models  # noqa: F401
from quote_portal.db.base import Base
from quote_portal.db.crud.quotes import create_quote
from quote_portal.db.session import get_db
from quote_portal.main import create_app
from quote_portal.quotes.lifecycle import utcnow

ADMIN_HEADERS = {"X-API-Key": "test-key"}


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _enable_fks(dbapi_conn, _):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def enqueued(monkeypatch):
    """Capture notification jobs instead of talking to Redis."""
    calls: list[tuple[str, tuple]] = []

    def fake_enqueue(func, *args):
        calls.append((func.__name__, args))
        return True

    monkeypatch.setattr(public_quotes, "enqueue", fake_enqueue)
    monkeypatch.setattr(admin_quotes, "enqueue", fake_enqueue)
    return calls


@pytest.fixture()
def app(session_factory, enqueued):
    application = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


def quote_payload(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "title": "Kitchen Repaint",
        "description": "Walls, ceiling and trim",
        "projectType": "Painting",
        "location": "Springfield, IL",
        "customerName": "Jordan Lee",
        "customerEmail": "jordan@example.com",
        "taxRate": "10",
        "validUntil": (utcnow() + timedelta(days=14)).isoformat(),
        "lineItems": [
            {"category": "Labor", "description": "Prep and paint", "quantity": "2", "unitPrice": "100.00"},
            {"category": "Materials", "description": "Paint", "quantity": "1", "unitPrice": "50.00"},
        ],
    }
    data.update(overrides)
    return data


@pytest.fixture()
def make_quote(db):
    """Insert a quote straight through the store and return it."""

    def _make(**overrides: Any):
        now = overrides.pop("now", None) or utcnow()
        status = overrides.pop("status", "draft")
        data: dict[str, Any] = {
            "title": "Bathroom Refresh",
            "customer_name": "Sam Rivera",
            "customer_email": "sam@example.com",
            "tax_rate": Decimal("8"),
            "valid_until": now + timedelta(days=30),
            "line_items": [
                {"category": "Labor", "description": "Tile work", "quantity": Decimal("1"), "unit_price": Decimal("400")},
            ],
        }
        data.update(overrides)
        quote = create_quote(db, data, now)
        # Fixture shortcut; the app itself only changes status through lifecycle
        quote.status = status
        db.commit()
        return quote

    return _make
