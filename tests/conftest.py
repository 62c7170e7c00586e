from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure auth mode + database are set before app import
os.environ.setdefault("AUTH_MODE", "dev")
os.environ.setdefault("ENV", "local")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.main import app  # noqa: E402
from app.models import Base, Event, EventAirport  # noqa: E402
from app.store import SqlDocumentStore, get_store  # noqa: E402

from tests.factories import EVENT_ID, OTHER_EVENT_ID  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    # File-backed so the matcher's worker threads get their own connections
    engine = create_engine(
        f"sqlite:///{tmp_path / 'rides.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def store(session_factory) -> SqlDocumentStore:
    return SqlDocumentStore(session_factory)


@pytest.fixture
def events(session_factory):
    now = datetime.now(timezone.utc)
    with session_factory() as db:
        db.add_all(
            [
                Event(
                    id=EVENT_ID,
                    name="DevSummit San Francisco",
                    city="San Francisco",
                    state="CA",
                    starts_at=now + timedelta(days=14),
                    ends_at=now + timedelta(days=17),
                    airports=[
                        EventAirport(code="SFO", name="San Francisco International Airport"),
                        EventAirport(code="SJC", name="San Jose International Airport"),
                    ],
                ),
                Event(
                    id=OTHER_EVENT_ID,
                    name="PyCon Los Angeles",
                    city="Los Angeles",
                    state="CA",
                    starts_at=now + timedelta(days=30),
                    ends_at=now + timedelta(days=32),
                    airports=[EventAirport(code="LAX", name="Los Angeles International Airport")],
                ),
            ]
        )
        db.commit()
    return [EVENT_ID, OTHER_EVENT_ID]


@pytest.fixture
def client(store) -> TestClient:
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.ride_request_listeners = []
