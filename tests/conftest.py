"""Shared pytest fixtures for Spark!Bytes."""

from __future__ import annotations

import dataclasses
import sys
from datetime import timedelta
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sparkbytes import config, events
from sparkbytes.client import StoreClient
from sparkbytes.database import create_database_engine
from sparkbytes.models import Base
from sparkbytes.schemas import EventFormData, FoodOffering
from sparkbytes.utils import utcnow

PASSWORD = "secret123"


@pytest.fixture(scope="session")
def test_settings(tmp_path_factory):
    data_dir = tmp_path_factory.mktemp("data")
    return dataclasses.replace(
        config.settings,
        data_dir=data_dir,
        database_path=data_dir / "unused.db",
        enable_scheduler=False,
        faculty_code="123",
        email_domain="bu.edu",
        display_timezone="UTC",
        starting_soon_minutes=30,
        session_ttl_hours=24,
    )


@pytest.fixture(scope="session")
def store(test_settings):
    """Reuse a single in-memory SQLite database for fast, isolated tests."""

    client = StoreClient(create_database_engine("sqlite:///:memory:"), test_settings)
    Base.metadata.create_all(bind=client.engine)
    yield client
    client.close()


@pytest.fixture(autouse=True)
def clean_database(store):
    """Reset all tables and subscriptions between tests to guarantee isolation."""

    store.feed.clear()
    Base.metadata.drop_all(bind=store.engine)
    Base.metadata.create_all(bind=store.engine)
    yield


@pytest.fixture()
def faculty(store):
    return store.auth.sign_up(
        email="prof.lee@bu.edu",
        password=PASSWORD,
        full_name="Robin Lee",
        role="faculty",
        faculty_code="123",
    )


@pytest.fixture()
def other_faculty(store):
    return store.auth.sign_up(
        email="dr.kim@bu.edu",
        password=PASSWORD,
        full_name="Sam Kim",
        role="faculty",
        faculty_code="123",
    )


@pytest.fixture()
def student(store):
    return store.auth.sign_up(
        email="terrier@bu.edu", password=PASSWORD, full_name="Alex Terrier"
    )


@pytest.fixture()
def make_student(store):
    counter = iter(range(1000))

    def _make():
        index = next(counter)
        return store.auth.sign_up(
            email=f"student{index}@bu.edu",
            password=PASSWORD,
            full_name=f"Student {index}",
        )

    return _make


@pytest.fixture()
def make_form(faculty):
    def _make(**overrides) -> EventFormData:
        start = utcnow().replace(microsecond=0) - timedelta(minutes=10)
        values = {
            "title": "Leftover Pizza",
            "start_time": start,
            "end_time": start + timedelta(hours=1),
            "building_id": "cds",
            "description": "Seminar leftovers",
            "food_offerings": [
                FoodOffering(name="Cheese Pizza", dietary_tags=["vegetarian"])
            ],
            "organizer_name": faculty.full_name,
            "organizer_email": faculty.email,
            "max_attendees": None,
            "is_public": True,
        }
        values.update(overrides)
        return EventFormData(**values)

    return _make


@pytest.fixture()
def make_event(store, faculty, make_form):
    def _make(**overrides):
        return events.create_event(store, make_form(**overrides), faculty.id)

    return _make
