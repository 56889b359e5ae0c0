from __future__ import annotations

import pytest

from sparkbytes import events
from sparkbytes.models import Profile
from sparkbytes.seed import SEED_PASSWORD, seed_fake_data


def test_seed_fake_data_creates_usable_records(store):
    stats = seed_fake_data(store, profile_count=4, event_count=3, max_rsvps_per_event=2)

    assert stats["profiles"] == 4
    assert stats["faculty"] >= 1
    assert stats["events"] == 3
    assert 0 <= stats["rsvps"] <= 6

    for event in events.list_public_events(store):
        assert event.food_offerings
        assert event.organizer_email.endswith("@bu.edu")


def test_seeded_profiles_can_sign_in(store):
    seed_fake_data(store, profile_count=1, event_count=0)
    with store.session() as session:
        email = session.query(Profile.email).scalar()
    assert store.auth.sign_in(email=email, password=SEED_PASSWORD).user.is_faculty


def test_seed_fake_data_rejects_bad_arguments(store):
    with pytest.raises(ValueError):
        seed_fake_data(store, profile_count=0)
    with pytest.raises(ValueError):
        seed_fake_data(store, faculty_percentage=101)
