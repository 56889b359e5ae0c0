from __future__ import annotations

from datetime import datetime

import pytest

from sparkbytes.catalog import CAMPUS_CENTER
from sparkbytes.schemas import DashboardEvent, UserProfile
from sparkbytes.views import (
    CAPACITY_MESSAGE,
    RSVP_AT_CAPACITY,
    RSVP_ATTENDING,
    RSVP_AVAILABLE,
    build_map_view,
    can_edit_event,
    distance_km,
    distance_label,
    event_list_item,
    light_preset,
    rsvp_button_state,
)


def _event(**overrides) -> DashboardEvent:
    values = {
        "id": "evt-1",
        "title": "Bagel Breakfast",
        "location": "Center for Computing & Data Sciences",
        "time": "9:00 AM - 10:00 AM",
        "start_time": datetime(2024, 4, 1, 13, 0),
        "end_time": datetime(2024, 4, 1, 14, 0),
        "attendees": 0,
        "status": "available",
        "coords": (-71.1048, 42.3501),
        "organizer_email": "prof.lee@bu.edu",
    }
    values.update(overrides)
    return DashboardEvent(**values)


def test_button_shows_attending_even_when_full():
    state = rsvp_button_state(_event(attendees=5, max_attendees=5), True)
    assert state.state == RSVP_ATTENDING
    assert state.label == "I'm Going"
    assert state.disabled is False
    assert state.attendee_label == "5 people attending"


def test_button_disabled_at_capacity():
    state = rsvp_button_state(_event(attendees=5, max_attendees=5), False)
    assert state.state == RSVP_AT_CAPACITY
    assert state.disabled is True
    assert state.message == CAPACITY_MESSAGE


def test_button_available_for_unlimited_event():
    state = rsvp_button_state(_event(attendees=40), False)
    assert state.state == RSVP_AVAILABLE
    assert state.label == "RSVP"
    assert not state.disabled


@pytest.mark.parametrize(
    "hour, preset",
    [(4, "night"), (5, "dawn"), (8, "day"), (16, "day"), (17, "dusk"), (20, "night")],
)
def test_light_preset_boundaries(hour, preset):
    assert light_preset(hour) == preset


def test_map_view_markers_and_user_position():
    events = [
        _event(id="a", status="available"),
        _event(id="b", status="starting_soon"),
    ]
    view = build_map_view(events, (-71.1, 42.35), hour=18)

    assert view.center == CAMPUS_CENTER
    assert view.light_preset == "dusk"
    assert view.light_intensity == 0.3
    assert [(marker.id, marker.color) for marker in view.markers] == [
        ("a", "green"),
        ("b", "amber"),
        ("user", "blue"),
    ]
    assert view.markers[-1].kind == "user"


def test_map_view_without_user_position():
    view = build_map_view([_event()])
    assert [marker.kind for marker in view.markers] == ["event"]


def test_distance_helpers():
    assert distance_km(CAMPUS_CENTER, CAMPUS_CENTER) == 0
    # Roughly one kilometre north of campus.
    north = (CAMPUS_CENTER[0], CAMPUS_CENTER[1] + 0.009)
    assert distance_km(CAMPUS_CENTER, north) == pytest.approx(1.0, abs=0.01)
    assert distance_label(CAMPUS_CENTER, (CAMPUS_CENTER[0], CAMPUS_CENTER[1] + 0.0018)) == "200 m"
    assert distance_label(CAMPUS_CENTER, (CAMPUS_CENTER[0], CAMPUS_CENTER[1] + 0.018)) == "2.0 km"


def test_event_list_item():
    item = event_list_item(
        _event(attendees=1, status="starting_soon"),
        is_rsvpd=True,
        user_pos=CAMPUS_CENTER,
    )
    assert item["badge"] == "Starting Soon"
    assert item["attendance"] == "1 person attending"
    assert item["rsvp"] == RSVP_ATTENDING
    assert item["distance"].endswith(" m")
    assert item["is_favorite"] is False

    assert event_list_item(_event())["distance"] is None


def test_can_edit_event_matches_organizer_email():
    event = _event()
    assert can_edit_event(UserProfile(id="1", email="prof.lee@bu.edu", role="faculty"), event)
    assert not can_edit_event(UserProfile(id="2", email="dr.kim@bu.edu", role="faculty"), event)
    assert not can_edit_event(None, event)
