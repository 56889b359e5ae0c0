from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from sparkbytes import api, events
from sparkbytes.models import Event
from sparkbytes.utils import utcnow

PASSWORD = "secret123"


@pytest.fixture()
def client(store, monkeypatch):
    """FastAPI test client bound to the shared store with the scheduler disabled."""

    monkeypatch.setattr(api, "start_scheduler", lambda _client: None)
    monkeypatch.setattr(api, "stop_scheduler", lambda: None)
    with TestClient(api.create_app(store)) as test_client:
        yield test_client


def _headers(store, profile) -> dict[str, str]:
    token = store.auth.sign_in(email=profile.email, password=PASSWORD).token
    return {"Authorization": f"Bearer {token}"}


def _event_payload(**overrides) -> dict:
    start = utcnow().replace(microsecond=0)
    payload = {
        "title": "Sandwich Platter",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=1)).isoformat(),
        "building_id": "gsu",
        "food_offerings": [
            {"name": "Turkey Club", "dietary_tags": ["nut_free"], "temperature": "cold"}
        ],
        "organizer_name": "Robin Lee",
        "organizer_email": "prof.lee@bu.edu",
        "max_attendees": 10,
    }
    payload.update(overrides)
    return payload


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_sign_up_sign_in_and_me(client):
    response = client.post(
        "/api/auth/signup",
        json={"email": "new@bu.edu", "password": PASSWORD, "full_name": "New Student"},
    )
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "student"

    response = client.post(
        "/api/auth/signin", json={"email": "new@bu.edu", "password": PASSWORD}
    )
    assert response.status_code == 200
    token = response.json()["token"]

    me = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["user"]["email"] == "new@bu.edu"

    response = client.post(
        "/api/auth/signout", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 204
    assert client.get("/api/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_sign_up_rejects_outside_domain(client):
    response = client.post(
        "/api/auth/signup",
        json={"email": "x@gmail.com", "password": PASSWORD, "full_name": "X"},
    )
    assert response.status_code == 422
    assert response.json()["errors"]["email"] == "Email must end in @bu.edu"


def test_me_requires_token(client):
    response = client.get("/api/me")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_list_events_includes_membership(client, store, student, make_event):
    attending = make_event(title="Attending")
    make_event(title="Other")
    events.rsvp(store, attending.id, student.id)

    anonymous = client.get("/api/events").json()
    assert {event["title"] for event in anonymous["events"]} == {"Attending", "Other"}
    assert anonymous["rsvp_event_ids"] == []

    signed_in = client.get("/api/events", headers=_headers(store, student)).json()
    assert signed_in["rsvp_event_ids"] == [attending.id]
    first = signed_in["events"][0]
    assert first["badge"] == "Available Now"
    assert first["can_edit"] is False


def test_get_event_and_missing_event(client, store, faculty, make_event):
    event = make_event()
    response = client.get(f"/api/events/{event.id}", headers=_headers(store, faculty))
    assert response.status_code == 200
    body = response.json()
    assert body["event"]["can_edit"] is True
    assert body["is_rsvpd"] is False

    assert client.get("/api/events/missing").status_code == 404


def test_create_event_as_faculty(client, store, faculty):
    response = client.post(
        "/api/events", json=_event_payload(), headers=_headers(store, faculty)
    )
    assert response.status_code == 201
    event = response.json()["event"]
    assert event["location"] == "George Sherman Union (GSU)"
    assert event["max_attendees"] == 10
    assert [event.id for event in events.list_public_events(store)] == [event["id"]]


def test_create_event_forbidden_for_students(client, store, student):
    response = client.post(
        "/api/events", json=_event_payload(), headers=_headers(store, student)
    )
    assert response.status_code == 403
    assert events.list_public_events(store) == []


def test_create_event_validation_errors(client, store, faculty):
    response = client.post(
        "/api/events",
        json=_event_payload(food_offerings=[]),
        headers=_headers(store, faculty),
    )
    assert response.status_code == 422
    assert "food_offerings" in response.json()["errors"]


def test_update_event_only_by_organizer(client, store, other_faculty, faculty, make_event):
    event = make_event()

    response = client.patch(
        f"/api/events/{event.id}",
        json=_event_payload(title="Hijack"),
        headers=_headers(store, other_faculty),
    )
    assert response.status_code == 403

    response = client.patch(
        f"/api/events/{event.id}",
        json=_event_payload(title="Updated"),
        headers=_headers(store, faculty),
    )
    assert response.status_code == 200
    assert response.json()["event"]["title"] == "Updated"


def test_update_event_accepts_partial_body(client, store, faculty, make_event):
    event = make_event(building_id="gsu")
    headers = _headers(store, faculty)

    response = client.patch(
        f"/api/events/{event.id}", json={"title": "Renamed"}, headers=headers
    )
    assert response.status_code == 200
    body = response.json()["event"]
    assert body["title"] == "Renamed"
    assert body["location"] == "George Sherman Union (GSU)"
    assert body["food_offerings"][0]["name"] == "Cheese Pizza"

    response = client.patch(
        f"/api/events/{event.id}", json={"location": "Room 101"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["event"]["location"] == "Room 101"
    assert events.get_event(store, event.id).title == "Renamed"


def test_update_event_partial_body_still_validated(client, store, faculty, make_event):
    event = make_event()
    response = client.patch(
        f"/api/events/{event.id}",
        json={"food_offerings": []},
        headers=_headers(store, faculty),
    )
    assert response.status_code == 422
    assert "food_offerings" in response.json()["errors"]


def test_cancel_event(client, store, faculty, make_event):
    event = make_event()
    response = client.post(
        f"/api/events/{event.id}/cancel", headers=_headers(store, faculty)
    )
    assert response.status_code == 200
    assert response.json()["event"]["status"] == "cancelled"
    assert client.get("/api/events").json()["events"] == []


def test_rsvp_flow(client, store, student, make_event):
    event = make_event()
    headers = _headers(store, student)

    response = client.post(f"/api/events/{event.id}/rsvp", headers=headers)
    assert response.json() == {"attending": True, "already_rsvpd": False, "attendees": 1}

    again = client.post(f"/api/events/{event.id}/rsvp", headers=headers).json()
    assert again["already_rsvpd"] is True
    assert again["attendees"] == 1

    mine = client.get("/api/me/rsvps", headers=headers).json()
    assert [item["id"] for item in mine["events"]] == [event.id]

    response = client.delete(f"/api/events/{event.id}/rsvp", headers=headers)
    assert response.json() == {"attending": False, "removed": True}
    response = client.delete(f"/api/events/{event.id}/rsvp", headers=headers)
    assert response.json() == {"attending": False, "removed": False}


def test_rsvp_requires_sign_in(client, make_event):
    event = make_event()
    assert client.post(f"/api/events/{event.id}/rsvp").status_code == 401


def test_rsvp_at_capacity(client, store, student, make_event, make_student):
    event = make_event(max_attendees=1)
    events.rsvp(store, event.id, make_student().id)

    response = client.post(f"/api/events/{event.id}/rsvp", headers=_headers(store, student))

    assert response.status_code == 409
    assert response.json() == {
        "error": "EventFull",
        "message": "This event has reached maximum capacity.",
    }


def test_rsvp_closed_event(client, store, student, make_event):
    event = make_event()
    with store.session() as session:
        session.get(Event, event.id).status = "ended"

    response = client.post(f"/api/events/{event.id}/rsvp", headers=_headers(store, student))

    assert response.status_code == 409
    assert response.json()["error"] == "EventClosed"


def test_dietary_preferences(client, store, student):
    headers = _headers(store, student)
    response = client.put(
        "/api/me/dietary-preferences",
        json={"dietary_preferences": ["vegan", "halal"]},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["user"]["dietary_preferences"] == ["vegan", "halal"]

    response = client.put(
        "/api/me/dietary-preferences",
        json={"dietary_preferences": ["carnivore"]},
        headers=headers,
    )
    assert response.status_code == 422


def test_reference_data(client):
    tags = client.get("/api/dietary-tags").json()["tags"]
    assert len(tags) == 70
    assert {"id": "vegan", "name": "Vegan"}.items() <= next(
        tag for tag in tags if tag["id"] == "vegan"
    ).items()

    buildings = client.get("/api/buildings").json()["buildings"]
    assert "cds" in {building["id"] for building in buildings}


def test_map_view(client, make_event):
    event = make_event()
    view = client.get("/api/map", params={"lng": -71.1, "lat": 42.35}).json()
    assert [marker["id"] for marker in view["markers"]] == [event.id, "user"]
    assert view["markers"][-1]["coords"] == [-71.1, 42.35]
    assert view["light_preset"] in {"dawn", "day", "dusk", "night"}


def test_verify_faculty_code(client):
    assert client.post("/api/faculty-code/verify", json={"code": "123"}).json() == {
        "valid": True
    }
    response = client.post("/api/faculty-code/verify", json={"code": "999"}).json()
    assert response["valid"] is False
