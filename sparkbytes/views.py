"""View models consumed by the map, event list, and RSVP control."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable

from .auth import can_edit_event as _can_edit
from .catalog import (
    CAMPUS_CENTER,
    DEFAULT_BEARING,
    DEFAULT_PITCH,
    DEFAULT_ZOOM,
    MAP_STYLE,
    STATUS_AVAILABLE,
    STATUS_STARTING_SOON,
)
from .schemas import DashboardEvent, UserProfile
from .utils import attendee_label

RSVP_AVAILABLE = "available"
RSVP_ATTENDING = "attending"
RSVP_AT_CAPACITY = "at_capacity"

CAPACITY_MESSAGE = "This event has reached maximum capacity"

STATUS_BADGES = {
    STATUS_AVAILABLE: "Available Now",
    STATUS_STARTING_SOON: "Starting Soon",
}

MARKER_COLORS = {
    STATUS_AVAILABLE: "green",
    STATUS_STARTING_SOON: "amber",
}

LIGHT_INTENSITY = {"dawn": 0.5, "day": 1.0, "dusk": 0.3, "night": 0.1}

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class RsvpButtonState:
    state: str
    label: str
    attendee_label: str
    disabled: bool = False
    message: str | None = None


def rsvp_button_state(event: DashboardEvent, is_rsvpd: bool) -> RsvpButtonState:
    """Map an event and the user's membership onto one of three button states."""
    count_label = attendee_label(event.attendees)
    if is_rsvpd:
        return RsvpButtonState(RSVP_ATTENDING, "I'm Going", count_label)
    if event.is_full:
        return RsvpButtonState(
            RSVP_AT_CAPACITY,
            "RSVP",
            count_label,
            disabled=True,
            message=CAPACITY_MESSAGE,
        )
    return RsvpButtonState(RSVP_AVAILABLE, "RSVP", count_label)


@dataclass(frozen=True)
class Marker:
    id: str
    coords: tuple[float, float]
    kind: str = "event"
    status: str | None = None
    color: str = "blue"
    title: str | None = None


@dataclass(frozen=True)
class MapView:
    style: str
    center: tuple[float, float]
    zoom: float
    pitch: float
    bearing: float
    light_preset: str
    light_intensity: float
    markers: list[Marker] = field(default_factory=list)


def light_preset(hour: int) -> str:
    if 5 <= hour < 8:
        return "dawn"
    if 8 <= hour < 17:
        return "day"
    if 17 <= hour < 20:
        return "dusk"
    return "night"


def build_map_view(
    events: Iterable[DashboardEvent],
    user_pos: tuple[float, float] | None = None,
    *,
    hour: int = 12,
    center: tuple[float, float] = CAMPUS_CENTER,
) -> MapView:
    """Return map configuration with one marker per event plus the user marker."""
    markers = [
        Marker(
            id=event.id,
            coords=event.coords,
            status=event.status,
            color=MARKER_COLORS.get(event.status, "gray"),
            title=event.title,
        )
        for event in events
    ]
    if user_pos is not None:
        markers.append(Marker(id="user", coords=user_pos, kind="user"))
    preset = light_preset(hour)
    return MapView(
        style=MAP_STYLE,
        center=center,
        zoom=DEFAULT_ZOOM,
        pitch=DEFAULT_PITCH,
        bearing=DEFAULT_BEARING,
        light_preset=preset,
        light_intensity=LIGHT_INTENSITY[preset],
        markers=markers,
    )


def distance_km(a: tuple[float, float], b: tuple[float, float]) -> float:
    """Great-circle distance between two ``(lng, lat)`` points."""
    lng1, lat1 = map(math.radians, a)
    lng2, lat2 = map(math.radians, b)
    h = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lng2 - lng1) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def distance_label(a: tuple[float, float], b: tuple[float, float]) -> str:
    km = distance_km(a, b)
    if km < 1:
        return f"{round(km * 1000)} m"
    return f"{km:.1f} km"


def event_list_item(
    event: DashboardEvent,
    *,
    is_rsvpd: bool = False,
    is_favorite: bool = False,
    user_pos: tuple[float, float] | None = None,
) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "location": event.location,
        "time": event.time,
        "attendance": attendee_label(event.attendees),
        "status": event.status,
        "badge": STATUS_BADGES.get(event.status, ""),
        "distance": distance_label(user_pos, event.coords) if user_pos else None,
        "is_rsvpd": is_rsvpd,
        "is_favorite": is_favorite,
        "rsvp": rsvp_button_state(event, is_rsvpd).state,
    }


def can_edit_event(profile: UserProfile | None, event: DashboardEvent) -> bool:
    return _can_edit(profile, event.organizer_email)
