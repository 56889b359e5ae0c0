"""Typed shapes exchanged between the store, the controller, and the API.

``decode_event`` is the only place a raw event row becomes a
``DashboardEvent``; a row missing required fields fails there with a
``StoreError`` instead of leaking half-filled events into the UI.
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .catalog import (
    CAMPUS_CENTER,
    DIETARY_TAGS_BY_ID,
    ROLE_FACULTY,
    get_building,
)
from .errors import StoreError, ValidationError
from .utils import format_time_range, parse_coordinates, to_naive_utc

Temperature = Literal["hot", "cold", "room temperature"]


class FoodOffering(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    dietary_tags: list[str] = Field(default_factory=list)
    description: str | None = None
    quantity: str | None = None
    serving_size: str | None = None
    temperature: Temperature | None = None


class EventFormData(BaseModel):
    """Fields collected by the add/edit event form."""

    title: str = ""
    start_time: datetime | None = None
    end_time: datetime | None = None
    building_id: str | None = None
    location: str = ""
    coordinates: tuple[float, float] | None = None
    description: str | None = None
    food_offerings: list[FoodOffering] = Field(default_factory=list)
    organizer_name: str = ""
    organizer_email: str = ""
    max_attendees: int | None = None
    is_public: bool = True

    def resolved_location(self) -> tuple[str, tuple[float, float] | None]:
        """Return the location name and coordinates, preferring a known building."""
        building = get_building(self.building_id) if self.building_id else None
        if building:
            return building.name, building.coordinates
        return self.location.strip(), self.coordinates

    def capacity(self) -> int | None:
        # 0 and blank both mean "no limit"
        return self.max_attendees or None


class UserProfile(BaseModel):
    id: str
    email: str
    full_name: str = ""
    role: str
    dietary_preferences: list[str] = Field(default_factory=list)

    @property
    def is_faculty(self) -> bool:
        return self.role == ROLE_FACULTY


class DashboardEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    location: str
    time: str
    start_time: datetime
    end_time: datetime | None = None
    attendees: int = 0
    status: str
    coords: tuple[float, float]
    description: str = ""
    food_offerings: list[FoodOffering] = Field(default_factory=list)
    organizer_name: str = ""
    organizer_email: str = ""
    max_attendees: int | None = None
    is_public: bool = True

    @property
    def is_full(self) -> bool:
        return bool(self.max_attendees) and self.attendees >= self.max_attendees


# null for these means "unchanged" rather than "clear"
_KEEP_ON_NULL = frozenset(
    {
        "title",
        "start_time",
        "end_time",
        "location",
        "food_offerings",
        "organizer_name",
        "organizer_email",
        "is_public",
    }
)


class EventPatch(BaseModel):
    """A partial edit; fields left out keep the stored event's values."""

    title: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    building_id: str | None = None
    location: str | None = None
    coordinates: tuple[float, float] | None = None
    description: str | None = None
    food_offerings: list[FoodOffering] | None = None
    organizer_name: str | None = None
    organizer_email: str | None = None
    max_attendees: int | None = None
    is_public: bool | None = None

    def apply_to(self, event: DashboardEvent) -> EventFormData:
        updates = {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None or name not in _KEEP_ON_NULL
        }
        if updates.keys() & {"building_id", "location"} and "coordinates" not in updates:
            updates["coordinates"] = None
        current = EventFormData(
            title=event.title,
            start_time=event.start_time,
            end_time=event.end_time,
            location=event.location,
            coordinates=event.coords,
            description=event.description or None,
            food_offerings=event.food_offerings,
            organizer_name=event.organizer_name,
            organizer_email=event.organizer_email,
            max_attendees=event.max_attendees,
            is_public=event.is_public,
        )
        return current.model_copy(update=updates)


def validate_event_form(form: EventFormData) -> None:
    """Raise ``ValidationError`` with every problem found in the form."""
    errors: dict[str, str] = {}
    if not form.title.strip():
        errors["title"] = "Event title is required"
    if form.start_time is None:
        errors["start_time"] = "Start time is required"
    if form.end_time is None:
        errors["end_time"] = "End time is required"
    if form.start_time and form.end_time:
        start = to_naive_utc(form.start_time)
        end = to_naive_utc(form.end_time)
        if end <= start:
            errors["end_time"] = "End time must be after the start time"
    if form.building_id and not get_building(form.building_id):
        errors["location"] = "Unknown building"
    else:
        name, _ = form.resolved_location()
        if not name:
            errors["location"] = "Location is required"
    if not form.organizer_name.strip():
        errors["organizer_name"] = "Organizer name is required"
    email = form.organizer_email.strip()
    if not email:
        errors["organizer_email"] = "Organizer email is required"
    elif "@" not in email:
        errors["organizer_email"] = "Organizer email is invalid"
    if form.max_attendees is not None and form.max_attendees < 0:
        errors["max_attendees"] = "Maximum attendees cannot be negative"
    if not form.food_offerings:
        errors["food_offerings"] = "At least one food offering is required"
    else:
        for index, offering in enumerate(form.food_offerings, start=1):
            if not offering.name.strip():
                errors["food_offerings"] = f"Food offering {index} needs a name"
                break
            unknown = [tag for tag in offering.dietary_tags if tag not in DIETARY_TAGS_BY_ID]
            if unknown:
                errors["food_offerings"] = f"Unknown dietary tags: {', '.join(unknown)}"
                break
    if errors:
        raise ValidationError(errors)


def decode_event(
    row: Mapping[str, Any],
    *,
    attendees: int = 0,
    organizer: Mapping[str, Any] | None = None,
    default_coords: tuple[float, float] = CAMPUS_CENTER,
    tz: tzinfo | None = None,
) -> DashboardEvent:
    """Translate a stored event row into the in-memory event shape."""
    missing = [key for key in ("id", "title", "start_time") if not row.get(key)]
    if missing:
        raise StoreError(
            f"Event row is missing {', '.join(missing)}", code="malformed_row"
        )
    offerings = row.get("food_offerings")
    if not isinstance(offerings, list):
        offerings = []
    organizer = organizer or {}
    try:
        return DashboardEvent(
            id=str(row["id"]),
            title=row["title"],
            location=row.get("location") or "",
            time=format_time_range(row["start_time"], row.get("end_time"), tz=tz),
            start_time=row["start_time"],
            end_time=row.get("end_time"),
            attendees=max(int(attendees or 0), 0),
            status=row.get("status") or "available",
            coords=parse_coordinates(
                row.get("location_coordinates"), default=default_coords
            ),
            description=row.get("description") or "",
            food_offerings=offerings,
            organizer_name=organizer.get("full_name") or "",
            organizer_email=organizer.get("email") or "",
            max_attendees=row.get("max_attendees"),
            is_public=bool(row.get("is_public", True)),
        )
    except PydanticValidationError as exc:
        raise StoreError(
            f"Event row {row.get('id')} could not be decoded", code="malformed_row"
        ) from exc
