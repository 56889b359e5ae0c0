"""Data-access helpers for events and attendance records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from .auth import can_edit_event
from .catalog import OPEN_STATUSES, STATUS_AVAILABLE, STATUS_CANCELLED
from .errors import (
    AlreadyRsvpd,
    CapacityExceeded,
    NotAuthorized,
    StoreError,
    ValidationError,
)
from .feed import row_snapshot
from .lifecycle import next_status
from .models import Event, EventAttendee, Profile
from .schemas import DashboardEvent, EventFormData, UserProfile, decode_event, validate_event_form
from .utils import format_coordinates, to_naive_utc, utcnow

if TYPE_CHECKING:
    from .client import StoreClient

logger = logging.getLogger(__name__)


def _attendee_counts():
    return (
        select(
            EventAttendee.event_id.label("event_id"),
            func.count(EventAttendee.id).label("attendees"),
        )
        .group_by(EventAttendee.event_id)
        .subquery()
    )


def _count_attendees(session: Session, event_id: str) -> int:
    stmt = select(func.count(EventAttendee.id)).where(EventAttendee.event_id == event_id)
    return session.scalar(stmt) or 0


def _is_attending(session: Session, event_id: str, user_id: str) -> bool:
    stmt = select(EventAttendee.id).where(
        EventAttendee.event_id == event_id, EventAttendee.user_id == user_id
    )
    return session.scalar(stmt) is not None


def _decode(client: "StoreClient", event: Event, attendees: int) -> DashboardEvent:
    organizer = event.organizer
    return decode_event(
        row_snapshot(event),
        attendees=attendees,
        organizer=(
            {"full_name": organizer.full_name, "email": organizer.email}
            if organizer
            else None
        ),
        default_coords=client.settings.default_coords,
        tz=client.settings.tz,
    )


def _events_with_counts(session: Session, *filters) -> list[tuple[Event, int]]:
    counts = _attendee_counts()
    stmt = (
        select(Event, func.coalesce(counts.c.attendees, 0))
        .outerjoin(counts, counts.c.event_id == Event.id)
        .options(joinedload(Event.organizer))
        .where(*filters)
        .order_by(Event.start_time.asc())
    )
    return [(event, count) for event, count in session.execute(stmt).all()]


def _require_event(session: Session, event_id: str) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise StoreError("Event not found", code="not_found")
    return event


def list_public_events(client: "StoreClient") -> list[DashboardEvent]:
    """Return public, open events ordered by start time."""
    with client.session() as session:
        rows = _events_with_counts(
            session, Event.is_public.is_(True), Event.status.in_(OPEN_STATUSES)
        )
        events = [_decode(client, event, count) for event, count in rows]
    logger.debug("Fetched %d public events", len(events))
    return events


def get_event(client: "StoreClient", event_id: str) -> DashboardEvent:
    with client.session() as session:
        rows = _events_with_counts(session, Event.id == event_id)
        if not rows:
            raise StoreError("Event not found", code="not_found")
        event, count = rows[0]
        return _decode(client, event, count)


def get_user_rsvp_ids(client: "StoreClient", user_id: str) -> set[str]:
    with client.session() as session:
        stmt = select(EventAttendee.event_id).where(EventAttendee.user_id == user_id)
        return set(session.scalars(stmt).all())


def get_user_rsvp_events(client: "StoreClient", user_id: str) -> list[DashboardEvent]:
    """Return every event the user has RSVP'd to, open or not."""
    with client.session() as session:
        attending = select(EventAttendee.event_id).where(
            EventAttendee.user_id == user_id
        )
        rows = _events_with_counts(session, Event.id.in_(attending))
        return [_decode(client, event, count) for event, count in rows]


def _serialize_offerings(form: EventFormData) -> list[dict]:
    return [offering.model_dump() for offering in form.food_offerings]


def create_event(
    client: "StoreClient", form: EventFormData, organizer_id: str
) -> DashboardEvent:
    """Validate the form and persist a new event for ``organizer_id``."""
    validate_event_form(form)
    location, coords = form.resolved_location()
    with client.session() as session:
        organizer = session.get(Profile, organizer_id)
        if organizer is None:
            raise StoreError("Organizer profile not found", code="not_found")
        event = Event(
            title=form.title.strip(),
            location=location,
            location_coordinates=format_coordinates(coords) if coords else None,
            description=form.description,
            start_time=to_naive_utc(form.start_time),
            end_time=to_naive_utc(form.end_time),
            organizer=organizer,
            max_attendees=form.capacity(),
            status=STATUS_AVAILABLE,
            is_public=form.is_public,
            food_offerings=_serialize_offerings(form),
        )
        session.add(event)
        session.flush()
        created = _decode(client, event, 0)
    logger.info("Created event '%s' (%s) by organizer %s", created.title, created.id, organizer_id)
    return created


def _authorize_organizer(event: Event, actor: UserProfile | None) -> None:
    organizer_email = event.organizer.email if event.organizer else None
    if not can_edit_event(actor, organizer_email):
        raise NotAuthorized()


def update_event(
    client: "StoreClient",
    event_id: str,
    form: EventFormData,
    actor: UserProfile | None,
) -> DashboardEvent:
    """Apply an organizer's edits to an existing event."""
    validate_event_form(form)
    location, coords = form.resolved_location()
    with client.session() as session:
        event = _require_event(session, event_id)
        _authorize_organizer(event, actor)
        attendees = _count_attendees(session, event_id)
        capacity = form.capacity()
        if capacity is not None and capacity < attendees:
            raise ValidationError(
                {
                    "max_attendees": (
                        f"Capacity cannot be lower than the current {attendees} attendees"
                    )
                }
            )
        event.title = form.title.strip()
        event.location = location
        event.location_coordinates = format_coordinates(coords) if coords else None
        event.description = form.description
        event.start_time = to_naive_utc(form.start_time)
        event.end_time = to_naive_utc(form.end_time)
        event.max_attendees = capacity
        event.is_public = form.is_public
        event.food_offerings = _serialize_offerings(form)
        now = utcnow()
        if event.status in OPEN_STATUSES:
            event.status = next_status(
                event, now, soon_cutoff=now + client.settings.starting_soon_window
            )
        event.updated_at = now
        session.flush()
        updated = _decode(client, event, attendees)
    logger.info("Updated event %s", event_id)
    return updated


def cancel_event(
    client: "StoreClient", event_id: str, actor: UserProfile | None
) -> DashboardEvent:
    with client.session() as session:
        event = _require_event(session, event_id)
        _authorize_organizer(event, actor)
        event.status = STATUS_CANCELLED
        event.updated_at = utcnow()
        session.flush()
        cancelled = _decode(client, event, _count_attendees(session, event_id))
    logger.info("Cancelled event %s", event_id)
    return cancelled


def rsvp(client: "StoreClient", event_id: str, user_id: str) -> int:
    """Register ``user_id`` for an event and return the new attendee count.

    The capacity check here is an early exit. Duplicate records are rejected
    by the store's uniqueness constraint and surface as ``AlreadyRsvpd``.
    """
    try:
        with client.session() as session:
            event = _require_event(session, event_id)
            if event.status not in OPEN_STATUSES:
                raise StoreError("This event is no longer open", code="closed")
            current = _count_attendees(session, event_id)
            if event.max_attendees and current >= event.max_attendees:
                if _is_attending(session, event_id, user_id):
                    raise AlreadyRsvpd()
                raise CapacityExceeded()
            session.add(
                EventAttendee(event_id=event_id, user_id=user_id, rsvp_time=utcnow())
            )
            session.flush()
    except StoreError as exc:
        if exc.is_unique_violation:
            raise AlreadyRsvpd() from exc
        raise
    logger.info("User %s RSVP'd to event %s", user_id, event_id)
    return current + 1


def cancel_rsvp(client: "StoreClient", event_id: str, user_id: str) -> bool:
    """Delete the attendance record; a missing record still counts as success.

    Returns whether a record was actually removed.
    """
    with client.session() as session:
        stmt = select(EventAttendee).where(
            EventAttendee.event_id == event_id, EventAttendee.user_id == user_id
        )
        records: Sequence[EventAttendee] = session.scalars(stmt).all()
        for record in records:
            session.delete(record)
    if records:
        logger.info("User %s cancelled RSVP for event %s", user_id, event_id)
    return bool(records)

