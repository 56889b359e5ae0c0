"""Time-driven event status transitions."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select

from .catalog import OPEN_STATUSES, STATUS_AVAILABLE, STATUS_ENDED, STATUS_STARTING_SOON
from .models import Event
from .utils import to_naive_utc, utcnow

if TYPE_CHECKING:
    from .client import StoreClient

# Use uvicorn's error logger so scheduled job messages show up with level prefixes.
logger = logging.getLogger("uvicorn.error")


def next_status(event: Event, now: datetime, *, soon_cutoff: datetime) -> str:
    """Return the status an open event should carry at ``now``."""
    if event.end_time and event.end_time <= now:
        return STATUS_ENDED
    if event.start_time <= now:
        return STATUS_AVAILABLE
    if event.start_time <= soon_cutoff:
        return STATUS_STARTING_SOON
    if event.status == STATUS_STARTING_SOON:
        # Start moved back out of the window.
        return STATUS_AVAILABLE
    return event.status


def refresh_event_statuses(client: "StoreClient", *, now: datetime | None = None) -> dict:
    """Move open events between ``starting_soon``, ``available`` and ``ended``.

    Updates go through the ORM so subscribers see an UPDATE for every change.
    """
    stats = {"starting_soon": 0, "available": 0, "ended": 0, "checked": 0}
    current = to_naive_utc(now) if now else utcnow()
    soon_cutoff = current + client.settings.starting_soon_window

    with client.session() as session:
        events = session.scalars(
            select(Event).where(Event.status.in_(OPEN_STATUSES))
        ).all()
        for event in events:
            stats["checked"] += 1
            status = next_status(event, current, soon_cutoff=soon_cutoff)
            if status == event.status:
                continue
            logger.debug(
                "Event %s (%s): %s -> %s", event.id, event.title, event.status, status
            )
            event.status = status
            stats[status] += 1

    changed = stats["starting_soon"] + stats["available"] + stats["ended"]
    if changed:
        logger.info(
            "Status refresh updated %d events (starting_soon=%d, available=%d, ended=%d)",
            changed,
            stats["starting_soon"],
            stats["available"],
            stats["ended"],
        )
    return stats
