from __future__ import annotations

import pytest

from sparkbytes import events
from sparkbytes.errors import CapacityExceeded
from sparkbytes.feed import DELETE, INSERT, UPDATE, ChangeFeed, ChangeNotification
from sparkbytes.models import Event, EventAttendee


def _collect(store, table="events", **kwargs):
    received: list[ChangeNotification] = []
    subscription = store.feed.subscribe(table, received.append, **kwargs)
    return received, subscription


def test_insert_is_published_after_commit(store, make_event):
    received, _ = _collect(store)
    created = make_event()

    assert [n.operation for n in received] == [INSERT]
    assert received[0].row_id == created.id
    assert received[0].new["title"] == "Leftover Pizza"


def test_update_and_delete_are_published(store, faculty, make_event):
    created = make_event()
    received, _ = _collect(store)

    events.cancel_event(store, created.id, faculty)
    with store.session() as session:
        session.delete(session.get(Event, created.id))

    assert [n.operation for n in received] == [UPDATE, DELETE]
    assert received[0].new["status"] == "cancelled"
    assert received[1].old["id"] == created.id
    assert received[1].new is None


def test_rolled_back_work_is_not_published(store, make_event, student):
    event = make_event()
    received, _ = _collect(store, table="event_attendees")

    with pytest.raises(RuntimeError):
        with store.session() as session:
            session.add(EventAttendee(event_id=event.id, user_id=student.id))
            session.flush()
            raise RuntimeError("abort")

    assert received == []
    assert events.get_user_rsvp_ids(store, student.id) == set()


def test_capacity_rejection_publishes_nothing(store, make_event, make_student):
    event = make_event(max_attendees=1)
    events.rsvp(store, event.id, make_student().id)
    received, _ = _collect(store, table="event_attendees")

    with pytest.raises(CapacityExceeded):
        events.rsvp(store, event.id, make_student().id)

    assert received == []


def test_operation_filter_and_unsubscribe(store, faculty, make_event):
    received, subscription = _collect(store, operations=[DELETE])
    created = make_event()
    events.cancel_event(store, created.id, faculty)
    assert received == []

    subscription.unsubscribe()
    assert store.feed.subscriber_count == 0
    with store.session() as session:
        session.delete(session.get(Event, created.id))
    assert received == []


def test_failing_subscriber_does_not_block_others(store, make_event):
    def broken(_notification):
        raise RuntimeError("boom")

    store.feed.subscribe("events", broken)
    received, _ = _collect(store)
    make_event()
    assert len(received) == 1


def test_subscribe_rejects_unknown_operations():
    with pytest.raises(ValueError):
        ChangeFeed().subscribe("events", lambda n: None, operations=["TRUNCATE"])
