"""Change notifications for committed rows.

Listeners are attached to a session factory: rows flushed inside a transaction
are collected, then published to subscribers once the transaction commits.
Rolled-back work is never published.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
OPERATIONS = (INSERT, UPDATE, DELETE)

_PENDING_KEY = "sparkbytes_pending_changes"


@dataclass(frozen=True)
class ChangeNotification:
    table: str
    operation: str
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None

    @property
    def row_id(self) -> Any:
        row = self.new if self.new is not None else self.old
        return (row or {}).get("id")


Callback = Callable[[ChangeNotification], None]


class Subscription:
    def __init__(
        self,
        feed: "ChangeFeed",
        table: str,
        operations: Iterable[str],
        callback: Callback,
    ) -> None:
        self.feed = feed
        self.table = table
        self.operations = frozenset(operations)
        self.callback = callback
        self.active = True

    def matches(self, notification: ChangeNotification) -> bool:
        return (
            self.active
            and notification.table == self.table
            and notification.operation in self.operations
        )

    def unsubscribe(self) -> None:
        self.feed.remove(self)


def row_snapshot(instance: Any) -> dict[str, Any]:
    """Return the column values of a mapped instance as a plain dict."""
    mapper = inspect(instance).mapper
    return {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}


class ChangeFeed:
    """In-process publish/subscribe channel keyed by table and operation."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()
        self._factories: list[sessionmaker] = []

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(
        self,
        table: str,
        callback: Callback,
        *,
        operations: Iterable[str] = OPERATIONS,
    ) -> Subscription:
        operations = tuple(operations)
        unknown = set(operations) - set(OPERATIONS)
        if unknown:
            raise ValueError(f"Unknown operations: {sorted(unknown)}")
        subscription = Subscription(self, table, operations, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def remove(self, subscription: Subscription) -> None:
        subscription.active = False
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def clear(self) -> None:
        with self._lock:
            for subscription in self._subscriptions:
                subscription.active = False
            self._subscriptions.clear()

    def publish(self, notification: ChangeNotification) -> None:
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(notification)]
        for subscription in targets:
            try:
                subscription.callback(notification)
            except Exception:
                logger.exception(
                    "Change subscriber failed for %s %s",
                    notification.operation,
                    notification.table,
                )

    # -------- session wiring --------

    def attach(self, factory: sessionmaker) -> None:
        event.listen(factory, "after_flush", self._collect)
        event.listen(factory, "after_commit", self._flush_pending)
        event.listen(factory, "after_soft_rollback", self._discard_pending)
        self._factories.append(factory)

    def detach(self) -> None:
        for factory in self._factories:
            event.remove(factory, "after_flush", self._collect)
            event.remove(factory, "after_commit", self._flush_pending)
            event.remove(factory, "after_soft_rollback", self._discard_pending)
        self._factories.clear()

    def _collect(self, session: Session, _flush_context) -> None:
        pending = session.info.setdefault(_PENDING_KEY, [])
        for instance in session.new:
            pending.append(
                ChangeNotification(
                    table=inspect(instance).mapper.local_table.name,
                    operation=INSERT,
                    new=row_snapshot(instance),
                )
            )
        for instance in session.dirty:
            if not session.is_modified(instance, include_collections=False):
                continue
            pending.append(
                ChangeNotification(
                    table=inspect(instance).mapper.local_table.name,
                    operation=UPDATE,
                    new=row_snapshot(instance),
                )
            )
        for instance in session.deleted:
            pending.append(
                ChangeNotification(
                    table=inspect(instance).mapper.local_table.name,
                    operation=DELETE,
                    old=row_snapshot(instance),
                )
            )

    def _flush_pending(self, session: Session) -> None:
        pending = session.info.pop(_PENDING_KEY, [])
        for notification in pending:
            self.publish(notification)

    def _discard_pending(self, session: Session, _previous_transaction) -> None:
        session.info.pop(_PENDING_KEY, None)
