"""Explicitly constructed handle on the event store.

A ``StoreClient`` owns the engine, the session factory, the change feed, and
the auth service. Build one at start-up, pass it down, and ``close()`` it at
shutdown; nothing in the data-access layer reaches for a global client.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .auth import AuthService
from .config import Settings
from .database import create_database_engine, create_session_factory, session_scope
from .errors import UNIQUE_VIOLATION, StoreError
from .feed import ChangeFeed

logger = logging.getLogger(__name__)

FOREIGN_KEY_VIOLATION = "23503"
INTEGRITY_VIOLATION = "23000"


def constraint_code(exc: IntegrityError) -> str:
    """Return a SQLSTATE-style code for an integrity failure."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return str(code)
    message = str(orig or exc).lower()
    if "unique constraint" in message or "duplicate key" in message:
        return UNIQUE_VIOLATION
    if "foreign key" in message:
        return FOREIGN_KEY_VIOLATION
    return INTEGRITY_VIOLATION


class StoreClient:
    def __init__(self, engine: Engine, settings: Settings) -> None:
        self.engine = engine
        self.settings = settings
        self.session_factory = create_session_factory(engine)
        self.feed = ChangeFeed()
        self.feed.attach(self.session_factory)
        self.auth = AuthService(self)
        self.closed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreClient":
        return cls(create_database_engine(settings.database_url), settings)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a transactional session; database failures become ``StoreError``."""
        if self.closed:
            raise StoreError("The store client has been closed", code="closed")
        try:
            with session_scope(self.session_factory) as session:
                yield session
        except IntegrityError as exc:
            code = constraint_code(exc)
            logger.info("Store rejected write (%s): %s", code, exc.orig)
            raise StoreError(code=code) from exc
        except SQLAlchemyError as exc:
            logger.error("Store query failed: %s", exc)
            raise StoreError(code="unavailable") from exc

    def close(self) -> None:
        if self.closed:
            return
        self.feed.clear()
        self.feed.detach()
        self.engine.dispose()
        self.closed = True

    def __enter__(self) -> "StoreClient":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()
