"""SQLAlchemy models for Spark!Bytes."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from .catalog import ROLE_STUDENT, STATUS_AVAILABLE
from .utils import utcnow

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return utcnow()


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False, default="")
    role = Column(String(16), nullable=False, default=ROLE_STUDENT)
    password_hash = Column(String(255), nullable=False)
    dietary_preferences = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=_now, nullable=False)

    events = relationship("Event", back_populates="organizer")
    attendances = relationship(
        "EventAttendee", back_populates="user", cascade="all, delete-orphan"
    )
    sessions = relationship(
        "AuthSession", back_populates="profile", cascade="all, delete-orphan"
    )


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (Index("ix_events_status_start", "status", "start_time"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    location_coordinates = Column(String(64), nullable=True)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    organizer_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    max_attendees = Column(Integer, nullable=True)
    status = Column(String(16), nullable=False, default=STATUS_AVAILABLE)
    is_public = Column(Boolean, nullable=False, default=True)
    food_offerings = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    organizer = relationship("Profile", back_populates="events")
    attendees = relationship(
        "EventAttendee", back_populates="event", cascade="all, delete-orphan"
    )


class EventAttendee(Base):
    __tablename__ = "event_attendees"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_attendees_event_user"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    event_id = Column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    rsvp_time = Column(DateTime, default=_now, nullable=False)

    event = relationship("Event", back_populates="attendees")
    user = relationship("Profile", back_populates="attendances")


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String(128), primary_key=True)
    profile_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(DateTime, default=_now, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    profile = relationship("Profile", back_populates="sessions")
