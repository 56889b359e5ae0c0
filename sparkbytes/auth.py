"""Sign-up, sign-in, and session lookup backed by the ``profiles`` table."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Iterable

from passlib.context import CryptContext
from sqlalchemy import delete, select

from .catalog import DIETARY_TAGS_BY_ID, ROLE_FACULTY, ROLE_STUDENT, ROLES
from .errors import AuthRequired, StoreError, ValidationError
from .models import AuthSession, Profile
from .schemas import UserProfile
from .utils import email_in_domain, normalize_email, utcnow

if TYPE_CHECKING:
    from .client import StoreClient

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class SessionInfo:
    token: str
    user: UserProfile
    expires_at: datetime


def to_user_profile(profile: Profile) -> UserProfile:
    return UserProfile(
        id=profile.id,
        email=profile.email,
        full_name=profile.full_name or "",
        role=profile.role,
        dietary_preferences=list(profile.dietary_preferences or []),
    )


def can_edit_event(user: UserProfile | None, organizer_email: str | None) -> bool:
    """Only the faculty member who created an event may edit it."""
    if user is None or not user.is_faculty:
        return False
    organizer = normalize_email(organizer_email)
    return bool(organizer) and normalize_email(user.email) == organizer


class AuthService:
    def __init__(self, client: "StoreClient") -> None:
        self.client = client

    @property
    def settings(self):
        return self.client.settings

    def verify_faculty_code(self, code: str | None) -> bool:
        return secrets.compare_digest(
            (code or "").strip(), str(self.settings.faculty_code)
        )

    def sign_up(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        role: str = ROLE_STUDENT,
        faculty_code: str | None = None,
    ) -> UserProfile:
        normalized_email = normalize_email(email)
        errors: dict[str, str] = {}
        if not email_in_domain(normalized_email, self.settings.email_domain):
            errors["email"] = f"Email must end in @{self.settings.email_domain}"
        if len(password or "") < MIN_PASSWORD_LENGTH:
            errors["password"] = (
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if not (full_name or "").strip():
            errors["full_name"] = "Name is required"
        if role not in ROLES:
            errors["role"] = "Unknown role"
        elif role == ROLE_FACULTY and not self.verify_faculty_code(faculty_code):
            errors["faculty_code"] = "Please verify your faculty status before continuing"
        if errors:
            raise ValidationError(errors)

        try:
            with self.client.session() as session:
                profile = Profile(
                    email=normalized_email,
                    full_name=full_name.strip(),
                    role=role,
                    password_hash=pwd_context.hash(password),
                    dietary_preferences=[],
                )
                session.add(profile)
                session.flush()
                user = to_user_profile(profile)
        except StoreError as exc:
            if exc.is_unique_violation:
                raise ValidationError(
                    {"email": "An account with this email already exists"}
                ) from exc
            raise
        logger.info("Created %s profile %s", role, user.id)
        return user

    def sign_in(self, *, email: str, password: str) -> SessionInfo:
        normalized_email = normalize_email(email)
        with self.client.session() as session:
            profile = session.scalars(
                select(Profile).where(Profile.email == normalized_email)
            ).first()
            if profile is None or not pwd_context.verify(
                password or "", profile.password_hash
            ):
                raise AuthRequired("Invalid email or password")
            now = utcnow()
            record = AuthSession(
                token=secrets.token_urlsafe(32),
                profile_id=profile.id,
                created_at=now,
                expires_at=now + self.settings.session_ttl,
            )
            session.add(record)
            session.flush()
            return SessionInfo(
                token=record.token,
                user=to_user_profile(profile),
                expires_at=record.expires_at,
            )

    def sign_out(self, token: str | None) -> None:
        if not token:
            return
        with self.client.session() as session:
            session.execute(delete(AuthSession).where(AuthSession.token == token))

    def get_user(self, token: str | None) -> UserProfile | None:
        """Return the profile behind a live session token, or ``None``."""
        if not token:
            return None
        with self.client.session() as session:
            record = session.get(AuthSession, token)
            if record is None:
                return None
            if record.expires_at <= utcnow():
                session.delete(record)
                return None
            return to_user_profile(record.profile)

    def require_user(self, token: str | None) -> UserProfile:
        user = self.get_user(token)
        if user is None:
            raise AuthRequired()
        return user

    def update_dietary_preferences(
        self, user_id: str, tag_ids: Iterable[str]
    ) -> UserProfile:
        tags = list(dict.fromkeys(tag_ids))
        unknown = [tag for tag in tags if tag not in DIETARY_TAGS_BY_ID]
        if unknown:
            raise ValidationError(
                {"dietary_preferences": f"Unknown dietary tags: {', '.join(unknown)}"}
            )
        with self.client.session() as session:
            profile = session.get(Profile, user_id)
            if profile is None:
                raise StoreError("Profile not found", code="not_found")
            profile.dietary_preferences = tags
            session.flush()
            return to_user_profile(profile)

    def purge_expired_sessions(self) -> int:
        with self.client.session() as session:
            result = session.execute(
                delete(AuthSession).where(AuthSession.expires_at <= utcnow())
            )
            removed = result.rowcount or 0
        if removed:
            logger.info("Purged %d expired sessions", removed)
        return removed
