"""FastAPI application for Spark!Bytes."""

from __future__ import annotations

import dataclasses
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from importlib.metadata import PackageNotFoundError, version as pkg_version
from pathlib import Path
import tomllib

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import events as event_store
from .catalog import BUILDINGS, DIETARY_TAGS, ROLE_STUDENT
from .client import StoreClient
from .config import settings
from .errors import (
    AlreadyRsvpd,
    AuthRequired,
    CapacityExceeded,
    NotAuthorized,
    StoreError,
    ValidationError,
)
from .scheduler import start_scheduler, stop_scheduler
from .schemas import DashboardEvent, EventFormData, EventPatch, UserProfile
from .storage import init_db
from .views import STATUS_BADGES, build_map_view, can_edit_event

# Use uvicorn's error logger so messages get the level prefix in the default log
# format.
logger = logging.getLogger("uvicorn.error")

EVENT_FULL_ERROR = "EventFull"
EVENT_CLOSED_ERROR = "EventClosed"


def _load_app_version() -> str:
    """Return the current package version, falling back to pyproject for dev runs."""
    try:
        return pkg_version("sparkbytes")
    except PackageNotFoundError:
        pyproject_path = Path(__file__).resolve().parent.parent / "pyproject.toml"
        if pyproject_path.exists():
            data = tomllib.loads(pyproject_path.read_text())
            project = data.get("project") or {}
            return str(project.get("version") or "dev")
    return "dev"


APP_VERSION = _load_app_version()


class SignUpPayload(BaseModel):
    email: str
    password: str
    full_name: str
    role: str = ROLE_STUDENT
    faculty_code: str | None = None


class SignInPayload(BaseModel):
    email: str
    password: str


class DietaryPreferencesPayload(BaseModel):
    dietary_preferences: list[str] = Field(default_factory=list)


class FacultyCodePayload(BaseModel):
    code: str = ""


def _get_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("authorization") or ""
    if not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def get_client(request: Request) -> StoreClient:
    client = request.app.state.client
    if client is None:
        raise StoreError(code="unavailable")
    return client


def current_user(
    request: Request, client: StoreClient = Depends(get_client)
) -> UserProfile:
    return client.auth.require_user(_get_bearer_token(request))


def optional_user(
    request: Request, client: StoreClient = Depends(get_client)
) -> UserProfile | None:
    return client.auth.get_user(_get_bearer_token(request))


def _serialize_event(event: DashboardEvent, *, user: UserProfile | None = None) -> dict:
    payload = event.model_dump(mode="json")
    payload["is_full"] = event.is_full
    payload["badge"] = STATUS_BADGES.get(event.status, "")
    payload["can_edit"] = can_edit_event(user, event)
    return payload


# -------- exception handlers --------


async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse({"detail": exc.message, "errors": exc.errors}, status_code=422)


async def auth_required_handler(request: Request, exc: AuthRequired):
    return JSONResponse(
        {"detail": exc.message},
        status_code=401,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def not_authorized_handler(request: Request, exc: NotAuthorized):
    return JSONResponse({"detail": exc.message}, status_code=403)


async def capacity_exceeded_handler(request: Request, exc: CapacityExceeded):
    return JSONResponse(
        {"error": EVENT_FULL_ERROR, "message": exc.message}, status_code=409
    )


async def store_error_handler(request: Request, exc: StoreError):
    if exc.is_not_found:
        return JSONResponse({"detail": exc.message}, status_code=404)
    if exc.code == "closed":
        return JSONResponse(
            {"error": EVENT_CLOSED_ERROR, "message": exc.message}, status_code=409
        )
    logger.error(
        "Store error (%s) on %s %s: %s",
        exc.code,
        request.method,
        request.url.path,
        exc.message,
    )
    return JSONResponse({"detail": StoreError.message}, status_code=503)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"detail": exc.errors()}, status_code=422)


async def generic_exception_handler(request: Request, exc: Exception):
    """Gracefully handle unexpected errors."""
    logger.exception(
        "Unhandled error while processing %s %s", request.method, request.url.path
    )
    return JSONResponse({"detail": "Internal server error"}, status_code=500)


# -------- auth --------


def api_sign_up(payload: SignUpPayload, client: StoreClient = Depends(get_client)):
    user = client.auth.sign_up(
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        role=payload.role,
        faculty_code=payload.faculty_code,
    )
    return {"user": user.model_dump()}


def api_sign_in(payload: SignInPayload, client: StoreClient = Depends(get_client)):
    session = client.auth.sign_in(email=payload.email, password=payload.password)
    return {
        "token": session.token,
        "expires_at": session.expires_at.isoformat(),
        "user": session.user.model_dump(),
    }


def api_sign_out(request: Request, client: StoreClient = Depends(get_client)):
    client.auth.sign_out(_get_bearer_token(request))
    return Response(status_code=204)


def api_me(user: UserProfile = Depends(current_user)):
    return {"user": user.model_dump()}


def api_update_dietary_preferences(
    payload: DietaryPreferencesPayload,
    user: UserProfile = Depends(current_user),
    client: StoreClient = Depends(get_client),
):
    updated = client.auth.update_dietary_preferences(
        user.id, payload.dietary_preferences
    )
    return {"user": updated.model_dump()}


def api_my_rsvps(
    user: UserProfile = Depends(current_user),
    client: StoreClient = Depends(get_client),
):
    attending = event_store.get_user_rsvp_events(client, user.id)
    return {"events": [_serialize_event(event, user=user) for event in attending]}


# -------- events --------


def api_list_events(
    user: UserProfile | None = Depends(optional_user),
    client: StoreClient = Depends(get_client),
):
    public_events = event_store.list_public_events(client)
    rsvp_ids = event_store.get_user_rsvp_ids(client, user.id) if user else set()
    return {
        "events": [_serialize_event(event, user=user) for event in public_events],
        "rsvp_event_ids": sorted(rsvp_ids),
    }


def api_get_event(
    event_id: str,
    user: UserProfile | None = Depends(optional_user),
    client: StoreClient = Depends(get_client),
):
    event = event_store.get_event(client, event_id)
    is_rsvpd = bool(user) and event_id in event_store.get_user_rsvp_ids(
        client, user.id
    )
    return {"event": _serialize_event(event, user=user), "is_rsvpd": is_rsvpd}


def api_create_event(
    form: EventFormData,
    user: UserProfile = Depends(current_user),
    client: StoreClient = Depends(get_client),
):
    if not user.is_faculty:
        raise NotAuthorized("Only faculty members can add events")
    created = event_store.create_event(client, form, user.id)
    logger.info("Event %s created via API", created.id)
    return {"event": _serialize_event(created, user=user)}


def api_update_event(
    event_id: str,
    patch: EventPatch,
    user: UserProfile = Depends(current_user),
    client: StoreClient = Depends(get_client),
):
    current = event_store.get_event(client, event_id)
    updated = event_store.update_event(client, event_id, patch.apply_to(current), user)
    return {"event": _serialize_event(updated, user=user)}


def api_cancel_event(
    event_id: str,
    user: UserProfile = Depends(current_user),
    client: StoreClient = Depends(get_client),
):
    cancelled = event_store.cancel_event(client, event_id, user)
    return {"event": _serialize_event(cancelled, user=user)}


def api_rsvp(
    event_id: str,
    user: UserProfile = Depends(current_user),
    client: StoreClient = Depends(get_client),
):
    try:
        count = event_store.rsvp(client, event_id, user.id)
    except AlreadyRsvpd as exc:
        event = event_store.get_event(client, event_id)
        return {
            "attending": True,
            "already_rsvpd": True,
            "attendees": event.attendees,
            "message": exc.message,
        }
    return {"attending": True, "already_rsvpd": False, "attendees": count}


def api_cancel_rsvp(
    event_id: str,
    user: UserProfile = Depends(current_user),
    client: StoreClient = Depends(get_client),
):
    removed = event_store.cancel_rsvp(client, event_id, user.id)
    return {"attending": False, "removed": removed}


# -------- reference data --------


def api_map(
    lng: float | None = Query(None),
    lat: float | None = Query(None),
    client: StoreClient = Depends(get_client),
):
    user_pos = (lng, lat) if lng is not None and lat is not None else None
    view = build_map_view(
        event_store.list_public_events(client),
        user_pos,
        hour=datetime.now(client.settings.tz).hour,
        center=client.settings.default_coords,
    )
    return dataclasses.asdict(view)


def api_dietary_tags():
    return {"tags": [dataclasses.asdict(tag) for tag in DIETARY_TAGS]}


def api_buildings():
    return {"buildings": [dataclasses.asdict(building) for building in BUILDINGS]}


def api_verify_faculty_code(
    payload: FacultyCodePayload, client: StoreClient = Depends(get_client)
):
    if client.auth.verify_faculty_code(payload.code):
        return {"valid": True}
    return {"valid": False, "message": "Invalid code. Please try again."}


def api_health():
    return {"status": "ok", "version": APP_VERSION}


def register_api_routes(app: FastAPI) -> None:
    """Register JSON API routes on the FastAPI app."""
    app.post("/api/auth/signup", status_code=201)(api_sign_up)
    app.post("/api/auth/signin")(api_sign_in)
    app.post("/api/auth/signout", status_code=204)(api_sign_out)
    app.get("/api/me")(api_me)
    app.put("/api/me/dietary-preferences")(api_update_dietary_preferences)
    app.get("/api/me/rsvps")(api_my_rsvps)
    app.get("/api/events")(api_list_events)
    app.post("/api/events", status_code=201)(api_create_event)
    app.get("/api/events/{event_id}")(api_get_event)
    app.patch("/api/events/{event_id}")(api_update_event)
    app.post("/api/events/{event_id}/cancel")(api_cancel_event)
    app.post("/api/events/{event_id}/rsvp")(api_rsvp)
    app.delete("/api/events/{event_id}/rsvp")(api_cancel_rsvp)
    app.get("/api/map")(api_map)
    app.get("/api/dietary-tags")(api_dietary_tags)
    app.get("/api/buildings")(api_buildings)
    app.post("/api/faculty-code/verify")(api_verify_faculty_code)
    app.get("/api/health")(api_health)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owns_client = app.state.client is None
    if owns_client:
        app.state.client = StoreClient.from_settings(settings)
        init_db(app.state.client.engine)
    client = app.state.client
    if client.settings.enable_scheduler:
        start_scheduler(client)
    try:
        yield
    finally:
        stop_scheduler()
        if owns_client:
            client.close()
            app.state.client = None


def create_app(client: StoreClient | None = None) -> FastAPI:
    """Build the application; a passed-in client is used as-is and not closed."""
    app = FastAPI(title="Spark!Bytes", version=APP_VERSION, lifespan=lifespan)
    app.state.client = client
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(AuthRequired, auth_required_handler)
    app.add_exception_handler(NotAuthorized, not_authorized_handler)
    app.add_exception_handler(CapacityExceeded, capacity_exceeded_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    register_api_routes(app)
    return app


app = create_app()
