"""Per-session view state for the event dashboard.

``DashboardController`` owns the in-memory working copies for one signed-in
user: the open event list, the RSVP membership map, and the favorites set.
Change notifications from the store and local attendee-count edits are both
pushed onto one ``asyncio.Queue`` and applied by a single reducer task, so the
event list has exactly one writer.

Store calls run in worker threads via ``asyncio.to_thread``. Every data-access
error is caught here and turned into a ``Notice``; nothing propagates to the
caller except programming errors.
"""

from __future__ import annotations

import asyncio
import enum
import itertools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from . import events as event_store
from .catalog import OPEN_STATUSES
from .errors import (
    AlreadyRsvpd,
    AuthRequired,
    CapacityExceeded,
    NotAuthorized,
    StoreError,
    ValidationError,
)
from .feed import DELETE, INSERT, ChangeNotification
from .geolocation import GeolocationProvider, LocationState, UserLocationTracker
from .schemas import DashboardEvent, EventFormData, UserProfile, decode_event
from .views import MapView, build_map_view

if TYPE_CHECKING:
    from .client import StoreClient

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"

LOAD_FAILED_MESSAGE = "Failed to load user data. Please try again."
RSVP_FAILED_MESSAGE = "Failed to update RSVP status"
INVALID_CODE_MESSAGE = "Invalid code. Please try again."


@dataclass(frozen=True)
class Notice:
    level: str  # success | info | warning | error
    message: str


class ToggleOutcome(enum.Enum):
    ATTENDING = "attending"
    NOT_ATTENDING = "not_attending"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    ALREADY_RSVPD = "already_rsvpd"
    FAILED = "failed"
    AUTH_REQUIRED = "auth_required"


@dataclass(frozen=True)
class _AdjustAttendees:
    event_id: str
    delta: int = 0
    absolute: int | None = None


class DashboardController:
    def __init__(
        self,
        client: "StoreClient",
        token: str | None,
        *,
        location_provider: GeolocationProvider | None = None,
    ) -> None:
        self.client = client
        self.token = token
        self.user: UserProfile | None = None
        self.events: list[DashboardEvent] = []
        self.rsvp_map: dict[str, bool] = {}
        self.favorite_ids: set[str] = set()
        self.notices: list[Notice] = []
        self.redirect_to: str | None = None
        self.load_error: str | None = None
        self.selected_event_id: str | None = None
        self.faculty_code_prompt_open = False
        self.add_event_form_open = False
        self.form_errors: dict[str, str] = {}
        self.mounted = False

        self.location = UserLocationTracker(location_provider)
        self._use_location = location_provider is not None
        self._selected_snapshot: DashboardEvent | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue | None = None
        self._reducer: asyncio.Task | None = None
        self._subscription = None
        self._locks: dict[str, asyncio.Lock] = {}
        self._tokens = itertools.count(1)
        self._latest_request: dict[str, int] = {}

    # -------- lifecycle --------

    async def mount(self) -> bool:
        """Resolve the user, load the dashboard, and start reconciling changes.

        Returns ``False`` when the user is not signed in; ``redirect_to`` is set
        to the sign-in page in that case.
        """
        if self.mounted:
            return True
        self._loop = asyncio.get_running_loop()
        try:
            self.user = await asyncio.to_thread(self.client.auth.require_user, self.token)
        except AuthRequired as exc:
            self.redirect_to = LOGIN_PATH
            self._notify("warning", exc.message)
            return False
        except StoreError:
            logger.exception("Could not resolve the dashboard user")
            self.load_error = LOAD_FAILED_MESSAGE
            self._notify("error", LOAD_FAILED_MESSAGE)
            return False

        # Subscribe before loading so changes committed during the load are
        # buffered and replayed on top of the snapshot.
        self._queue = asyncio.Queue()
        self._subscription = self.client.feed.subscribe("events", self._on_change)
        try:
            loaded = await asyncio.to_thread(event_store.list_public_events, self.client)
            attending = await asyncio.to_thread(
                event_store.get_user_rsvp_ids, self.client, self.user.id
            )
        except StoreError:
            logger.exception("Failed to load dashboard for user %s", self.user.id)
            self.load_error = LOAD_FAILED_MESSAGE
            self._notify("error", LOAD_FAILED_MESSAGE)
        else:
            self.events = loaded
            self.rsvp_map = {event_id: True for event_id in attending}

        self._reducer = asyncio.create_task(self._run_reducer())
        if self._use_location:
            self.location.start()
        self.mounted = True
        logger.debug("Dashboard mounted for user %s", self.user.id)
        return True

    async def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._reducer is not None:
            self._reducer.cancel()
            try:
                await self._reducer
            except asyncio.CancelledError:
                pass
            self._reducer = None
        self.location.stop()
        self.mounted = False

    async def __aenter__(self) -> "DashboardController":
        await self.mount()
        return self

    async def __aexit__(self, *_exc) -> None:
        await self.unmount()

    async def settle(self) -> None:
        """Wait until everything queued so far has been applied."""
        if self._reducer is None or self._reducer.done():
            return
        barrier = self._loop.create_future()
        # call_soon keeps the barrier behind notifications already scheduled
        # from worker threads.
        self._loop.call_soon(self._queue.put_nowait, barrier)
        await barrier

    # -------- notices --------

    def _notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level, message))

    def drain_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    # -------- reducer --------

    def _on_change(self, notification: ChangeNotification) -> None:
        # Called from whichever thread committed the change.
        if self._loop is None or self._loop.is_closed() or self._queue is None:
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, notification)

    async def _run_reducer(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if isinstance(item, asyncio.Future):
                    if not item.done():
                        item.set_result(None)
                elif isinstance(item, _AdjustAttendees):
                    self._apply_adjustment(item)
                elif isinstance(item, ChangeNotification):
                    await self._apply_change(item)
            except Exception:
                logger.exception("Failed to apply dashboard update %r", item)
            finally:
                self._queue.task_done()

    def _index_of(self, event_id: str) -> int | None:
        for index, event in enumerate(self.events):
            if event.id == event_id:
                return index
        return None

    def _find(self, event_id: str) -> DashboardEvent | None:
        index = self._index_of(event_id)
        return None if index is None else self.events[index]

    def _apply_adjustment(self, item: _AdjustAttendees) -> None:
        index = self._index_of(item.event_id)
        if index is None:
            return
        event = self.events[index]
        if item.absolute is not None:
            count = item.absolute
        else:
            count = event.attendees + item.delta
        self.events[index] = event.model_copy(update={"attendees": max(count, 0)})

    def _remove(self, event_id: str) -> bool:
        index = self._index_of(event_id)
        if index is None:
            return False
        removed = self.events.pop(index)
        if self.selected_event_id == event_id:
            self._selected_snapshot = removed
            self._notify("warning", "This event is no longer available.")
        return True

    def _upsert(self, event: DashboardEvent) -> bool:
        index = self._index_of(event.id)
        if index is None:
            self.events.append(event)
            self.events.sort(key=lambda item: item.start_time)
            return True
        self.events[index] = event
        return False

    async def _apply_change(self, notification: ChangeNotification) -> None:
        event_id = notification.row_id
        if event_id is None:
            return
        if notification.operation == DELETE:
            if self._remove(event_id):
                self._notify("info", "Event deleted!")
            return

        row = notification.new or {}
        if not row.get("is_public", True) or row.get("status") not in OPEN_STATUSES:
            if self._remove(event_id):
                self._notify("info", "Event updated!")
            return

        event = await self._normalize(event_id, row)
        if event is None:
            return
        if not event.is_public or event.status not in OPEN_STATUSES:
            if self._remove(event_id):
                self._notify("info", "Event updated!")
            return
        created = self._upsert(event)
        if notification.operation == INSERT and created:
            self._notify("success", "New event added!")
        else:
            self._notify("info", "Event updated!")

    async def _normalize(self, event_id: str, row: dict) -> DashboardEvent | None:
        """Reload a changed event, falling back to the pushed payload."""
        try:
            return await asyncio.to_thread(event_store.get_event, self.client, event_id)
        except StoreError as exc:
            if exc.is_not_found:
                return None
            logger.warning("Could not reload event %s: %s", event_id, exc)
        existing = self._find(event_id)
        organizer = (
            {"full_name": existing.organizer_name, "email": existing.organizer_email}
            if existing
            else None
        )
        try:
            return decode_event(
                row,
                attendees=existing.attendees if existing else 0,
                organizer=organizer,
                default_coords=self.client.settings.default_coords,
                tz=self.client.settings.tz,
            )
        except StoreError:
            logger.warning("Dropping malformed change payload for event %s", event_id)
            return None

    # -------- RSVP --------

    def _lock_for(self, event_id: str) -> asyncio.Lock:
        lock = self._locks.get(event_id)
        if lock is None:
            lock = self._locks[event_id] = asyncio.Lock()
        return lock

    def is_rsvpd(self, event_id: str) -> bool:
        return self.rsvp_map.get(event_id, False)

    async def _adjust(self, item: _AdjustAttendees) -> None:
        self._queue.put_nowait(item)
        await self.settle()

    async def toggle_rsvp(self, event_id: str) -> ToggleOutcome:
        """RSVP to, or cancel an RSVP for, ``event_id``.

        Toggles for the same event run one at a time, each deciding its
        direction from the outcome of the previous one. Only the most recent
        request posts a notice.
        """
        if self.user is None:
            self.redirect_to = LOGIN_PATH
            self._notify("warning", AuthRequired.message)
            return ToggleOutcome.AUTH_REQUIRED
        if not self.mounted:
            raise RuntimeError("Dashboard is not mounted")

        request = next(self._tokens)
        self._latest_request[event_id] = request
        async with self._lock_for(event_id):
            outcome, notice = await self._toggle_once(event_id)
        if notice is not None and self._latest_request.get(event_id) == request:
            self._notify(*notice)
        return outcome

    async def _toggle_once(
        self, event_id: str
    ) -> tuple[ToggleOutcome, tuple[str, str] | None]:
        user_id = self.user.id
        if self.is_rsvpd(event_id):
            try:
                removed = await asyncio.to_thread(
                    event_store.cancel_rsvp, self.client, event_id, user_id
                )
            except StoreError:
                logger.exception("Cancelling RSVP for %s failed", event_id)
                return ToggleOutcome.FAILED, ("error", RSVP_FAILED_MESSAGE)
            self.rsvp_map[event_id] = False
            if removed:
                await self._adjust(_AdjustAttendees(event_id, delta=-1))
            return ToggleOutcome.NOT_ATTENDING, (
                "success",
                "Your RSVP has been canceled",
            )

        try:
            count = await asyncio.to_thread(
                event_store.rsvp, self.client, event_id, user_id
            )
        except CapacityExceeded as exc:
            return ToggleOutcome.CAPACITY_EXCEEDED, ("warning", exc.message)
        except AlreadyRsvpd as exc:
            self.rsvp_map[event_id] = True
            return ToggleOutcome.ALREADY_RSVPD, ("info", exc.message)
        except StoreError:
            logger.exception("RSVP for %s failed", event_id)
            return ToggleOutcome.FAILED, ("error", RSVP_FAILED_MESSAGE)
        self.rsvp_map[event_id] = True
        await self._adjust(_AdjustAttendees(event_id, absolute=count))
        return ToggleOutcome.ATTENDING, (
            "success",
            "You have successfully RSVP'd to this event!",
        )

    # -------- derived views --------

    def my_events(self) -> list[DashboardEvent]:
        return [event for event in self.events if self.rsvp_map.get(event.id)]

    def toggle_favorite(self, event_id: str) -> bool:
        """Flip an event in the favorites set; favorites live only in memory."""
        if event_id in self.favorite_ids:
            self.favorite_ids.discard(event_id)
            return False
        self.favorite_ids.add(event_id)
        return True

    def favorites(self) -> list[DashboardEvent]:
        return [event for event in self.events if event.id in self.favorite_ids]

    def select_event(self, event_id: str | None) -> DashboardEvent | None:
        self.selected_event_id = event_id
        self._selected_snapshot = None
        return self.selected_event

    @property
    def selected_event(self) -> DashboardEvent | None:
        if self.selected_event_id is None:
            return None
        return self._find(self.selected_event_id) or self._selected_snapshot

    @property
    def location_state(self) -> LocationState:
        return self.location.state

    def map_view(self, *, hour: int = 12) -> MapView:
        return build_map_view(
            self.events,
            self.location.state.coords,
            hour=hour,
            center=self.client.settings.default_coords,
        )

    # -------- faculty event management --------

    def request_add_event(self) -> bool:
        """Open the faculty code prompt; only faculty may add events."""
        if self.user is None:
            self.redirect_to = LOGIN_PATH
            self._notify("warning", AuthRequired.message)
            return False
        if not self.user.is_faculty:
            self._notify("error", "Only faculty members can add events")
            return False
        self.faculty_code_prompt_open = True
        return True

    def verify_faculty_code(self, code: str | None) -> bool:
        if not self.faculty_code_prompt_open:
            return False
        if not self.client.auth.verify_faculty_code(code):
            self._notify("error", INVALID_CODE_MESSAGE)
            return False
        self.faculty_code_prompt_open = False
        self.add_event_form_open = True
        self.form_errors = {}
        return True

    async def submit_event(self, form: EventFormData) -> DashboardEvent | None:
        """Create an event from the add-event form.

        The list picks the new event up from the store's INSERT notification.
        """
        if self.user is None or not self.add_event_form_open:
            self._notify("error", "Please verify your faculty status before adding events")
            return None
        try:
            created = await asyncio.to_thread(
                event_store.create_event, self.client, form, self.user.id
            )
        except ValidationError as exc:
            self.form_errors = dict(exc.errors)
            self._notify("error", exc.message)
            return None
        except StoreError:
            logger.exception("Creating event failed")
            self._notify("error", "Failed to create event. Please try again.")
            return None
        self.form_errors = {}
        self.add_event_form_open = False
        self._notify("success", "Event created successfully!")
        return created

    async def edit_event(
        self, event_id: str, form: EventFormData
    ) -> DashboardEvent | None:
        try:
            updated = await asyncio.to_thread(
                event_store.update_event, self.client, event_id, form, self.user
            )
        except NotAuthorized as exc:
            self._notify("error", exc.message)
            return None
        except ValidationError as exc:
            self.form_errors = dict(exc.errors)
            self._notify("error", exc.message)
            return None
        except StoreError:
            logger.exception("Updating event %s failed", event_id)
            self._notify("error", "Failed to update event. Please try again.")
            return None
        self.form_errors = {}
        return updated
