"""Watch-style wrapper around a device geolocation provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Hashable, Protocol

logger = logging.getLogger(__name__)

PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

LOCATION_ERROR_MESSAGES = {
    PERMISSION_DENIED: "Please allow location access to see nearby events",
    POSITION_UNAVAILABLE: "Location information is unavailable",
    TIMEOUT: "Location request timed out",
}
UNSUPPORTED_MESSAGE = "Geolocation is not supported by your browser"
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred while getting your location"


@dataclass(frozen=True)
class Position:
    longitude: float
    latitude: float
    accuracy: float | None = None


@dataclass(frozen=True)
class PositionError:
    code: int
    message: str = ""


@dataclass(frozen=True)
class WatchOptions:
    enable_high_accuracy: bool = True
    timeout_ms: int = 5000
    maximum_age_ms: int = 0


class GeolocationProvider(Protocol):
    def watch_position(
        self,
        on_success: Callable[[Position], None],
        on_error: Callable[[PositionError], None],
        options: WatchOptions,
    ) -> Hashable: ...

    def clear_watch(self, watch_id: Hashable) -> None: ...


@dataclass(frozen=True)
class LocationState:
    coords: tuple[float, float] | None = None
    error: str | None = None
    loading: bool = True


def describe_error(error: PositionError) -> str:
    return LOCATION_ERROR_MESSAGES.get(error.code, UNKNOWN_ERROR_MESSAGE)


class UserLocationTracker:
    """Keep the latest ``(longitude, latitude)`` reported by a provider.

    ``start()`` registers a single watch; ``stop()`` must be called on teardown
    so the provider does not keep delivering updates to a dead view.
    """

    def __init__(
        self,
        provider: GeolocationProvider | None,
        options: WatchOptions | None = None,
    ) -> None:
        self.provider = provider
        self.options = options or WatchOptions()
        self.state = LocationState()
        self._watch_id: Hashable | None = None

    @property
    def active(self) -> bool:
        return self._watch_id is not None

    def start(self) -> LocationState:
        if self.provider is None:
            self.state = LocationState(error=UNSUPPORTED_MESSAGE, loading=False)
            return self.state
        if self.active:
            return self.state
        self.state = LocationState(loading=True)
        self._watch_id = self.provider.watch_position(
            self._on_position, self._on_error, self.options
        )
        return self.state

    def stop(self) -> None:
        if self._watch_id is None:
            return
        watch_id, self._watch_id = self._watch_id, None
        if self.provider is not None:
            self.provider.clear_watch(watch_id)

    def _on_position(self, position: Position) -> None:
        if not self.active:
            return
        self.state = LocationState(
            coords=(position.longitude, position.latitude), error=None, loading=False
        )

    def _on_error(self, error: PositionError) -> None:
        if not self.active:
            return
        message = describe_error(error)
        logger.info("Geolocation failed (%s): %s", error.code, error.message or message)
        self.state = LocationState(coords=self.state.coords, error=message, loading=False)
