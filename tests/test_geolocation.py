from __future__ import annotations

from sparkbytes.geolocation import (
    PERMISSION_DENIED,
    TIMEOUT,
    UNKNOWN_ERROR_MESSAGE,
    UNSUPPORTED_MESSAGE,
    Position,
    PositionError,
    UserLocationTracker,
    WatchOptions,
    describe_error,
)


class FakeProvider:
    def __init__(self):
        self.callbacks = None
        self.options = None
        self.cleared = []

    def watch_position(self, on_success, on_error, options):
        self.callbacks = (on_success, on_error)
        self.options = options
        return "watch-1"

    def clear_watch(self, watch_id):
        self.cleared.append(watch_id)


def test_unsupported_without_provider():
    tracker = UserLocationTracker(None)
    state = tracker.start()
    assert state.error == UNSUPPORTED_MESSAGE
    assert state.loading is False
    assert state.coords is None
    tracker.stop()


def test_watch_reports_longitude_first():
    provider = FakeProvider()
    tracker = UserLocationTracker(provider)

    assert tracker.start().loading is True
    assert provider.options == WatchOptions(
        enable_high_accuracy=True, timeout_ms=5000, maximum_age_ms=0
    )
    on_success, _ = provider.callbacks
    on_success(Position(longitude=-71.1, latitude=42.35, accuracy=12.0))

    assert tracker.state.coords == (-71.1, 42.35)
    assert tracker.state.loading is False
    assert tracker.state.error is None


def test_error_keeps_last_known_position():
    provider = FakeProvider()
    tracker = UserLocationTracker(provider)
    tracker.start()
    on_success, on_error = provider.callbacks
    on_success(Position(longitude=-71.1, latitude=42.35))
    on_error(PositionError(TIMEOUT))

    assert tracker.state.coords == (-71.1, 42.35)
    assert tracker.state.error == "Location request timed out"


def test_stop_clears_watch_and_ignores_late_updates():
    provider = FakeProvider()
    tracker = UserLocationTracker(provider)
    tracker.start()
    tracker.start()
    on_success, _ = provider.callbacks

    tracker.stop()
    tracker.stop()
    on_success(Position(longitude=1.0, latitude=2.0))

    assert provider.cleared == ["watch-1"]
    assert tracker.state.coords is None


def test_describe_error():
    assert describe_error(PositionError(PERMISSION_DENIED)) == (
        "Please allow location access to see nearby events"
    )
    assert describe_error(PositionError(99)) == UNKNOWN_ERROR_MESSAGE
