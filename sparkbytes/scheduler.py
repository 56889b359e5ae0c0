"""APScheduler integration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler

from .lifecycle import refresh_event_statuses

if TYPE_CHECKING:
    from .client import StoreClient

_scheduler: BackgroundScheduler | None = None


def start_scheduler(client: "StoreClient") -> BackgroundScheduler:
    global _scheduler
    if _scheduler and _scheduler.running:
        return _scheduler
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        refresh_event_statuses,
        "interval",
        args=[client],
        minutes=client.settings.status_refresh_minutes,
        id="status-refresh",
        max_instances=1,
        replace_existing=True,
    )
    scheduler.add_job(
        client.auth.purge_expired_sessions,
        "interval",
        hours=1,
        id="purge-sessions",
        max_instances=1,
        replace_existing=True,
    )
    scheduler.start()
    _scheduler = scheduler
    return scheduler


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        _scheduler = None
