"""Typer CLI for Spark!Bytes."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy.exc import OperationalError
import typer
import uvicorn

from . import events as event_store
from .client import StoreClient
from . import config
from .config import load_settings, settings, settings_as_dict, update_config_file
from .errors import StoreError
from .lifecycle import refresh_event_statuses
from .seed import SEED_PASSWORD, seed_fake_data
from .storage import init_db, upgrade_database

app = typer.Typer(help="Spark!Bytes command-line interface")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@contextmanager
def _client() -> Iterator[StoreClient]:
    client = StoreClient.from_settings(config.settings)
    try:
        init_db(client.engine)
        yield client
    finally:
        client.close()


def _exit_read_only(action: str, exc: OperationalError) -> None:
    message = str(getattr(exc, "orig", exc)).lower()
    if "readonly" in message or "read-only" in message:
        typer.secho(
            f"Unable to {action} because the database is read-only. "
            f"Ensure write access to {config.settings.database_path}.",
            err=True,
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=1)


@app.command("init-db")
def init_database() -> None:
    """Create the database schema if it does not exist yet."""
    with _client():
        pass
    typer.echo(f"Database ready at {config.settings.database_path}")


@app.command("upgrade-db")
def upgrade_db(
    no_backup: bool = typer.Option(
        False,
        "--no-backup",
        help="Skip creating a .bak copy of the database before upgrading",
    ),
) -> None:
    """Upgrade the SQLite database schema if needed."""
    client = StoreClient.from_settings(config.settings)
    try:
        actions = upgrade_database(
            client.engine,
            database_path=config.settings.database_path,
            make_backup=not no_backup,
        )
    except OperationalError as exc:
        _exit_read_only("upgrade", exc)
        raise
    finally:
        client.close()

    if not actions:
        typer.echo("Database already up to date.")
        return

    typer.echo("Database upgrade complete:")
    for action in actions:
        typer.echo(f"- {action}")


@app.command("runserver")
def runserver(
    host: str = typer.Option(settings.app_host, "--host", help="Host to bind"),
    port: int = typer.Option(settings.app_port, "--port", help="Port to bind"),
):
    """Start FastAPI; the app's lifespan runs the status scheduler."""
    server_config = uvicorn.Config(
        "sparkbytes.api:app",
        host=host,
        port=port,
        reload=False,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
    server = uvicorn.Server(server_config)
    typer.echo(f"Starting Spark!Bytes on {host}:{port}")
    server.run()


@app.command("seed-data")
def seed_data(
    profiles: int = typer.Option(
        settings.seed_profiles, "--profiles", min=1, help="Number of profiles to create"
    ),
    events: int = typer.Option(
        settings.seed_events, "--events", min=0, help="Number of events to create"
    ),
    max_rsvps: int = typer.Option(
        settings.seed_rsvps_per_event,
        "--max-rsvps",
        min=0,
        help="Maximum RSVPs to attach to each event",
    ),
    faculty_percent: int = typer.Option(
        25,
        "--faculty-percent",
        min=0,
        max=100,
        help="Percentage of profiles created as faculty (0-100)",
    ),
):
    """Populate the database with fake profiles and events for testing."""
    with _client() as client:
        stats = seed_fake_data(
            client,
            profile_count=profiles,
            event_count=events,
            max_rsvps_per_event=max_rsvps,
            faculty_percentage=faculty_percent,
        )
        refresh_event_statuses(client)
    typer.echo(
        f"Seed complete: {stats['profiles']} profiles ({stats['faculty']} faculty), "
        f"{stats['events']} events, {stats['rsvps']} RSVPs created. "
        f"Every seeded profile uses the password '{SEED_PASSWORD}'."
    )


@app.command("refresh-statuses")
def refresh_statuses() -> None:
    """Run the event status refresh once."""
    with _client() as client:
        stats = refresh_event_statuses(client)
    typer.echo(f"Status refresh complete: {stats}")


@app.command("list-events")
def list_events(
    as_json: bool = typer.Option(False, "--json", help="Print events as JSON"),
) -> None:
    """Print the public, open events."""
    try:
        with _client() as client:
            public_events = event_store.list_public_events(client)
    except StoreError as exc:
        typer.secho(exc.message, err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(
            json.dumps([event.model_dump(mode="json") for event in public_events], indent=2)
        )
        return
    if not public_events:
        typer.echo("No open events.")
        return
    for event in public_events:
        capacity = f"/{event.max_attendees}" if event.max_attendees else ""
        typer.echo(
            f"{event.time:<20} {event.title} @ {event.location} "
            f"[{event.status}] {event.attendees}{capacity} attending"
        )


@app.command("config")
def configure(
    show: bool = typer.Option(
        False, "--show", help="Show the current effective configuration"
    ),
    host: str | None = typer.Option(None, "--host", help="Default host for runserver"),
    port: int | None = typer.Option(None, "--port", help="Default port for runserver"),
    config_path: Path | None = typer.Option(
        None,
        "--config-path",
        help="Path to sparkbytes.toml (default: ./sparkbytes.toml)",
    ),
    enable_scheduler: bool | None = typer.Option(
        None,
        "--enable-scheduler/--disable-scheduler",
        help="Toggle the background status refresh scheduler",
    ),
    status_refresh_minutes: int | None = typer.Option(
        None, "--status-refresh-minutes", min=1, help="Minutes between status refreshes"
    ),
    starting_soon_minutes: int | None = typer.Option(
        None,
        "--starting-soon-minutes",
        min=0,
        help="Window before start during which events show as starting soon",
    ),
    faculty_code: str | None = typer.Option(
        None, "--faculty-code", help="Code faculty must enter to add events"
    ),
    email_domain: str | None = typer.Option(
        None, "--email-domain", help="Email domain required at sign-up"
    ),
    display_timezone: str | None = typer.Option(
        None, "--display-timezone", help="IANA timezone used to format event times"
    ),
    session_ttl_hours: int | None = typer.Option(
        None, "--session-ttl-hours", min=1, help="Lifetime of sign-in sessions"
    ),
    seed_profiles: int | None = typer.Option(
        None, "--seed-profiles", min=1, help="Default seed-data profiles"
    ),
    seed_events: int | None = typer.Option(
        None, "--seed-events", min=0, help="Default seed-data events"
    ),
    seed_rsvps_per_event: int | None = typer.Option(
        None, "--seed-rsvps-per-event", min=0, help="Default seed-data RSVPs per event"
    ),
):
    """View or update the persistent configuration file."""

    updates = {
        "app_host": host,
        "app_port": port,
        "enable_scheduler": enable_scheduler,
        "status_refresh_minutes": status_refresh_minutes,
        "starting_soon_minutes": starting_soon_minutes,
        "faculty_code": faculty_code,
        "email_domain": email_domain,
        "display_timezone": display_timezone,
        "session_ttl_hours": session_ttl_hours,
        "seed_profiles": seed_profiles,
        "seed_events": seed_events,
        "seed_rsvps_per_event": seed_rsvps_per_event,
    }
    clean_updates = {k: v for k, v in updates.items() if v is not None}

    target_path = config_path or config.settings.config_path
    if clean_updates:
        settings_ref = update_config_file(clean_updates, path=target_path)
        typer.echo(f"Updated configuration in {target_path}")
    else:
        settings_ref = load_settings(target_path)
    if show or not clean_updates:
        effective = settings_as_dict(settings_ref)
        effective["config_path"] = str(target_path)
        typer.echo(json.dumps(effective, indent=2))


if __name__ == "__main__":
    app()
