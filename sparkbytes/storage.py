"""Database initialization and migrations."""

from __future__ import annotations

import shutil
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect
from sqlalchemy.engine import Engine


def _alembic_config(engine: Engine) -> Config:
    package_dir = Path(__file__).resolve().parent
    script_location = package_dir / "alembic"
    ini_path = script_location.parent / "alembic.ini"

    config = Config(str(ini_path)) if ini_path.exists() else Config()
    config.set_main_option("script_location", str(script_location))
    config.set_main_option(
        "sqlalchemy.url", engine.url.render_as_string(hide_password=False)
    )
    return config


def _run(engine: Engine, action: str) -> None:
    config = _alembic_config(engine)
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        if action == "stamp":
            command.stamp(config, "head")
        else:
            command.upgrade(config, "head")


def upgrade_database(
    engine: Engine,
    *,
    database_path: Path | None = None,
    make_backup: bool = True,
) -> list[str]:
    """Upgrade the database schema in-place.

    Returns a list of applied actions; empty if already up-to-date.
    """
    actions: list[str] = []

    if make_backup and database_path and Path(database_path).exists():
        db_path = Path(database_path)
        backup_path = db_path.with_suffix(db_path.suffix + ".bak")
        shutil.copy(db_path, backup_path)
        actions.append(f"Backup created at {backup_path}")

    inspector = inspect(engine)
    has_alembic = inspector.has_table("alembic_version")
    has_events = inspector.has_table("events")

    if not has_alembic and not has_events:
        # Fresh database: run migrations normally.
        _run(engine, "upgrade")
        actions.append("Ran Alembic upgrade to head (fresh database)")
    elif not has_alembic:
        # Existing database without Alembic tracking: baseline it.
        _run(engine, "stamp")
        actions.append("Stamped existing database to Alembic head")
    else:
        _run(engine, "upgrade")
        actions.append("Applied Alembic migrations to head")

    return actions


def init_db(engine: Engine) -> list[str]:
    return upgrade_database(engine, make_backup=False)
