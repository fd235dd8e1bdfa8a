"""Database helpers for the ROM Shelf API."""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine, select

from .models import ConfigRecord, PlatformRecord
from .schemas import ConfigModel
from .settings import ShelfSettings

DEFAULT_PLATFORMS: tuple[tuple[str, str, int], ...] = (
    ("Nintendo Entertainment System", "Nintendo", 1985),
    ("Super Nintendo Entertainment System", "Nintendo", 1991),
    ("Nintendo 64", "Nintendo", 1996),
    ("Nintendo GameCube", "Nintendo", 2001),
    ("Nintendo Wii", "Nintendo", 2006),
    ("Game Boy", "Nintendo", 1989),
    ("Game Boy Color", "Nintendo", 1998),
    ("Game Boy Advance", "Nintendo", 2001),
    ("Nintendo DS", "Nintendo", 2004),
    ("Nintendo 3DS", "Nintendo", 2011),
    ("Sega Master System", "Sega", 1986),
    ("Sega Genesis", "Sega", 1988),
    ("Sega Saturn", "Sega", 1994),
    ("Sega Dreamcast", "Sega", 1998),
    ("Sony PlayStation", "Sony", 1994),
    ("Sony PlayStation 2", "Sony", 2000),
    ("Sony PlayStation 3", "Sony", 2006),
    ("Sony PlayStation 4", "Sony", 2013),
    ("Sony PlayStation 5", "Sony", 2020),
    ("Sony PlayStation Portable", "Sony", 2004),
    ("Sony PlayStation Vita", "Sony", 2011),
    ("Microsoft Xbox", "Microsoft", 2001),
    ("Microsoft Xbox 360", "Microsoft", 2005),
    ("Microsoft Xbox One", "Microsoft", 2013),
    ("Microsoft Xbox Series X/S", "Microsoft", 2020),
    ("Atari 2600", "Atari", 1977),
    ("Atari 5200", "Atari", 1982),
    ("Atari 7800", "Atari", 1986),
    ("PC", "Various", 1981),
    ("Arcade", "Various", 1970),
)


def _ensure_sqlite_path(database_url: str) -> None:
    """Create parent directories when using a SQLite URL."""

    if database_url.startswith("sqlite:///"):
        path_part = database_url.removeprefix("sqlite:///").split("?")[0]
        if path_part:
            db_path = Path(path_part)
            db_path.parent.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ANN001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_from_settings(settings: ShelfSettings) -> Engine:
    """Create a SQLModel engine using service settings."""

    _ensure_sqlite_path(settings.database_url)
    is_sqlite = settings.database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    engine = create_engine(settings.database_url, echo=settings.database_echo, connect_args=connect_args)
    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_database(engine: Engine, settings: ShelfSettings) -> None:
    """Create tables and seed default configuration and platforms."""

    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        record = session.get(ConfigRecord, 1)
        if record is None:
            session.add(
                ConfigRecord(
                    id=1,
                    supported_extensions=list(settings.default_extensions),
                    dedupe_rescans=False,
                    default_batch_size=settings.default_batch_size,
                    default_delay_seconds=settings.default_delay_seconds,
                )
            )

        existing = set(session.exec(select(PlatformRecord.name)).all())
        for name, manufacturer, release_year in DEFAULT_PLATFORMS:
            if name not in existing:
                session.add(
                    PlatformRecord(name=name, manufacturer=manufacturer, release_year=release_year)
                )
        session.commit()


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Yield a SQLModel session that commits on success and rolls back on error."""

    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:  # pragma: no cover - re-raise after rollback
        session.rollback()
        raise
    finally:
        session.close()


def read_config(session: Session) -> ConfigModel:
    """Fetch the persisted configuration as a Pydantic model."""

    record = session.get(ConfigRecord, 1)
    if record is None:
        raise RuntimeError("Configuration record missing from database")
    return ConfigModel(
        supported_extensions=list(record.supported_extensions),
        dedupe_rescans=record.dedupe_rescans,
        default_batch_size=record.default_batch_size,
        default_delay_seconds=record.default_delay_seconds,
    )
