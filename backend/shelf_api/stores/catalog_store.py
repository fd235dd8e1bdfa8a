"""Catalog store for games and their file locations."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import func, or_
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from ...ingest.matcher import LocationDraft
from ..db import session_scope
from ..models import FileLocationRecord, GameRecord, PlatformRecord
from ..schemas import (
    DuplicateFileModel,
    FileLocationModel,
    GameDetailModel,
    GameListModel,
    GameMetricsModel,
    GameModel,
    GameSortOption,
)

METADATA_FIELDS = frozenset(
    {"description", "rating", "genre", "year", "cover_art_url", "box_art_url", "external_id"}
)


@dataclass(slots=True)
class EnrichmentTarget:
    id: int
    title: str
    platform_name: str | None


def _missing_metadata_condition():
    return or_(
        GameRecord.description.is_(None),
        GameRecord.description == "",
        GameRecord.cover_art_url.is_(None),
        GameRecord.cover_art_url == "",
    )


@dataclass(slots=True)
class CatalogStore:
    """Read and write access to catalog entries and file locations."""

    engine: Engine

    # ------------------------------------------------------------------
    # Matching primitives used by directory scans

    def find_game(self, title: str, platform_id: int) -> GameModel | None:
        """Return the entry with exactly this title and platform, if any."""

        statement = select(GameRecord).where(
            GameRecord.title == title, GameRecord.platform_id == platform_id
        )
        with Session(self.engine) as session:
            record = session.exec(statement).first()
            return _to_model(record, _platform_name(session, platform_id)) if record else None

    def create_game(self, title: str, platform_id: int, location: LocationDraft) -> GameModel:
        """Create an entry with only title and platform and attach its first location."""

        with session_scope(self.engine) as session:
            record = GameRecord(title=title, platform_id=platform_id)
            session.add(record)
            session.flush()
            session.add(_location_record(record.id, location))
            session.flush()
            session.refresh(record)
            return _to_model(record, _platform_name(session, platform_id))

    def attach_location(self, game_id: int, location: LocationDraft) -> None:
        with session_scope(self.engine) as session:
            session.add(_location_record(game_id, location))

    def has_location(self, game_id: int, location: LocationDraft) -> bool:
        statement = select(FileLocationRecord.id).where(
            FileLocationRecord.game_id == game_id,
            FileLocationRecord.server_location == location.server_location,
            FileLocationRecord.file_path == location.file_path,
            FileLocationRecord.file_hash == location.file_hash,
        )
        with Session(self.engine) as session:
            return session.exec(statement.limit(1)).first() is not None

    # ------------------------------------------------------------------
    # Duplicate detection

    def locations_with_hash(self) -> list[DuplicateFileModel]:
        """Return every location that carries a content hash, ordered by id."""

        statement = (
            select(FileLocationRecord, GameRecord.title)
            .join(GameRecord, GameRecord.id == FileLocationRecord.game_id)
            .where(FileLocationRecord.file_hash != "")
            .order_by(FileLocationRecord.id)
        )
        with Session(self.engine) as session:
            rows = session.exec(statement).all()
            return [
                DuplicateFileModel(
                    id=location.id,
                    game_id=location.game_id,
                    game_title=title,
                    server_location=location.server_location,
                    file_path=location.file_path,
                    file_size=location.file_size,
                    file_hash=location.file_hash,
                )
                for location, title in rows
            ]

    # ------------------------------------------------------------------
    # Enrichment

    def ids_missing_metadata(self) -> list[int]:
        statement = select(GameRecord.id).where(_missing_metadata_condition()).order_by(GameRecord.id)
        with Session(self.engine) as session:
            return list(session.exec(statement).all())

    def get_enrichment_target(self, game_id: int) -> EnrichmentTarget | None:
        statement = (
            select(GameRecord.id, GameRecord.title, PlatformRecord.name)
            .join(PlatformRecord, PlatformRecord.id == GameRecord.platform_id, isouter=True)
            .where(GameRecord.id == game_id)
        )
        with Session(self.engine) as session:
            row = session.exec(statement).first()
        if row is None:
            return None
        return EnrichmentTarget(id=row[0], title=row[1], platform_name=row[2])

    def apply_metadata(self, game_id: int, updates: dict[str, Any]) -> GameModel:
        """Patch metadata columns on one entry, leaving every other column untouched."""

        unknown = set(updates) - METADATA_FIELDS
        if unknown:
            raise ValueError(f"Unsupported metadata fields: {', '.join(sorted(unknown))}")

        with session_scope(self.engine) as session:
            record = session.get(GameRecord, game_id)
            if record is None:
                raise LookupError(f"Game {game_id} not found")
            for key, value in updates.items():
                setattr(record, key, value)
            record.updated_at = datetime.utcnow()
            session.add(record)
            session.flush()
            session.refresh(record)
            return _to_model(record, _platform_name(session, record.platform_id))

    # ------------------------------------------------------------------
    # Read access

    def list(
        self,
        *,
        query: str | None,
        platform_id: int | None,
        missing_metadata: bool | None,
        sort: GameSortOption,
        page: int,
        page_size: int,
    ) -> GameListModel:
        """Return a paginated set of games matching the provided filters."""

        offset = (page - 1) * page_size
        filters = []
        if query:
            filters.append(func.lower(GameRecord.title).like(f"%{query.lower()}%"))
        if platform_id is not None:
            filters.append(GameRecord.platform_id == platform_id)
        if missing_metadata is True:
            filters.append(_missing_metadata_condition())
        elif missing_metadata is False:
            filters.append(~_missing_metadata_condition())

        count_statement = select(func.count()).select_from(GameRecord)
        items_statement = select(GameRecord, PlatformRecord.name).join(
            PlatformRecord, PlatformRecord.id == GameRecord.platform_id, isouter=True
        )
        for condition in filters:
            count_statement = count_statement.where(condition)
            items_statement = items_statement.where(condition)

        sort_orders: dict[GameSortOption, tuple[object, ...]] = {
            "updated_desc": (GameRecord.updated_at.desc(), GameRecord.id),
            "updated_asc": (GameRecord.updated_at.asc(), GameRecord.id),
            "title_asc": (func.lower(GameRecord.title).asc(), GameRecord.id),
            "title_desc": (func.lower(GameRecord.title).desc(), GameRecord.id),
            "year_desc": (GameRecord.year.desc().nullslast(), func.lower(GameRecord.title).asc()),
            "year_asc": (GameRecord.year.asc().nullslast(), func.lower(GameRecord.title).asc()),
        }
        order_by_clauses = sort_orders.get(sort, sort_orders["updated_desc"])
        items_statement = items_statement.order_by(*order_by_clauses).offset(offset).limit(page_size)

        with Session(self.engine) as session:
            total = session.exec(count_statement).one()
            rows: Sequence[tuple[GameRecord, str | None]] = session.exec(items_statement).all()
            items = [_to_model(record, platform_name) for record, platform_name in rows]

        return GameListModel(items=items, total=total, page=page, page_size=page_size)

    def get(self, game_id: int) -> GameDetailModel | None:
        """Return a game with its file locations if present."""

        with Session(self.engine) as session:
            record = session.get(GameRecord, game_id)
            if record is None:
                return None
            locations = session.exec(
                select(FileLocationRecord)
                .where(FileLocationRecord.game_id == game_id)
                .order_by(FileLocationRecord.id)
            ).all()
            base = _to_model(record, _platform_name(session, record.platform_id))
            return GameDetailModel(
                **base.model_dump(),
                file_locations=[_location_model(location) for location in locations],
            )

    def metrics(self) -> GameMetricsModel:
        """Return aggregate statistics for the catalog."""

        with Session(self.engine) as session:
            total = session.exec(select(func.count()).select_from(GameRecord)).one()

            platform_rows = session.exec(
                select(PlatformRecord.name, func.count(GameRecord.id))
                .join(GameRecord, GameRecord.platform_id == PlatformRecord.id)
                .group_by(PlatformRecord.name)
                .order_by(PlatformRecord.name)
            ).all()
            platform_counts = {name: count for name, count in platform_rows}

            missing = session.exec(
                select(func.count()).select_from(GameRecord).where(_missing_metadata_condition())
            ).one()

            locations = session.exec(select(func.count()).select_from(FileLocationRecord)).one()

        return GameMetricsModel(
            total=total,
            platform_counts=platform_counts,
            enriched=max(total - missing, 0),
            missing_metadata=missing,
            file_locations=locations,
        )


def _platform_name(session: Session, platform_id: int) -> str | None:
    platform = session.get(PlatformRecord, platform_id)
    return platform.name if platform else None


def _location_record(game_id: int, location: LocationDraft) -> FileLocationRecord:
    return FileLocationRecord(
        game_id=game_id,
        server_location=location.server_location,
        file_path=location.file_path,
        file_size=location.file_size,
        file_hash=location.file_hash,
    )


def _location_model(record: FileLocationRecord) -> FileLocationModel:
    return FileLocationModel(
        id=record.id,
        game_id=record.game_id,
        server_location=record.server_location,
        file_path=record.file_path,
        file_size=record.file_size,
        file_hash=record.file_hash,
        created_at=record.created_at,
    )


def _to_model(record: GameRecord, platform_name: str | None = None) -> GameModel:
    """Convert a game record into a response model."""

    return GameModel(
        id=record.id,
        title=record.title,
        platform_id=record.platform_id,
        platform_name=platform_name,
        year=record.year,
        genre=record.genre,
        rating=record.rating,
        description=record.description,
        cover_art_url=record.cover_art_url,
        box_art_url=record.box_art_url,
        external_id=record.external_id,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
