"""Read access to the seeded platform table."""
from __future__ import annotations

from sqlmodel import Session, select

from ..models import PlatformRecord
from ..schemas import PlatformModel


class PlatformStore:
    """Lookup helpers for gaming platforms."""

    def __init__(self, engine) -> None:
        self._engine = engine

    def list(self) -> list[PlatformModel]:
        statement = select(PlatformRecord).order_by(PlatformRecord.name)
        with Session(self._engine) as session:
            return [_to_model(record) for record in session.exec(statement)]

    def get(self, platform_id: int) -> PlatformModel | None:
        with Session(self._engine) as session:
            record = session.get(PlatformRecord, platform_id)
            return _to_model(record) if record else None


def _to_model(record: PlatformRecord) -> PlatformModel:
    return PlatformModel(
        id=record.id,
        name=record.name,
        manufacturer=record.manufacturer,
        release_year=record.release_year,
    )
