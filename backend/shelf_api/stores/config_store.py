"""Database-backed runtime configuration store."""
from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Any

from sqlmodel import Session, select

from ...ingest.walker import normalize_extensions
from ..db import read_config
from ..models import ConfigRecord
from ..schemas import ConfigModel, ConfigUpdate


class ConfigStore:
    """Thread-safe interface over the persisted configuration."""

    def __init__(self, engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def read(self) -> ConfigModel:
        """Return the current configuration model."""

        with Session(self._engine) as session:
            return read_config(session)

    def update(self, update: ConfigUpdate) -> ConfigModel:
        """Apply updates to the stored configuration."""

        update_payload = _extract_update(update)
        with self._lock, Session(self._engine) as session:
            record = session.exec(select(ConfigRecord).where(ConfigRecord.id == 1)).one_or_none()
            if record is None:
                raise RuntimeError("Configuration record missing from database")
            for key, value in update_payload.items():
                setattr(record, key, value)
            record.updated_at = datetime.utcnow()
            session.add(record)
            session.commit()
            session.refresh(record)
            return read_config(session)


def _extract_update(update: ConfigUpdate) -> dict[str, Any]:
    """Extract a payload suitable for model updates."""

    payload = update.model_dump(exclude_unset=True, exclude_none=True)
    if "supported_extensions" in payload:
        payload["supported_extensions"] = sorted(normalize_extensions(payload["supported_extensions"]))
    return payload
