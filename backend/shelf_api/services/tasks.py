"""RQ task entrypoints executed by background workers."""
from __future__ import annotations

import logging
from typing import Any, Callable

from rq import get_current_job
from sqlalchemy.engine import Engine

from ...ingest.enrichment import EnrichmentJob, select_game_ids
from ..db import create_engine_from_settings
from ..schemas import JobLogCreate
from ..settings import ShelfSettings
from ..stores.catalog_store import CatalogStore
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import JobStore
from .providers import build_provider

logger = logging.getLogger(__name__)

METADATA_BATCH_JOB = "metadata_batch"


def execute_shelf_job(
    *,
    job_id: str,
    job_type: str,
    payload: dict[str, Any] | None,
    settings: dict[str, Any],
    worker_name: str,
) -> dict[str, Any] | None:
    """Background worker entrypoint for ROM Shelf jobs."""

    resolved_settings = ShelfSettings.model_validate(settings)
    engine = create_engine_from_settings(resolved_settings)
    job_store = JobStore(engine)
    log_store = JobLogStore(engine)

    current_job = get_current_job()  # pragma: no branch - helper for diagnostics
    worker_id = worker_name
    if current_job and getattr(current_job, "worker_name", None):  # pragma: no cover - runtime path
        worker_id = current_job.worker_name  # type: ignore[assignment]

    job_store.mark_running(job_id, worker_id=worker_id)
    log_store.append(job_id, JobLogCreate(level="info", message="Job started", context=None))

    try:
        handler = JOB_HANDLERS.get(job_type)
        if handler is None:
            raise ValueError(f"Unknown job type: {job_type}")
        return handler(job_id, payload or {}, resolved_settings, engine, job_store, log_store)
    except Exception as exc:
        logger.exception("Job %s (%s) failed", job_id, job_type)
        job_store.mark_failed(job_id, error_message=str(exc))
        log_store.append(
            job_id,
            JobLogCreate(
                level="error",
                message="Job failed",
                context={"error": str(exc)},
            ),
        )
        raise
    finally:
        engine.dispose()


def _run_metadata_batch(
    job_id: str,
    payload: dict[str, Any],
    settings: ShelfSettings,
    engine: Engine,
    job_store: JobStore,
    log_store: JobLogStore,
) -> dict[str, Any]:
    """Enrich the selected catalog entries in throttled batches."""

    catalog = CatalogStore(engine)
    provider = build_provider(settings)

    game_ids = select_game_ids(catalog, [int(game_id) for game_id in payload.get("game_ids") or []])
    batch_size = int(payload.get("batch_size") or settings.default_batch_size)
    delay_seconds = payload.get("delay_seconds")
    if delay_seconds is None:
        delay_seconds = settings.default_delay_seconds

    log_store.append(
        job_id,
        JobLogCreate(
            level="info",
            message=f"Starting metadata batch for {len(game_ids)} games",
            context={
                "provider": provider.name,
                "batch_size": batch_size,
                "delay_seconds": delay_seconds,
            },
        ),
    )

    def report_progress(processed: int, total: int) -> None:
        job_store.update_progress(job_id, processed / total if total else 1.0)

    enrichment = EnrichmentJob(
        catalog,
        provider,
        batch_size=batch_size,
        delay_seconds=delay_seconds,
        on_progress=report_progress,
    )
    summary = enrichment.run(game_ids)
    result = summary.to_dict()
    progress = summary.processed / summary.total if summary.total else 1.0

    if summary.errors:
        log_store.extend(
            job_id,
            [JobLogCreate(level="warning", message=error, context=None) for error in summary.errors],
        )

    if summary.aborted:
        log_store.append(
            job_id,
            JobLogCreate(
                level="error",
                message="Metadata batch aborted",
                context={"processed": summary.processed, "total": summary.total},
            ),
        )
        job_store.mark_failed(
            job_id,
            error_message=summary.errors[-1] if summary.errors else "aborted",
            progress=progress,
            result=result,
        )
        return result

    log_store.append(
        job_id,
        JobLogCreate(
            level="info",
            message="Batch metadata update completed",
            context={
                "processed": summary.processed,
                "updated": summary.updated,
                "errors": len(summary.errors),
            },
        ),
    )
    job_store.mark_completed(job_id, progress=1.0, result=result)
    return result


JobHandler = Callable[
    [str, dict[str, Any], ShelfSettings, Engine, JobStore, JobLogStore], dict[str, Any]
]

JOB_HANDLERS: dict[str, JobHandler] = {
    METADATA_BATCH_JOB: _run_metadata_batch,
}
