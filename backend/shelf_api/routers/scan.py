"""Directory scanning, duplicate detection and metadata backfill endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, Response

from ...ingest.duplicates import find_duplicates
from ...ingest.enrichment import select_game_ids
from ...ingest.matcher import CatalogMatcher
from ...ingest.scanner import ScanOrchestrator
from ...ingest.walker import ScanRootError
from ..dependencies import (
    get_catalog_store,
    get_config_store,
    get_job_log_store,
    get_job_queue,
    get_job_store,
    get_platform_store,
)
from ..schemas import (
    DuplicateGroupModel,
    DuplicateReportModel,
    MetadataBatchAccepted,
    MetadataBatchRequest,
    ScanRequest,
    ScanResponse,
)
from ..services.queue import JobQueueError, JobQueueService
from ..services.tasks import METADATA_BATCH_JOB
from ..stores.catalog_store import CatalogStore
from ..stores.config_store import ConfigStore
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import JobStore
from ..stores.platform_store import PlatformStore

router = APIRouter(prefix="/scan", tags=["scan"])


@router.post("/directory", response_model=ScanResponse)
def scan_directory(
    request: ScanRequest,
    catalog: CatalogStore = Depends(get_catalog_store),
    platforms: PlatformStore = Depends(get_platform_store),
    config_store: ConfigStore = Depends(get_config_store),
) -> ScanResponse:
    """Walk a directory and link every supported file to the catalog."""

    if platforms.get(request.platform_id) is None:
        raise HTTPException(status_code=404, detail="Platform not found")

    config = config_store.read()
    orchestrator = ScanOrchestrator(
        CatalogMatcher(catalog, dedupe_rescans=config.dedupe_rescans),
        extensions=config.supported_extensions,
    )

    try:
        result = orchestrator.scan(
            request.directory_path,
            server_location=request.server_location,
            platform_id=request.platform_id,
            recursive=request.recursive,
        )
    except ScanRootError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return ScanResponse(
        files_found=result.files_found,
        games_added=result.games_added,
        errors=result.errors,
        locations_added=result.locations_added,
        locations_skipped=result.locations_skipped,
    )


@router.get("/duplicates", response_model=DuplicateReportModel)
def list_duplicates(catalog: CatalogStore = Depends(get_catalog_store)) -> DuplicateReportModel:
    """Return file locations grouped by shared content hash."""

    groups = find_duplicates(catalog.locations_with_hash())
    return DuplicateReportModel(
        duplicates=[DuplicateGroupModel(hash=group.hash, files=group.files) for group in groups],
        count=len(groups),
    )


@router.post("/metadata-batch", response_model=MetadataBatchAccepted, status_code=202)
def start_metadata_batch(
    response: Response,
    request: MetadataBatchRequest | None = Body(default=None),
    catalog: CatalogStore = Depends(get_catalog_store),
    config_store: ConfigStore = Depends(get_config_store),
    job_store: JobStore = Depends(get_job_store),
    log_store: JobLogStore = Depends(get_job_log_store),
    queue: JobQueueService = Depends(get_job_queue),
) -> MetadataBatchAccepted:
    """Queue a throttled metadata backfill and return immediately."""

    request = request or MetadataBatchRequest()
    config = config_store.read()
    batch_size = request.batch_size or config.default_batch_size
    delay = config.default_delay_seconds if request.delay_seconds is None else request.delay_seconds

    game_ids = select_game_ids(catalog, request.game_ids)
    if not game_ids:
        response.status_code = 200
        return MetadataBatchAccepted(
            message="No games need metadata updates",
            total_games=0,
            batch_size=batch_size,
            delay=delay,
        )

    payload = {"game_ids": game_ids, "batch_size": batch_size, "delay_seconds": delay}
    try:
        job = queue.enqueue(job_store, log_store, METADATA_BATCH_JOB, payload)
    except JobQueueError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return MetadataBatchAccepted(
        message="Batch metadata update started",
        job_id=job.id,
        total_games=len(game_ids),
        batch_size=batch_size,
        delay=delay,
    )
