"""Health endpoints."""
from fastapi import APIRouter, Depends

from ..dependencies import get_job_queue, get_settings
from ..schemas import HealthStatus, QueueHealthStatus
from ..services.queue import JobQueueService
from ..settings import ShelfSettings

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
def get_health(
    queue: JobQueueService = Depends(get_job_queue),
    settings: ShelfSettings = Depends(get_settings),
) -> HealthStatus:
    """Return service heartbeat information."""

    queue_status = QueueHealthStatus(status="ok")
    if not queue.ping():
        queue_status = QueueHealthStatus(status="error", detail="queue_unreachable")
    return HealthStatus(metadata_provider=settings.metadata_provider, queue=queue_status)
