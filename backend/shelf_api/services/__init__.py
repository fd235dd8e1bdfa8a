"""Service layer helpers for the job queue and metadata providers."""

from .providers import build_provider
from .queue import JobQueueError, JobQueueService
from .tasks import METADATA_BATCH_JOB, execute_shelf_job

__all__ = [
    "JobQueueError",
    "JobQueueService",
    "METADATA_BATCH_JOB",
    "build_provider",
    "execute_shelf_job",
]
