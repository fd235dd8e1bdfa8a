"""Entry point for running the ROM Shelf RQ worker."""
from __future__ import annotations

import logging
import os

from rq import SimpleWorker, Worker

from backend.shelf_api.services.queue import JobQueueService
from backend.shelf_api.settings import ShelfSettings


def main() -> None:
    """Start an RQ worker connected to the configured ROM Shelf queue."""

    settings = ShelfSettings()
    logging.basicConfig(level=settings.log_level.upper())
    queue_service = JobQueueService(settings)

    # Windows has no fork; run jobs in the worker process there.
    worker_class = SimpleWorker if os.name == "nt" else Worker
    worker = worker_class(
        [queue_service.queue],
        connection=queue_service.connection,
        name=settings.queue_worker_name,
    )
    worker.work(with_scheduler=False)


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    main()
