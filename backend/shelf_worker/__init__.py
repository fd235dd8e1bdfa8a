"""RQ worker process for ROM Shelf background jobs."""
