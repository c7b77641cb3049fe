from __future__ import annotations

from typing import Protocol

PROCESS_CHUNK_PATH = "/internal/tasks/process-chunk"
TASK_SECRET_HEADER = "x-refiner-task-secret"


class TaskEnqueuer(Protocol):
  """Interface for delivering chunk tasks."""

  async def enqueue_chunk(self, job_id: str) -> None:
    """Deliver one process-chunk task for ``job_id``; raise when delivery fails."""
    ...
