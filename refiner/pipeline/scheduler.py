"""Hands each finished chunk's successor to the task queue, with bounded retries."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from refiner.services.tasks.interface import TaskEnqueuer
from refiner.storage.jobs_repo import RefinementJobsRepository

logger = logging.getLogger(__name__)


class ChunkScheduler:
  """Deliver the next chunk task; pause the job when every attempt fails.

  Attempt 1 waits ``initial_delay_ms``; retry *k* waits ``base_delay_ms * 2**(k-1)``.
  Pausing on exhaustion is the only status change made here.
  """

  def __init__(
    self,
    *,
    jobs_repo: RefinementJobsRepository,
    enqueuer: TaskEnqueuer,
    max_attempts: int = 3,
    initial_delay_ms: int = 500,
    base_delay_ms: int = 2000,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
  ) -> None:
    self._jobs_repo = jobs_repo
    self._enqueuer = enqueuer
    self.max_attempts = max_attempts
    self.initial_delay_ms = initial_delay_ms
    self.base_delay_ms = base_delay_ms
    self._sleep = sleep

  def delay_ms(self, attempt: int) -> int:
    if attempt <= 1:
      return self.initial_delay_ms
    return self.base_delay_ms * 2 ** (attempt - 2)

  async def schedule_next(self, job_id: str) -> bool:
    """Return True once a chunk task was delivered."""
    last_error: Exception | None = None
    for attempt in range(1, self.max_attempts + 1):
      await self._sleep(self.delay_ms(attempt) / 1000.0)
      try:
        await self._enqueuer.enqueue_chunk(job_id)
      except Exception as exc:  # noqa: BLE001
        last_error = exc
        logger.warning("Chunk scheduling attempt %d/%d failed for job %s: %s", attempt, self.max_attempts, job_id, exc)
        continue
      if attempt > 1:
        logger.info("Chunk scheduled for job %s after %d attempts", job_id, attempt)
      return True

    message = f"Auto-scheduling failed after {self.max_attempts} attempts: {last_error}"
    logger.error("Pausing job %s: %s", job_id, message)
    await self._pause_with_error(job_id, message)
    return False

  async def _pause_with_error(self, job_id: str, message: str) -> None:
    job = await self._jobs_repo.get_job(job_id)
    if job is None:
      logger.warning("Job %s disappeared before it could be paused", job_id)
      return
    # A user pause or cancel in the meantime wins over the automatic pause.
    if job.status != "running":
      logger.info("Job %s is %s; not overriding with an automatic pause", job_id, job.status)
      return
    await self._jobs_repo.update_job(job_id, status="paused", error_message=message)
