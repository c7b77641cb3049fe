from __future__ import annotations

import logging

import httpx

from refiner.config import Settings
from refiner.services.tasks.interface import PROCESS_CHUNK_PATH, TaskEnqueuer

logger = logging.getLogger(__name__)


class LocalHttpEnqueuer(TaskEnqueuer):
  """Delivers chunk tasks by POSTing to this service's internal endpoint."""

  def __init__(self, settings: Settings, *, timeout: float = 600.0) -> None:
    self.settings = settings
    self.timeout = timeout

  def _task_headers(self) -> dict[str, str]:
    """Build task authentication headers for internal endpoints."""
    if not self.settings.task_secret:
      raise RuntimeError("Task secret not configured.")
    return {"authorization": f"Bearer {self.settings.task_secret}"}

  def task_url(self) -> str:
    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured, strictly required for LocalHttpEnqueuer.")
    return f"{self.settings.base_url.rstrip('/')}{PROCESS_CHUNK_PATH}"

  async def enqueue_chunk(self, job_id: str) -> None:
    """POST the chunk task and wait for the chunk to answer."""
    url = self.task_url()
    try:
      # Never trust environment proxy variables for internal task dispatch.
      async with httpx.AsyncClient(trust_env=False) as client:
        logger.info("Dispatching chunk task locally to %s for job %s", url, job_id)
        response = await client.post(url, json={"job_id": job_id}, headers=self._task_headers(), timeout=self.timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
      logger.error("Local chunk dispatch returned %s for job %s: %s", e.response.status_code, job_id, e.response.text)
      raise
    except httpx.RequestError as e:
      logger.error("Failed to dispatch local chunk task for job %s: %s", job_id, e)
      raise
