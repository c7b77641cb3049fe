from __future__ import annotations

import json
import logging

from google.cloud import tasks_v2

from refiner.config import Settings
from refiner.services.tasks.interface import PROCESS_CHUNK_PATH, TASK_SECRET_HEADER, TaskEnqueuer

logger = logging.getLogger(__name__)


class CloudTasksEnqueuer(TaskEnqueuer):
  """Enqueues chunk tasks to Google Cloud Tasks."""

  def __init__(self, settings: Settings, client: tasks_v2.CloudTasksAsyncClient | None = None) -> None:
    self.settings = settings
    self.client = client or tasks_v2.CloudTasksAsyncClient()

  def _build_task(self, job_id: str) -> dict:
    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured.")
    if not self.settings.task_secret:
      raise RuntimeError("Task secret not configured.")
    url = f"{self.settings.base_url.rstrip('/')}{PROCESS_CHUNK_PATH}"
    # Cloud Run invoker auth may occupy Authorization, so the shared secret travels in its own header.
    return {
      "http_request": {
        "http_method": tasks_v2.HttpMethod.POST,
        "url": url,
        "headers": {"Content-Type": "application/json", TASK_SECRET_HEADER: self.settings.task_secret},
        "body": json.dumps({"job_id": job_id}).encode(),
      }
    }

  async def enqueue_chunk(self, job_id: str) -> None:
    """Create a Cloud Tasks task; the queue owns delivery retries from here on."""
    if not self.settings.cloud_tasks_queue_path:
      raise RuntimeError("Cloud Tasks queue path not configured.")
    task = self._build_task(job_id)
    try:
      response = await self.client.create_task(request={"parent": self.settings.cloud_tasks_queue_path, "task": task})
    except Exception:
      logger.error("Failed to enqueue chunk task for job %s", job_id, exc_info=True)
      raise
    logger.info("Enqueued task %s for job %s", response.name, job_id)
