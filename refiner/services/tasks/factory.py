from __future__ import annotations

from refiner.config import Settings
from refiner.services.tasks.gcp import CloudTasksEnqueuer
from refiner.services.tasks.interface import TaskEnqueuer
from refiner.services.tasks.local import LocalHttpEnqueuer


def get_task_enqueuer(settings: Settings) -> TaskEnqueuer:
  """Factory to get the configured task enqueuer."""
  if settings.task_service_provider == "gcp":
    return CloudTasksEnqueuer(settings)
  return LocalHttpEnqueuer(settings)
