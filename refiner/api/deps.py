"""Shared FastAPI dependencies for the refinement routes."""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from refiner.config import Settings, get_settings
from refiner.services.refinement_jobs import RefinementJobController
from refiner.services.runtime import RefinementRuntime, get_runtime

logger = logging.getLogger(__name__)


def get_controller(runtime: Annotated[RefinementRuntime, Depends(get_runtime)]) -> RefinementJobController:
  return runtime.controller


def require_task_secret(
  settings: Annotated[Settings, Depends(get_settings)], authorization: str | None = Header(default=None), x_refiner_task_secret: str | None = Header(default=None)
) -> None:
  """Reject internal task calls that do not carry the shared task secret."""
  # Secure-by-default: internal task endpoints must be authenticated to avoid arbitrary chunk execution.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  expected_auth = f"Bearer {settings.task_secret}"
  # Cloud Tasks OIDC uses Authorization for Cloud Run invoker auth, so the dedicated header is checked first.
  shared_secret_valid = secrets.compare_digest((x_refiner_task_secret or ""), settings.task_secret)
  bearer_valid = secrets.compare_digest((authorization or ""), expected_auth)
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized access attempt to an internal task endpoint")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")
