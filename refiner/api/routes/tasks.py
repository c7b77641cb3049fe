from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, status

from refiner.api.deps import require_task_secret
from refiner.api.models import ChunkResponse, ProcessChunkPayload
from refiner.services.runtime import RefinementRuntime, get_runtime

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


@router.post("/process-chunk", status_code=status.HTTP_200_OK, response_model=ChunkResponse)
async def process_chunk_task(payload: ProcessChunkPayload, background_tasks: BackgroundTasks, runtime: Annotated[RefinementRuntime, Depends(get_runtime)]) -> ChunkResponse:
  """
  Handler for Cloud Tasks (and local dispatch).
  Runs one chunk inside the request and schedules its successor after the response is sent.
  """
  logger.info("Received chunk task for job %s", payload.job_id)
  result = await runtime.processor.process(payload.job_id)
  if not result.completed and not result.skipped:
    runtime.controller.trigger_chunk(background_tasks, payload.job_id)
  return ChunkResponse.from_result(result)
