import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from refiner.api.deps import get_controller
from refiner.api.models import ActiveRefinementJobResponse, CreateRefinementJobRequest, JobStatusResponse, RefinementJobListResponse, RefinementJobModel, RefinementJobResponse
from refiner.services.refinement_jobs import RefinementJobController

router = APIRouter()
logger = logging.getLogger("refiner.api.routes.refinement")

Controller = Annotated[RefinementJobController, Depends(get_controller)]


@router.post("", response_model=RefinementJobResponse)
async def create_refinement_job(request: CreateRefinementJobRequest, background_tasks: BackgroundTasks, controller: Controller) -> RefinementJobResponse:
  """Start a refinement run, cancelling any job that is still active."""
  record = await controller.create(domain_filter=request.domain_filter, model=request.model, priority_mode=request.priority_mode, background_tasks=background_tasks)
  return RefinementJobResponse(job=RefinementJobModel.from_record(record))


@router.get("", response_model=RefinementJobListResponse)
async def list_refinement_jobs(controller: Controller, limit: int = Query(default=20, ge=1, le=100), offset: int = Query(default=0, ge=0)) -> RefinementJobListResponse:  # noqa: B008
  records, total = await controller.list_jobs(limit=limit, offset=offset)
  return RefinementJobListResponse(items=[RefinementJobModel.from_record(record) for record in records], total=total, limit=limit, offset=offset)


@router.get("/active", response_model=ActiveRefinementJobResponse)
async def get_active_refinement_job(controller: Controller) -> ActiveRefinementJobResponse:
  """Return the job currently pending, running or paused, if any."""
  record = await controller.get_active()
  return ActiveRefinementJobResponse(job=RefinementJobModel.from_record(record) if record else None)


@router.get("/{job_id}", response_model=RefinementJobResponse)
async def get_refinement_job(job_id: str, controller: Controller) -> RefinementJobResponse:
  record = await controller.get(job_id)
  return RefinementJobResponse(job=RefinementJobModel.from_record(record))


@router.post("/{job_id}/pause", response_model=JobStatusResponse)
async def pause_refinement_job(job_id: str, controller: Controller) -> JobStatusResponse:
  """Pause a job; a chunk already in flight still saves its results."""
  record = await controller.pause(job_id)
  return JobStatusResponse(job_id=record.job_id, status=record.status)


@router.post("/{job_id}/resume", response_model=JobStatusResponse)
async def resume_refinement_job(job_id: str, background_tasks: BackgroundTasks, controller: Controller) -> JobStatusResponse:
  record = await controller.resume(job_id, background_tasks)
  return JobStatusResponse(job_id=record.job_id, status=record.status)


@router.post("/{job_id}/cancel", response_model=JobStatusResponse)
async def cancel_refinement_job(job_id: str, controller: Controller) -> JobStatusResponse:
  """Cancel a job; the next chunk observes the flag and does no work."""
  record = await controller.cancel(job_id)
  return JobStatusResponse(job_id=record.job_id, status=record.status)
