"""Lifecycle operations for refinement jobs."""

import logging

from fastapi import BackgroundTasks, HTTPException, status

from refiner.jobs.models import JobStatus, PriorityMode, RefinementJobRecord, RefinementModel
from refiner.pipeline.scheduler import ChunkScheduler
from refiner.storage.entries_repo import CorpusEntriesRepository
from refiner.storage.jobs_repo import RefinementJobsRepository
from refiner.utils.ids import generate_job_id
from refiner.utils.timestamps import now_iso

logger = logging.getLogger(__name__)

_JOB_NOT_FOUND_MSG = "Job not found."

PAUSABLE_STATUSES: frozenset[JobStatus] = frozenset({"pending", "running"})
RESUMABLE_STATUSES: frozenset[JobStatus] = frozenset({"paused"})
CANCELLABLE_STATUSES: frozenset[JobStatus] = frozenset({"pending", "running", "paused"})


class RefinementJobController:
  """Create, pause, resume and cancel jobs; the only place user actions change ``status``."""

  def __init__(self, *, jobs_repo: RefinementJobsRepository, entries_repo: CorpusEntriesRepository, scheduler: ChunkScheduler, auto_process: bool = True) -> None:
    self._jobs_repo = jobs_repo
    self._entries_repo = entries_repo
    self._scheduler = scheduler
    self._auto_process = auto_process

  def trigger_chunk(self, background_tasks: BackgroundTasks, job_id: str) -> None:
    """Schedule chunk delivery after the response is sent."""
    if not self._auto_process:
      logger.info("Auto-processing disabled; job %s waits for a manual chunk trigger", job_id)
      return
    background_tasks.add_task(self._scheduler.schedule_next, job_id)

  async def _require_job(self, job_id: str) -> RefinementJobRecord:
    record = await self._jobs_repo.get_job(job_id)
    if record is None:
      raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
    return record

  async def create(self, *, domain_filter: str | None, model: RefinementModel, priority_mode: PriorityMode, background_tasks: BackgroundTasks) -> RefinementJobRecord:
    total_words = await self._entries_repo.count_unrefined(domain_filter)
    timestamp = now_iso()

    cancelled = await self._jobs_repo.cancel_active_jobs(finished_at=timestamp)
    if cancelled:
      logger.info("Cancelled %d active refinement job(s) before creating a new one: %s", len(cancelled), ", ".join(cancelled))

    record = RefinementJobRecord(
      job_id=generate_job_id(),
      status="running",
      model=model,
      priority_mode=priority_mode,
      domain_filter=domain_filter,
      total_words=total_words,
      current_offset=0,
      started_at=timestamp,
      last_chunk_at=timestamp,
      created_at=timestamp,
      updated_at=timestamp,
    )
    await self._jobs_repo.create_job(record)
    logger.info("Created refinement job %s: domain=%s model=%s priority=%s total=%d", record.job_id, domain_filter or "all", model, priority_mode, total_words)

    self.trigger_chunk(background_tasks, record.job_id)
    return record

  async def pause(self, job_id: str) -> RefinementJobRecord:
    record = await self._require_job(job_id)
    if record.status not in PAUSABLE_STATUSES:
      raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Job is {record.status} and cannot be paused.")
    updated = await self._jobs_repo.update_job(job_id, status="paused")
    if updated is None:
      raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
    logger.info("Paused refinement job %s at offset %d", job_id, updated.current_offset)
    return updated

  async def resume(self, job_id: str, background_tasks: BackgroundTasks) -> RefinementJobRecord:
    record = await self._require_job(job_id)
    if record.status not in RESUMABLE_STATUSES:
      raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Job is {record.status} and cannot be resumed.")
    # Clear a scheduler exhaustion message so the dashboard stops showing it.
    updated = await self._jobs_repo.update_job(job_id, status="running", last_chunk_at=now_iso(), error_message="")
    if updated is None:
      raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
    logger.info("Resumed refinement job %s from offset %d", job_id, updated.current_offset)
    self.trigger_chunk(background_tasks, job_id)
    return updated

  async def cancel(self, job_id: str) -> RefinementJobRecord:
    record = await self._require_job(job_id)
    if record.status not in CANCELLABLE_STATUSES:
      raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Job is {record.status} and cannot be cancelled.")
    updated = await self._jobs_repo.update_job(job_id, status="cancelled", is_cancelling=True, finished_at=now_iso())
    if updated is None:
      raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
    logger.info("Cancelled refinement job %s", job_id)
    return updated

  async def get(self, job_id: str) -> RefinementJobRecord:
    return await self._require_job(job_id)

  async def get_active(self) -> RefinementJobRecord | None:
    return await self._jobs_repo.get_active_job()

  async def list_jobs(self, *, limit: int, offset: int) -> tuple[list[RefinementJobRecord], int]:
    return await self._jobs_repo.list_jobs(limit, offset)
