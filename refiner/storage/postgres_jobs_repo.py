"""Postgres-backed repository for refinement jobs using SQLAlchemy."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select, update

from refiner.core.database import get_session_factory
from refiner.jobs.models import ACTIVE_JOB_STATUSES, JobStatus, RefinementJobRecord
from refiner.schema.refinement import RefinementJob
from refiner.storage.jobs_repo import RefinementJobsRepository
from refiner.utils.timestamps import now_iso

logger = logging.getLogger(__name__)


class PostgresRefinementJobsRepository(RefinementJobsRepository):
  """Persist refinement jobs to Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: RefinementJobRecord) -> None:
    async with self._session_factory() as session:
      job = RefinementJob(
        job_id=record.job_id,
        status=record.status,
        is_cancelling=record.is_cancelling,
        domain_filter=record.domain_filter,
        model=record.model,
        priority_mode=record.priority_mode,
        total_words=record.total_words,
        processed=record.processed,
        refined=record.refined,
        errors=record.errors,
        current_offset=record.current_offset,
        n2_refined=record.n2_refined,
        n3_refined=record.n3_refined,
        n4_refined=record.n4_refined,
        sample_refinements=list(record.sample_refinements),
        error_message=record.error_message,
        started_at=record.started_at,
        finished_at=record.finished_at,
        last_chunk_at=record.last_chunk_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
      )
      session.add(job)
      await session.commit()

  async def get_job(self, job_id: str) -> RefinementJobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(RefinementJob, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def update_job(  # pylint: disable=too-many-arguments
    self,
    job_id: str,
    *,
    expected_offset: int | None = None,
    status: JobStatus | None = None,
    is_cancelling: bool | None = None,
    total_words: int | None = None,
    processed: int | None = None,
    refined: int | None = None,
    errors: int | None = None,
    current_offset: int | None = None,
    n2_refined: int | None = None,
    n3_refined: int | None = None,
    n4_refined: int | None = None,
    sample_refinements: list[dict[str, Any]] | None = None,
    error_message: str | None = None,
    started_at: str | None = None,
    finished_at: str | None = None,
    last_chunk_at: str | None = None,
  ) -> RefinementJobRecord | None:
    async with self._session_factory() as session:
      stmt = select(RefinementJob).where(RefinementJob.job_id == job_id)
      if expected_offset is not None:
        # Row lock so two chunk deliveries for the same offset cannot both advance it.
        stmt = stmt.with_for_update()
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None:
        return None
      if expected_offset is not None and row.current_offset != expected_offset:
        logger.info("Offset guard rejected update for job %s: expected=%d stored=%d", job_id, expected_offset, row.current_offset)
        await session.rollback()
        return None
      if status is not None:
        row.status = status
      if is_cancelling is not None:
        row.is_cancelling = is_cancelling
      if total_words is not None:
        row.total_words = total_words
      if processed is not None:
        row.processed = processed
      if refined is not None:
        row.refined = refined
      if errors is not None:
        row.errors = errors
      if current_offset is not None:
        row.current_offset = current_offset
      if n2_refined is not None:
        row.n2_refined = n2_refined
      if n3_refined is not None:
        row.n3_refined = n3_refined
      if n4_refined is not None:
        row.n4_refined = n4_refined
      if sample_refinements is not None:
        row.sample_refinements = list(sample_refinements)
      if error_message is not None:
        row.error_message = error_message or None
      if started_at is not None:
        row.started_at = started_at
      if finished_at is not None:
        row.finished_at = finished_at
      if last_chunk_at is not None:
        row.last_chunk_at = last_chunk_at
      row.updated_at = now_iso()
      session.add(row)
      await session.commit()
      await session.refresh(row)
      return self._model_to_record(row)

  async def cancel_active_jobs(self, *, finished_at: str) -> list[str]:
    async with self._session_factory() as session:
      stmt = (
        update(RefinementJob)
        .where(RefinementJob.status.in_(ACTIVE_JOB_STATUSES))
        .values(status="cancelled", is_cancelling=True, finished_at=finished_at, updated_at=now_iso())
        .returning(RefinementJob.job_id)
      )
      cancelled = [str(job_id) for job_id in (await session.execute(stmt)).scalars().all()]
      await session.commit()
      return cancelled

  async def get_active_job(self) -> RefinementJobRecord | None:
    async with self._session_factory() as session:
      stmt = select(RefinementJob).where(RefinementJob.status.in_(ACTIVE_JOB_STATUSES)).order_by(RefinementJob.created_at.desc()).limit(1)
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None:
        return None
      return self._model_to_record(row)

  async def list_jobs(self, limit: int, offset: int) -> tuple[list[RefinementJobRecord], int]:
    async with self._session_factory() as session:
      stmt = select(RefinementJob).order_by(RefinementJob.created_at.desc(), RefinementJob.job_id.desc()).limit(limit).offset(offset)
      total = await session.scalar(select(func.count()).select_from(RefinementJob))
      rows = (await session.execute(stmt)).scalars().all()
      return [self._model_to_record(row) for row in rows], int(total or 0)

  def _model_to_record(self, row: RefinementJob) -> RefinementJobRecord:
    return RefinementJobRecord(
      job_id=row.job_id,
      status=row.status,  # type: ignore[arg-type]
      model=row.model,  # type: ignore[arg-type]
      priority_mode=row.priority_mode,  # type: ignore[arg-type]
      created_at=row.created_at,
      updated_at=row.updated_at,
      domain_filter=row.domain_filter,
      is_cancelling=bool(row.is_cancelling),
      total_words=int(row.total_words or 0),
      processed=int(row.processed or 0),
      refined=int(row.refined or 0),
      errors=int(row.errors or 0),
      current_offset=int(row.current_offset or 0),
      n2_refined=int(row.n2_refined or 0),
      n3_refined=int(row.n3_refined or 0),
      n4_refined=int(row.n4_refined or 0),
      sample_refinements=list(row.sample_refinements or []),
      error_message=row.error_message,
      started_at=row.started_at,
      finished_at=row.finished_at,
      last_chunk_at=row.last_chunk_at,
    )
