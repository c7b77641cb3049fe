"""Storage interfaces for refinement jobs."""

from __future__ import annotations

from typing import Any, Protocol

from refiner.jobs.models import JobStatus, RefinementJobRecord


class RefinementJobsRepository(Protocol):
  """Repository contract for job persistence."""

  async def create_job(self, record: RefinementJobRecord) -> None:
    """Persist an initial job record."""

  async def get_job(self, job_id: str) -> RefinementJobRecord | None:
    """Fetch a job by identifier."""

  async def update_job(
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
    """Apply partial updates to a job.

    When ``expected_offset`` is given the update only applies if the stored
    ``current_offset`` still equals it; otherwise ``None`` is returned.
    An empty ``error_message`` clears the stored message.
    """

  async def cancel_active_jobs(self, *, finished_at: str) -> list[str]:
    """Cancel every pending/running/paused job and return their ids."""

  async def get_active_job(self) -> RefinementJobRecord | None:
    """Return the most recent job that is pending, running or paused."""

  async def list_jobs(self, limit: int, offset: int) -> tuple[list[RefinementJobRecord], int]:
    """Return a page of jobs, newest first, and the total count."""
