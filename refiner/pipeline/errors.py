"""Errors raised while running a refinement chunk."""

from __future__ import annotations


class JobNotFoundError(LookupError):
  """Raised when a chunk is requested for an unknown job."""


class ChunkAbortedError(RuntimeError):
  """Raised when a chunk cannot proceed and must be retried by the scheduler."""

  def __init__(self, job_id: str, reason: str) -> None:
    super().__init__(f"Chunk aborted for job {job_id}: {reason}")
    self.job_id = job_id
    self.reason = reason
