from __future__ import annotations

import pytest
from fakes import InMemoryJobsRepo, RecordingEnqueuer, make_job

from refiner.pipeline.scheduler import ChunkScheduler


class RecordingSleep:
  def __init__(self) -> None:
    self.delays: list[float] = []

  async def __call__(self, seconds: float) -> None:
    self.delays.append(seconds)


def _scheduler(jobs_repo: InMemoryJobsRepo, enqueuer: RecordingEnqueuer, sleep: RecordingSleep) -> ChunkScheduler:
  return ChunkScheduler(jobs_repo=jobs_repo, enqueuer=enqueuer, max_attempts=3, initial_delay_ms=500, base_delay_ms=2000, sleep=sleep)


def test_delay_sequence() -> None:
  scheduler = ChunkScheduler(jobs_repo=InMemoryJobsRepo(), enqueuer=RecordingEnqueuer())
  assert [scheduler.delay_ms(attempt) for attempt in (1, 2, 3, 4)] == [500, 2000, 4000, 8000]


@pytest.mark.anyio
async def test_first_attempt_success_waits_once() -> None:
  jobs_repo = InMemoryJobsRepo()
  await jobs_repo.create_job(make_job())
  sleep = RecordingSleep()
  enqueuer = RecordingEnqueuer()

  assert await _scheduler(jobs_repo, enqueuer, sleep).schedule_next("job-1")
  assert enqueuer.calls == ["job-1"]
  assert sleep.delays == [0.5]


@pytest.mark.anyio
async def test_recovers_after_transient_failures() -> None:
  jobs_repo = InMemoryJobsRepo()
  await jobs_repo.create_job(make_job())
  sleep = RecordingSleep()
  enqueuer = RecordingEnqueuer(failures=2)

  assert await _scheduler(jobs_repo, enqueuer, sleep).schedule_next("job-1")
  assert len(enqueuer.calls) == 3
  assert sleep.delays == [0.5, 2.0, 4.0]
  assert (await jobs_repo.get_job("job-1")).status == "running"


@pytest.mark.anyio
async def test_exhaustion_pauses_running_job_with_message() -> None:
  jobs_repo = InMemoryJobsRepo()
  await jobs_repo.create_job(make_job(current_offset=100, processed=100))
  enqueuer = RecordingEnqueuer(failures=3)

  delivered = await _scheduler(jobs_repo, enqueuer, RecordingSleep()).schedule_next("job-1")

  assert not delivered
  job = await jobs_repo.get_job("job-1")
  assert job.status == "paused"
  assert job.error_message
  assert "3 attempts" in job.error_message
  assert job.current_offset == 100


@pytest.mark.anyio
@pytest.mark.parametrize("status", ["paused", "cancelled"])
async def test_exhaustion_does_not_override_user_action(status: str) -> None:
  jobs_repo = InMemoryJobsRepo()
  await jobs_repo.create_job(make_job(status=status))

  await _scheduler(jobs_repo, RecordingEnqueuer(failures=3), RecordingSleep()).schedule_next("job-1")

  job = await jobs_repo.get_job("job-1")
  assert job.status == status
  assert job.error_message is None
