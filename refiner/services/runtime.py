"""Composition of the refinement pipeline for one process."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import lru_cache, partial

from refiner.ai.classifier import ClassificationCaller
from refiner.ai.providers import Provider, get_provider
from refiner.config import Settings, get_settings
from refiner.pipeline.fetcher import ChunkFetcher
from refiner.pipeline.processor import ChunkProcessor
from refiner.pipeline.scheduler import ChunkScheduler
from refiner.services.refinement_jobs import RefinementJobController
from refiner.services.tasks.factory import get_task_enqueuer
from refiner.services.tasks.interface import TaskEnqueuer
from refiner.storage.entries_repo import CorpusEntriesRepository
from refiner.storage.factory import _get_entries_repo, _get_jobs_repo, _get_taxonomy_repo
from refiner.storage.jobs_repo import RefinementJobsRepository
from refiner.storage.taxonomy_repo import TaxonomyRepository
from refiner.taxonomy.cache import TaxonomyCache


@dataclass
class RefinementRuntime:
  """Long-lived pipeline components; the taxonomy cache lives as long as this object."""

  settings: Settings
  jobs_repo: RefinementJobsRepository
  entries_repo: CorpusEntriesRepository
  taxonomy: TaxonomyCache
  processor: ChunkProcessor
  scheduler: ChunkScheduler
  controller: RefinementJobController


def build_runtime(
  settings: Settings,
  *,
  jobs_repo: RefinementJobsRepository | None = None,
  entries_repo: CorpusEntriesRepository | None = None,
  taxonomy_repo: TaxonomyRepository | None = None,
  provider_factory: Callable[[], Provider] | None = None,
  enqueuer: TaskEnqueuer | None = None,
  sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> RefinementRuntime:
  """Wire the pipeline from settings; any collaborator can be supplied instead."""
  jobs_repo = jobs_repo or _get_jobs_repo(settings)
  entries_repo = entries_repo or _get_entries_repo(settings)
  taxonomy = TaxonomyCache(taxonomy_repo or _get_taxonomy_repo(settings), ttl_seconds=settings.taxonomy_cache_ttl_seconds)
  caller = ClassificationCaller(
    provider_factory or partial(get_provider, settings),
    taxonomy,
    batch_size=settings.batch_size,
    batch_delay_ms=settings.batch_delay_ms,
    timeout_seconds=settings.oracle_timeout_seconds,
    sleep=sleep,
  )
  fetcher = ChunkFetcher(entries_repo, chunk_size=settings.chunk_size, context_window=settings.context_window)
  processor = ChunkProcessor(jobs_repo=jobs_repo, entries_repo=entries_repo, fetcher=fetcher, caller=caller, taxonomy=taxonomy, max_samples=settings.max_samples)
  scheduler = ChunkScheduler(
    jobs_repo=jobs_repo,
    enqueuer=enqueuer or get_task_enqueuer(settings),
    max_attempts=settings.schedule_max_attempts,
    initial_delay_ms=settings.schedule_initial_delay_ms,
    base_delay_ms=settings.schedule_base_delay_ms,
    sleep=sleep,
  )
  controller = RefinementJobController(jobs_repo=jobs_repo, entries_repo=entries_repo, scheduler=scheduler, auto_process=settings.jobs_auto_process)
  return RefinementRuntime(settings=settings, jobs_repo=jobs_repo, entries_repo=entries_repo, taxonomy=taxonomy, processor=processor, scheduler=scheduler, controller=controller)


@lru_cache(maxsize=1)
def get_runtime() -> RefinementRuntime:
  """Build the process-wide runtime once."""
  return build_runtime(get_settings())
