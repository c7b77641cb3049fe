"""One chunk of a refinement job: fetch, classify, validate, persist, account."""

from __future__ import annotations

import logging

from refiner.ai.classifier import ClassificationCaller, ParsedClassifications, ProposedClassification
from refiner.jobs.models import DEFAULT_CONFIDENCE, SAMPLE_CONTEXT_CHARS, ChunkResult, EntryRefinement, EntryToClassify, RefinementJobRecord, RefinementSample, merge_samples
from refiner.pipeline.errors import ChunkAbortedError, JobNotFoundError
from refiner.pipeline.fetcher import ChunkFetcher
from refiner.storage.entries_repo import CorpusEntriesRepository
from refiner.storage.jobs_repo import RefinementJobsRepository
from refiner.taxonomy.cache import TaxonomyCache
from refiner.taxonomy.codes import code_depth, split_levels
from refiner.utils.timestamps import now_iso

logger = logging.getLogger(__name__)

SAMPLES_PER_BATCH = 3
SAMPLES_PER_CHUNK = 5


def _is_refinement(old_code: str, new_code: str) -> bool:
  """A refinement is a valid code of depth >= 2 deeper than the entry's current code."""
  depth = code_depth(new_code)
  return depth >= 2 and depth > code_depth(old_code)


def _count_depth(result: ChunkResult, depth: int) -> None:
  result.refined_count += 1
  result.n2_count += 1
  if depth >= 3:
    result.n3_count += 1
  if depth >= 4:
    result.n4_count += 1


class ChunkProcessor:
  """Run one chunk for a job and fold its counts into the job row."""

  def __init__(
    self,
    *,
    jobs_repo: RefinementJobsRepository,
    entries_repo: CorpusEntriesRepository,
    fetcher: ChunkFetcher,
    caller: ClassificationCaller,
    taxonomy: TaxonomyCache,
    max_samples: int = 10,
  ) -> None:
    self._jobs_repo = jobs_repo
    self._entries_repo = entries_repo
    self._fetcher = fetcher
    self._caller = caller
    self._taxonomy = taxonomy
    self._max_samples = max_samples

  async def process(self, job_id: str) -> ChunkResult:
    job = await self._jobs_repo.get_job(job_id)
    if job is None:
      raise JobNotFoundError(job_id)
    # Re-read on every invocation: a pause or cancel may have landed after this chunk was scheduled.
    if not job.is_processable:
      logger.info("Skipping chunk for job %s (status=%s, is_cancelling=%s)", job_id, job.status, job.is_cancelling)
      return ChunkResult(skipped=True)

    try:
      page = await self._fetcher.next_page(job)
    except Exception as exc:
      logger.error("Page fetch failed for job %s at offset %d: %s", job_id, job.current_offset, exc)
      await self._jobs_repo.update_job(job_id, errors=job.errors + 1, error_message=f"Page fetch failed at offset {job.current_offset}: {exc}")
      raise ChunkAbortedError(job_id, "page fetch failed") from exc

    logger.info("Processing chunk for job %s: offset=%d size=%d", job_id, job.current_offset, len(page))
    result = ChunkResult(processed_count=len(page))

    # Entries persisted by an aborted attempt at this offset were never counted; count them from their stored code.
    to_classify: list[EntryToClassify] = []
    for entry in page:
      if entry.refined_by_job_id == job_id:
        _count_depth(result, code_depth(entry.current_code))
      else:
        to_classify.append(entry)
    if len(to_classify) < len(page):
      logger.info("Counted %d entries already refined by job %s at offset %d", len(page) - len(to_classify), job_id, job.current_offset)

    await self._fetcher.attach_context(to_classify)
    for index, batch in enumerate(self._caller.batches(to_classify)):
      if index:
        await self._caller.pause_between_batches()
      result.absorb(await self._process_batch(job, batch))
    result.samples = result.samples[:SAMPLES_PER_CHUNK]

    return await self._record_progress(job, page, result)

  async def _process_batch(self, job: RefinementJobRecord, batch: list[EntryToClassify]) -> ChunkResult:
    outcome = await self._caller.classify(batch, job.model)
    if not isinstance(outcome, ParsedClassifications):
      return ChunkResult(error_count=len(batch))

    pending: dict[str, list[EntryToClassify]] = {}
    for entry in batch:
      pending.setdefault(entry.surface_form.lower(), []).append(entry)

    result = ChunkResult()
    for item in outcome.items:
      candidates = pending.get(item.surface_form.lower())
      if not candidates:
        logger.debug("Oracle returned unknown surface form %r for job %s", item.surface_form, job.job_id)
        continue
      entry = candidates.pop(0)
      await self._apply(job, entry, item, result)
    return result

  async def _apply(self, job: RefinementJobRecord, entry: EntryToClassify, item: ProposedClassification, result: ChunkResult) -> None:
    resolved = await self._taxonomy.resolve_code(item.proposed_code)
    if resolved is None or not _is_refinement(entry.current_code, resolved):
      return

    confidence = item.confidence if item.confidence is not None else DEFAULT_CONFIDENCE
    n1, n2, n3, n4 = split_levels(resolved)
    refinement = EntryRefinement(code=resolved, n1=n1, n2=n2, n3=n3, n4=n4, confidence=confidence, source=f"{job.model}_refinement", job_id=job.job_id)
    try:
      await self._entries_repo.apply_refinement(entry.entry_id, refinement)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Failed to persist refinement for entry %s (%s -> %s): %s", entry.entry_id, entry.current_code, resolved, exc)
      result.error_count += 1
      return

    depth = code_depth(resolved)
    _count_depth(result, depth)
    if len(result.samples) < SAMPLES_PER_BATCH:
      excerpt = entry.context[:SAMPLE_CONTEXT_CHARS] if entry.context else None
      result.samples.append(RefinementSample(surface_form=entry.surface_form, old_code=entry.current_code, new_code=resolved, depth=depth, confidence=confidence, context_excerpt=excerpt))

  async def _record_progress(self, job: RefinementJobRecord, page: list[EntryToClassify], result: ChunkResult) -> ChunkResult:
    latest = await self._jobs_repo.get_job(job.job_id) or job
    processed = min(latest.processed + result.processed_count, latest.total_words)
    result.completed = self._fetcher.is_last_page(page) or processed >= latest.total_words
    now = now_iso()

    finish_fields: dict = {}
    # A cancel that landed mid-chunk keeps its status; the counters are still saved.
    if result.completed and latest.status != "cancelled" and not latest.is_cancelling:
      finish_fields = {"status": "completed", "finished_at": now}

    # Entries added after the job was counted can overshoot total_words; keep the counters nested.
    refined = min(latest.refined + result.refined_count, processed)
    n2_refined = min(latest.n2_refined + result.n2_count, refined)
    n3_refined = min(latest.n3_refined + result.n3_count, n2_refined)
    n4_refined = min(latest.n4_refined + result.n4_count, n3_refined)

    updated = await self._jobs_repo.update_job(
      job.job_id,
      expected_offset=job.current_offset,
      processed=processed,
      refined=refined,
      errors=latest.errors + result.error_count,
      n2_refined=n2_refined,
      n3_refined=n3_refined,
      n4_refined=n4_refined,
      sample_refinements=merge_samples(latest.sample_refinements, result.samples, self._max_samples),
      current_offset=job.current_offset + len(page),
      last_chunk_at=now,
      error_message="",
      **finish_fields,
    )
    if updated is None:
      logger.warning("Discarding stale chunk for job %s at offset %d; another worker already advanced it", job.job_id, job.current_offset)
      result.skipped = True
      result.completed = False
      return result

    logger.info(
      "Chunk done for job %s: processed=%d refined=%d errors=%d (N2=%d N3=%d N4=%d) completed=%s",
      job.job_id,
      result.processed_count,
      result.refined_count,
      result.error_count,
      result.n2_count,
      result.n3_count,
      result.n4_count,
      result.completed,
    )
    return result
