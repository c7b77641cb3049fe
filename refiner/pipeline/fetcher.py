"""Page selection and context attachment for one chunk."""

from __future__ import annotations

import logging

from refiner.jobs.models import EntryToClassify, RefinementJobRecord
from refiner.storage.entries_repo import CorpusEntriesRepository
from refiner.text.context import extract_context

logger = logging.getLogger(__name__)


class ChunkFetcher:
  """Read the next ordered page of coarse entries for a job."""

  def __init__(self, entries_repo: CorpusEntriesRepository, *, chunk_size: int = 50, context_window: int = 40) -> None:
    self._entries_repo = entries_repo
    self.chunk_size = chunk_size
    self.context_window = context_window

  async def next_page(self, job: RefinementJobRecord) -> list[EntryToClassify]:
    """Return up to ``chunk_size`` entries starting at the job's cursor."""
    return await self._entries_repo.fetch_page(job_id=job.job_id, domain_filter=job.domain_filter, priority_mode=job.priority_mode, offset=job.current_offset, limit=self.chunk_size)

  def is_last_page(self, page: list[EntryToClassify]) -> bool:
    return len(page) < self.chunk_size

  async def attach_context(self, entries: list[EntryToClassify]) -> int:
    """Fill each entry's context snippet from its source document; return how many got one.

    A failed document lookup leaves every entry without context instead of failing the chunk.
    """
    document_ids = [entry.source_document_id for entry in entries if entry.source_document_id]
    if not document_ids:
      return 0
    try:
      texts = await self._entries_repo.fetch_source_texts(document_ids)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Source document fetch failed; classifying %d entries without context: %s", len(entries), exc)
      return 0

    with_context = 0
    for entry in entries:
      text = texts.get(entry.source_document_id or "")
      entry.context = extract_context(text, entry.surface_form, self.context_window)
      if entry.context:
        with_context += 1
    logger.info("Context extracted for %d/%d entries", with_context, len(entries))
    return with_context
