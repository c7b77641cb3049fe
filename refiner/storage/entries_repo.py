"""Storage interface for corpus entries awaiting refinement."""

from __future__ import annotations

from typing import Protocol

from refiner.jobs.models import EntryRefinement, EntryToClassify, PriorityMode


class CorpusEntriesRepository(Protocol):
  """Repository contract for the disambiguation cache and its source documents."""

  async def count_unrefined(self, domain_filter: str | None) -> int:
    """Count coarse entries in scope for a new job."""

  async def fetch_page(self, *, job_id: str, domain_filter: str | None, priority_mode: PriorityMode, offset: int, limit: int) -> list[EntryToClassify]:
    """Return one ordered page of coarse entries (plus entries this job already refined)."""

  async def fetch_source_texts(self, document_ids: list[str]) -> dict[str, str]:
    """Return source document text keyed by document id."""

  async def apply_refinement(self, entry_id: str, refinement: EntryRefinement) -> None:
    """Persist a refined classification on one entry."""
