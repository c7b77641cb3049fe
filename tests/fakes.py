"""In-memory collaborators for the refinement pipeline tests."""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from refiner.ai.providers.base import AIModel, Provider, SimpleModelResponse
from refiner.jobs.models import ACTIVE_JOB_STATUSES, EntryRefinement, EntryToClassify, PriorityMode, RefinementJobRecord
from refiner.storage.taxonomy_repo import TaxonomyEntry
from refiner.taxonomy.codes import GRAMMATICAL_DOMAIN, SEMANTIC_DOMAINS_FILTER, UNCLASSIFIED_CODE, code_depth, top_level


async def no_sleep(_seconds: float) -> None:
  return None


class InMemoryJobsRepo:
  """In-memory jobs repository with the same compare-and-set contract as Postgres."""

  def __init__(self) -> None:
    self._jobs: dict[str, RefinementJobRecord] = {}
    self.update_calls: list[dict[str, Any]] = []

  async def create_job(self, record: RefinementJobRecord) -> None:
    self._jobs[record.job_id] = record

  async def get_job(self, job_id: str) -> RefinementJobRecord | None:
    return self._jobs.get(job_id)

  async def update_job(self, job_id: str, *, expected_offset: int | None = None, **kwargs: Any) -> RefinementJobRecord | None:
    self.update_calls.append({"job_id": job_id, "expected_offset": expected_offset, **kwargs})
    record = self._jobs.get(job_id)
    if record is None:
      return None
    if expected_offset is not None and record.current_offset != expected_offset:
      return None

    changes = {key: value for key, value in kwargs.items() if value is not None}
    if changes.get("error_message") == "":
      changes["error_message"] = None
    updated = replace(record, **changes)
    self._jobs[job_id] = updated
    return updated

  async def cancel_active_jobs(self, *, finished_at: str) -> list[str]:
    cancelled: list[str] = []
    for job_id, record in list(self._jobs.items()):
      if record.status in ACTIVE_JOB_STATUSES:
        self._jobs[job_id] = replace(record, status="cancelled", is_cancelling=True, finished_at=finished_at)
        cancelled.append(job_id)
    return cancelled

  async def get_active_job(self) -> RefinementJobRecord | None:
    active = [record for record in self._jobs.values() if record.status in ACTIVE_JOB_STATUSES]
    return max(active, key=lambda record: record.created_at, default=None)

  async def list_jobs(self, limit: int, offset: int) -> tuple[list[RefinementJobRecord], int]:
    ordered = sorted(self._jobs.values(), key=lambda record: (record.created_at, record.job_id), reverse=True)
    return ordered[offset : offset + limit], len(ordered)


@dataclass
class StoredEntry:
  entry_id: str
  surface_form: str
  code: str
  hits_count: int = 1
  pos: str | None = "NOUN"
  song_id: str | None = None
  n2: str | None = None
  n3: str | None = None
  n4: str | None = None
  confidence: float | None = None
  source: str | None = None
  refined_by_job_id: str | None = None
  cached_at: str = "2026-01-01T00:00:00+00:00"


class InMemoryEntriesRepo:
  """Disambiguation cache held in a list; page selection mirrors the SQL filters."""

  def __init__(self, entries: list[StoredEntry] | None = None, songs: dict[str, str] | None = None) -> None:
    self.entries: dict[str, StoredEntry] = {entry.entry_id: entry for entry in entries or []}
    self.songs = dict(songs or {})
    self.fail_fetch_page: Exception | None = None
    self.fail_source_texts: Exception | None = None
    self.fail_apply_for: set[str] = set()
    self.page_requests: list[dict[str, Any]] = []

  @staticmethod
  def _in_domain(code: str, domain_filter: str | None) -> bool:
    if not domain_filter:
      return True
    if domain_filter == SEMANTIC_DOMAINS_FILTER:
      return top_level(code) != GRAMMATICAL_DOMAIN
    return top_level(code) == domain_filter

  def _is_coarse(self, entry: StoredEntry, domain_filter: str | None) -> bool:
    return entry.n2 is None and entry.code != UNCLASSIFIED_CODE and self._in_domain(entry.code, domain_filter)

  async def count_unrefined(self, domain_filter: str | None) -> int:
    return sum(1 for entry in self.entries.values() if self._is_coarse(entry, domain_filter))

  async def fetch_page(self, *, job_id: str, domain_filter: str | None, priority_mode: PriorityMode, offset: int, limit: int) -> list[EntryToClassify]:
    self.page_requests.append({"job_id": job_id, "offset": offset, "limit": limit, "priority_mode": priority_mode})
    if self.fail_fetch_page is not None:
      raise self.fail_fetch_page
    window = [entry for entry in self.entries.values() if self._is_coarse(entry, domain_filter) or entry.refined_by_job_id == job_id]
    if priority_mode == "alphabetical":
      window.sort(key=lambda entry: (entry.surface_form, entry.entry_id))
    elif priority_mode == "random":
      window.sort(key=lambda entry: entry.entry_id)
      window.sort(key=lambda entry: entry.cached_at, reverse=True)
    else:
      window.sort(key=lambda entry: (-entry.hits_count, entry.surface_form, entry.entry_id))
    return [
      EntryToClassify(
        entry_id=entry.entry_id,
        surface_form=entry.surface_form,
        current_code=entry.code,
        hits_count=entry.hits_count,
        pos=entry.pos,
        source_document_id=entry.song_id,
        refined_by_job_id=entry.refined_by_job_id,
      )
      for entry in window[offset : offset + limit]
    ]

  async def fetch_source_texts(self, document_ids: list[str]) -> dict[str, str]:
    if self.fail_source_texts is not None:
      raise self.fail_source_texts
    return {document_id: self.songs[document_id] for document_id in document_ids if document_id in self.songs}

  async def apply_refinement(self, entry_id: str, refinement: EntryRefinement) -> None:
    if entry_id in self.fail_apply_for:
      raise ConnectionError(f"write failed for {entry_id}")
    entry = self.entries[entry_id]
    entry.code = refinement.code
    entry.n2 = refinement.n2
    entry.n3 = refinement.n3
    entry.n4 = refinement.n4
    entry.confidence = refinement.confidence
    entry.source = refinement.source
    entry.refined_by_job_id = refinement.job_id


class InMemoryTaxonomyRepo:
  def __init__(self, codes: list[str]) -> None:
    self.codes = list(codes)
    self.calls = 0
    self.fail_with: Exception | None = None

  async def list_active(self) -> list[TaxonomyEntry]:
    self.calls += 1
    if self.fail_with is not None:
      raise self.fail_with
    return [TaxonomyEntry(code=code, name=f"Label {code}", depth=code_depth(code)) for code in sorted(self.codes)]


Reply = str | Exception | Callable[[str], str]


class ScriptedModel(AIModel):
  """Returns queued replies in order, then ``default`` once the queue is empty."""

  def __init__(self, name: str, replies: list[Reply] | None = None, *, default: Reply = "[]") -> None:
    self.name = name
    self.replies: list[Reply] = list(replies or [])
    self.default = default
    self.calls: list[tuple[str, str | None]] = []

  async def generate(self, prompt: str, *, system_prompt: str | None = None) -> SimpleModelResponse:
    self.calls.append((prompt, system_prompt))
    reply: Reply = self.replies.pop(0) if self.replies else self.default
    if isinstance(reply, Exception):
      raise reply
    if callable(reply):
      reply = reply(prompt)
    return SimpleModelResponse(content=reply)


class ScriptedProvider(Provider):
  name = "scripted"

  def __init__(self, model: ScriptedModel) -> None:
    self.model = model

  def get_model(self, model: str) -> AIModel:
    if model not in {"gemini", "gpt5"}:
      raise ValueError(f"Unknown model selector: {model}")
    return self.model


class RecordingEnqueuer:
  def __init__(self, failures: int = 0) -> None:
    self.failures = failures
    self.calls: list[str] = []

  async def enqueue_chunk(self, job_id: str) -> None:
    self.calls.append(job_id)
    if len(self.calls) <= self.failures:
      raise ConnectionError("queue unavailable")


TAXONOMY_CODES = ["AH", "AH.01", "AH.01.01", "MG", "MG.01", "NA", "NA.01", "NA.02", "NA.02.03", "NA.02.03.01", "SH", "SH.04"]


def make_entries(count: int, *, code: str = "NA", prefix: str = "palavra", song_id: str | None = None) -> list[StoredEntry]:
  return [StoredEntry(entry_id=f"{prefix}-{index:03d}", surface_form=f"{prefix}{index:03d}", code=code, hits_count=1000 - index, song_id=song_id) for index in range(count)]


def make_job(job_id: str = "job-1", **overrides: Any) -> RefinementJobRecord:
  fields: dict[str, Any] = {
    "job_id": job_id,
    "status": "running",
    "model": "gemini",
    "priority_mode": "impact",
    "created_at": "2026-01-01T00:00:00Z",
    "updated_at": "2026-01-01T00:00:00Z",
    "started_at": "2026-01-01T00:00:00Z",
  }
  fields.update(overrides)
  return RefinementJobRecord(**fields)


_SURFACE_FORM_RE = re.compile(r'^- "(.+?)"', re.MULTILINE)


def surface_forms_in(prompt: str) -> list[str]:
  return _SURFACE_FORM_RE.findall(prompt)


def refine_all(code: str, confidence: float | None = None) -> Callable[[str], str]:
  """Reply that proposes ``code`` for every word listed in the prompt."""

  def _reply(prompt: str) -> str:
    items: list[dict[str, Any]] = []
    for surface_form in surface_forms_in(prompt):
      item: dict[str, Any] = {"surfaceForm": surface_form, "proposedCode": code}
      if confidence is not None:
        item["confidence"] = confidence
      items.append(item)
    return json.dumps(items)

  return _reply
