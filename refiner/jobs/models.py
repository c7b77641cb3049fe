"""Domain models for semantic refinement jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

JobStatus = Literal["pending", "running", "paused", "cancelled", "completed"]
PriorityMode = Literal["impact", "alphabetical", "random"]
RefinementModel = Literal["gemini", "gpt5"]

ACTIVE_JOB_STATUSES: tuple[JobStatus, ...] = ("pending", "running", "paused")
DEFAULT_CONFIDENCE = 0.85
SAMPLE_CONTEXT_CHARS = 50


@dataclass
class RefinementJobRecord:
  """Represents one refinement run over the coarse-grained corpus entries."""

  job_id: str
  status: JobStatus
  model: RefinementModel
  priority_mode: PriorityMode
  created_at: str
  updated_at: str
  domain_filter: str | None = None
  is_cancelling: bool = False
  total_words: int = 0
  processed: int = 0
  refined: int = 0
  errors: int = 0
  current_offset: int = 0
  n2_refined: int = 0
  n3_refined: int = 0
  n4_refined: int = 0
  sample_refinements: list[dict[str, Any]] = field(default_factory=list)
  error_message: str | None = None
  started_at: str | None = None
  finished_at: str | None = None
  last_chunk_at: str | None = None

  @property
  def is_processable(self) -> bool:
    """Return True when a chunk worker may act on this job."""
    return self.status == "running" and not self.is_cancelling


@dataclass
class EntryToClassify:
  """A corpus entry awaiting refinement, with its derived context snippet."""

  entry_id: str
  surface_form: str
  current_code: str
  hits_count: int = 1
  lemma: str | None = None
  pos: str | None = None
  source_document_id: str | None = None
  refined_by_job_id: str | None = None
  context: str = ""


@dataclass(frozen=True)
class EntryRefinement:
  """Fields persisted on an entry once a deeper code is accepted."""

  code: str
  n1: str
  n2: str | None
  n3: str | None
  n4: str | None
  confidence: float
  source: str
  job_id: str


@dataclass(frozen=True)
class RefinementSample:
  """A representative refinement kept on the job for the dashboard."""

  surface_form: str
  old_code: str
  new_code: str
  depth: int
  confidence: float
  context_excerpt: str | None = None

  def to_dict(self) -> dict[str, Any]:
    return {
      "surface_form": self.surface_form,
      "old_code": self.old_code,
      "new_code": self.new_code,
      "depth": self.depth,
      "confidence": self.confidence,
      "context_excerpt": self.context_excerpt,
    }


@dataclass
class ChunkResult:
  """Aggregate counts for one processed chunk."""

  processed_count: int = 0
  refined_count: int = 0
  error_count: int = 0
  n2_count: int = 0
  n3_count: int = 0
  n4_count: int = 0
  samples: list[RefinementSample] = field(default_factory=list)
  completed: bool = False
  skipped: bool = False

  def absorb(self, other: ChunkResult) -> None:
    """Add a batch result into this chunk total."""
    self.processed_count += other.processed_count
    self.refined_count += other.refined_count
    self.error_count += other.error_count
    self.n2_count += other.n2_count
    self.n3_count += other.n3_count
    self.n4_count += other.n4_count
    self.samples.extend(other.samples)


def merge_samples(existing: list[dict[str, Any]], new_samples: list[RefinementSample], limit: int) -> list[dict[str, Any]]:
  """Prepend the newest samples and cap the list."""
  combined = [sample.to_dict() for sample in new_samples] + list(existing)
  return combined[:limit]
