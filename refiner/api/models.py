from __future__ import annotations

from dataclasses import asdict
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from refiner.jobs.models import ChunkResult, JobStatus, PriorityMode, RefinementJobRecord, RefinementModel


class CreateRefinementJobRequest(BaseModel):
  """Request payload for starting a refinement run."""

  domain_filter: StrictStr | None = Field(default=None, max_length=32, description="Optional top-level code (e.g. MG, NA) or DS for every semantic domain.", examples=["MG"])
  model: RefinementModel = Field(default="gemini", description="Classification backend.")
  priority_mode: PriorityMode = Field(default="impact", description="Entry ordering: impact, alphabetical or random.")
  model_config = ConfigDict(extra="forbid")

  @field_validator("domain_filter")
  @classmethod
  def _normalize_domain_filter(cls, value: str | None) -> str | None:
    if value is None:
      return None
    stripped = value.strip().upper()
    return stripped or None


class RefinementJobModel(BaseModel):
  job_id: str
  status: JobStatus
  is_cancelling: bool
  domain_filter: str | None
  model: RefinementModel
  priority_mode: PriorityMode
  total_words: int
  processed: int
  refined: int
  errors: int
  current_offset: int
  n2_refined: int
  n3_refined: int
  n4_refined: int
  sample_refinements: list[dict[str, Any]]
  error_message: str | None
  started_at: str | None
  finished_at: str | None
  last_chunk_at: str | None
  created_at: str
  updated_at: str

  @classmethod
  def from_record(cls, record: RefinementJobRecord) -> RefinementJobModel:
    return cls.model_validate(asdict(record))


class RefinementJobResponse(BaseModel):
  job: RefinementJobModel


class ActiveRefinementJobResponse(BaseModel):
  job: RefinementJobModel | None


class RefinementJobListResponse(BaseModel):
  items: list[RefinementJobModel]
  total: int
  limit: int
  offset: int


class JobStatusResponse(BaseModel):
  job_id: str
  status: JobStatus


class ProcessChunkPayload(BaseModel):
  job_id: StrictStr = Field(min_length=1)


class ChunkSampleModel(BaseModel):
  surface_form: str
  old_code: str
  new_code: str
  depth: int
  confidence: float
  context_excerpt: str | None = None


class ChunkResponse(BaseModel):
  """Counts for one processed chunk, in the scheduler's camelCase contract."""

  model_config = ConfigDict(populate_by_name=True)

  processed_count: int = Field(alias="processedCount")
  refined_count: int = Field(alias="refinedCount")
  error_count: int = Field(alias="errorCount")
  n2_count: int = Field(alias="n2Count")
  n3_count: int = Field(alias="n3Count")
  n4_count: int = Field(alias="n4Count")
  samples: list[ChunkSampleModel]
  completed: bool
  skipped: bool = False

  @classmethod
  def from_result(cls, result: ChunkResult) -> ChunkResponse:
    return cls(
      processed_count=result.processed_count,
      refined_count=result.refined_count,
      error_count=result.error_count,
      n2_count=result.n2_count,
      n3_count=result.n3_count,
      n4_count=result.n4_count,
      samples=[ChunkSampleModel(**sample.to_dict()) for sample in result.samples],
      completed=result.completed,
      skipped=result.skipped,
    )
