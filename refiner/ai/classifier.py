"""Batch classification against the external refinement oracle."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from refiner.ai.json_parser import parse_json_with_fallback
from refiner.ai.prompts import build_system_prompt, build_user_prompt
from refiner.ai.providers.base import AIModel, Provider
from refiner.jobs.models import EntryToClassify
from refiner.taxonomy.cache import TaxonomyCache

logger = logging.getLogger(__name__)

_RAW_EXCERPT_CHARS = 200


class OracleCallError(RuntimeError):
  """Raised when the oracle could not be reached or answered with a transport error."""


class ProposedClassification(BaseModel):
  """One item of the oracle's reply."""

  model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

  surface_form: str = Field(alias="surfaceForm", min_length=1)
  proposed_code: str = Field(alias="proposedCode", min_length=1)
  confidence: float | None = Field(default=None, ge=0.0, le=1.0)


_REPLY_ADAPTER = TypeAdapter(list[ProposedClassification])


@dataclass(frozen=True)
class ParsedClassifications:
  items: list[ProposedClassification] = field(default_factory=list)


@dataclass(frozen=True)
class UnparseableResponse:
  """The reply could not be read as the classification contract."""

  reason: str
  raw_excerpt: str = ""


@dataclass(frozen=True)
class OracleTimeout:
  seconds: float


ClassificationOutcome = ParsedClassifications | UnparseableResponse | OracleTimeout


def parse_classification_reply(raw: str) -> ParsedClassifications | UnparseableResponse:
  """Read a reply as a JSON array of classifications; anything else is unparseable."""
  excerpt = raw[:_RAW_EXCERPT_CHARS]
  try:
    payload = parse_json_with_fallback(AIModel.strip_json_fences(raw), opening="[")
  except json.JSONDecodeError as exc:
    return UnparseableResponse(reason=f"invalid JSON: {exc.msg}", raw_excerpt=excerpt)
  if not isinstance(payload, list):
    return UnparseableResponse(reason=f"expected a JSON array, got {type(payload).__name__}", raw_excerpt=excerpt)
  try:
    items = _REPLY_ADAPTER.validate_python(payload)
  except ValidationError as exc:
    return UnparseableResponse(reason=f"schema mismatch: {exc.error_count()} error(s)", raw_excerpt=excerpt)
  return ParsedClassifications(items=items)


class ClassificationCaller:
  """Split entries into batches, prompt the oracle once per batch, and parse replies."""

  def __init__(
    self,
    provider_factory: Callable[[], Provider],
    taxonomy: TaxonomyCache,
    *,
    batch_size: int = 15,
    batch_delay_ms: int = 1500,
    timeout_seconds: float = 120.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
  ) -> None:
    self._provider_factory = provider_factory
    self._provider: Provider | None = None
    self._taxonomy = taxonomy
    self.batch_size = batch_size
    self.batch_delay_ms = batch_delay_ms
    self.timeout_seconds = timeout_seconds
    self._sleep = sleep
    self._models: dict[str, AIModel] = {}

  def batches(self, entries: Sequence[EntryToClassify]) -> list[list[EntryToClassify]]:
    return [list(entries[index : index + self.batch_size]) for index in range(0, len(entries), self.batch_size)]

  async def pause_between_batches(self) -> None:
    """Respect the oracle's rate limits between consecutive batches."""
    if self.batch_delay_ms > 0:
      await self._sleep(self.batch_delay_ms / 1000.0)

  def _model_for(self, model: str) -> AIModel:
    if model not in self._models:
      try:
        # Providers need credentials, so they are built on first use rather than at startup.
        if self._provider is None:
          self._provider = self._provider_factory()
        self._models[model] = self._provider.get_model(model)
      except ValueError as exc:
        raise OracleCallError(str(exc)) from exc
    return self._models[model]

  async def classify(self, entries: Sequence[EntryToClassify], model: str) -> ClassificationOutcome:
    """Classify one batch.

    Transport failures raise ``OracleCallError`` so the chunk is retried as a whole;
    a timeout or an unreadable reply comes back as a value the caller counts as errors.
    """
    taxonomy = await self._taxonomy.load_active()
    system_prompt = build_system_prompt(taxonomy, entries)
    user_prompt = build_user_prompt(entries)
    oracle = self._model_for(model)

    try:
      response = await asyncio.wait_for(oracle.generate(user_prompt, system_prompt=system_prompt), timeout=self.timeout_seconds)
    except TimeoutError:
      logger.warning("Oracle %s timed out after %.1fs for a batch of %d entries", oracle.name, self.timeout_seconds, len(entries))
      return OracleTimeout(seconds=self.timeout_seconds)
    except Exception as exc:
      raise OracleCallError(f"Oracle call to {oracle.name} failed: {exc}") from exc

    outcome = parse_classification_reply(response.content)
    if isinstance(outcome, UnparseableResponse):
      logger.error("Unparseable oracle reply (%s): %s", outcome.reason, outcome.raw_excerpt)
    return outcome
