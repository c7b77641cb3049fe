from __future__ import annotations

import asyncio

import pytest
from fakes import InMemoryTaxonomyRepo, ScriptedModel, ScriptedProvider, no_sleep

from refiner.ai.classifier import ClassificationCaller, OracleCallError, OracleTimeout, ParsedClassifications, UnparseableResponse, parse_classification_reply
from refiner.ai.prompts import NO_CONTEXT_MARKER, build_system_prompt, build_user_prompt, format_entry, render_hierarchy
from refiner.ai.providers.base import AIModel, SimpleModelResponse
from refiner.jobs.models import EntryToClassify
from refiner.storage.taxonomy_repo import TaxonomyEntry
from refiner.taxonomy.cache import TaxonomyCache


def _entry(surface_form: str, code: str = "NA", context: str = "", hits: int = 1) -> EntryToClassify:
  return EntryToClassify(entry_id=f"id-{surface_form}", surface_form=surface_form, current_code=code, hits_count=hits, pos="NOUN", context=context)


def _caller(model: AIModel, **kwargs) -> ClassificationCaller:
  provider = ScriptedProvider(model)  # type: ignore[arg-type]
  return ClassificationCaller(lambda: provider, TaxonomyCache(InMemoryTaxonomyRepo(["NA", "NA.02", "SH", "SH.04"])), sleep=no_sleep, **kwargs)


def test_entry_without_context_uses_marker() -> None:
  line = format_entry(_entry("coxilha"))
  assert NO_CONTEXT_MARKER in line
  assert "Context:" not in line


def test_entry_with_context_and_frequency() -> None:
  line = format_entry(_entry("coxilha", context="...na coxilha verde...", hits=7))
  assert 'Context: "...na coxilha verde..."' in line
  assert "[freq: 7]" in line


def test_system_prompt_covers_only_batch_domains() -> None:
  taxonomy = [TaxonomyEntry(code=code, name=code.lower(), depth=code.count(".") + 1) for code in ["AH", "AH.01", "NA", "NA.02", "NA.02.03"]]
  prompt = build_system_prompt(taxonomy, [_entry("tarumã")])
  assert "NA.02.03 - na.02.03" in prompt
  assert "AH.01" not in prompt
  assert "NATURE (NA)" in prompt
  assert "0.70-0.85 without context" in prompt


def test_hierarchy_indents_by_depth() -> None:
  taxonomy = [TaxonomyEntry(code="SH", name="Ser humano", depth=1), TaxonomyEntry(code="SH.04", name="Emoções", depth=2)]
  assert render_hierarchy(taxonomy, ["SH"]) == "SH - Ser humano\n  SH.04 - Emoções"


def test_user_prompt_lists_every_entry() -> None:
  prompt = build_user_prompt([_entry("prenda", "SH"), _entry("lida", "AH")])
  assert '"prenda"' in prompt
  assert '"lida"' in prompt


def test_parse_reply_reads_fenced_array() -> None:
  outcome = parse_classification_reply('```json\n[{"surfaceForm": "saudade", "proposedCode": "SH.04", "confidence": 0.9}]\n```')
  assert isinstance(outcome, ParsedClassifications)
  assert outcome.items[0].surface_form == "saudade"
  assert outcome.items[0].proposed_code == "SH.04"
  assert outcome.items[0].confidence == 0.9


@pytest.mark.parametrize(
  "raw",
  [
    "I could not classify these words.",
    '{"surfaceForm": "x", "proposedCode": "NA"}',
    '[{"surfaceForm": "x"}]',
    '[{"surfaceForm": "x", "proposedCode": "NA", "confidence": 3}]',
  ],
)
def test_parse_reply_rejects_anything_but_the_contract(raw: str) -> None:
  assert isinstance(parse_classification_reply(raw), UnparseableResponse)


def test_batches_split_by_batch_size() -> None:
  caller = _caller(ScriptedModel("m"), batch_size=15)
  batches = caller.batches([_entry(f"w{index}") for index in range(50)])
  assert [len(batch) for batch in batches] == [15, 15, 15, 5]


@pytest.mark.anyio
async def test_classify_returns_parsed_items() -> None:
  model = ScriptedModel("m", ['[{"surfaceForm": "coxilha", "proposedCode": "NA.02"}]'])
  outcome = await _caller(model).classify([_entry("coxilha")], "gemini")
  assert isinstance(outcome, ParsedClassifications)
  assert outcome.items[0].confidence is None
  _, system_prompt = model.calls[0]
  assert system_prompt is not None and "NA.02" in system_prompt


@pytest.mark.anyio
async def test_unparseable_reply_is_a_value_not_an_exception() -> None:
  outcome = await _caller(ScriptedModel("m", ["not json"])).classify([_entry("coxilha")], "gemini")
  assert isinstance(outcome, UnparseableResponse)


@pytest.mark.anyio
async def test_transport_failure_raises_oracle_call_error() -> None:
  model = ScriptedModel("m", [ConnectionError("gateway 503")])
  with pytest.raises(OracleCallError):
    await _caller(model).classify([_entry("coxilha")], "gemini")


@pytest.mark.anyio
async def test_unknown_model_selector_raises_oracle_call_error() -> None:
  with pytest.raises(OracleCallError):
    await _caller(ScriptedModel("m")).classify([_entry("coxilha")], "claude")


class SlowModel(AIModel):
  name = "slow"

  async def generate(self, prompt: str, *, system_prompt: str | None = None) -> SimpleModelResponse:
    await asyncio.sleep(1)
    return SimpleModelResponse(content="[]")


@pytest.mark.anyio
async def test_timeout_is_reported_as_outcome() -> None:
  outcome = await _caller(SlowModel(), timeout_seconds=0.01).classify([_entry("coxilha")], "gemini")
  assert isinstance(outcome, OracleTimeout)


@pytest.mark.anyio
async def test_provider_is_built_once_on_first_use() -> None:
  built: list[int] = []
  model = ScriptedModel("m")

  def factory() -> ScriptedProvider:
    built.append(1)
    return ScriptedProvider(model)

  caller = ClassificationCaller(factory, TaxonomyCache(InMemoryTaxonomyRepo(["NA"])), sleep=no_sleep)
  assert built == []
  await caller.classify([_entry("a")], "gemini")
  await caller.classify([_entry("b")], "gpt5")
  assert built == [1]
