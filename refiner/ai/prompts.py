"""Prompt construction for the refinement oracle."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from refiner.jobs.models import EntryToClassify
from refiner.storage.taxonomy_repo import TaxonomyEntry
from refiner.taxonomy.codes import code_depth, top_level

NO_CONTEXT_MARKER = "[no context available]"

DOMAIN_INSTRUCTIONS: dict[str, str] = {
  "MG": """GRAMMATICAL WORDS (MG): use the context window to tell apart:
- Prepositions of place: "de casa", "do campo" -> MG.PR.LOC
- Prepositions of time: "de manhã", "de tarde" -> MG.PR.TMP
- Causal prepositions: "de medo", "de alegria" -> MG.PR.CAU
- Subordinating conjunctions: integrant "que" -> MG.CJ.SUB
- Relative pronouns: "que" as a pronoun -> MG.PR.REL
- Temporal adverbs: "já", "ainda" -> MG.AV.TMP
- Modal adverbs: "bem", "mal" -> MG.AV.MOD""",
  "NA": """NATURE (NA): prefer specific subcategories:
- Regional flora: tarumã, maçanilha -> NA.FL.ARV or NA.FL.PLA
- Specific fauna: quero-quero, tatu -> NA.FA.AVE or NA.FA.MAM
- Landscape: coxilha, várzea -> NA.PA.REL""",
  "AH": """HUMAN ACTIVITIES (AH): decide from context:
- Field work: tropeada, lida -> AH.TR.RUR
- Arts: cantiga, poesia -> AH.AR.MUS
- Food and drink: churrasco, chimarrão -> AH.AL.BEB or AH.AL.COM""",
  "SH": """HUMAN BEING (SH): subcategories:
- Body parts: olhos, mãos -> SH.CO.MEM
- Relationships: prenda, compadre -> SH.RS.FAM
- Emotions: saudade, alegria -> SH.EM.POS or SH.EM.NEG""",
}

FEW_SHOT_EXAMPLES = """CORRECT REFINEMENT EXAMPLES:
- "de" with context "...de manhã cedo..." -> MG.PR.TMP (temporal, confidence 0.92)
- "que" with context "...disse que voltaria..." -> MG.CJ.SUB (integrant, confidence 0.88)
- "campo" with context "...no campo verde..." -> NA.PA.PL (landscape, confidence 0.95)
- "cavalo" with context "...montou no cavalo..." -> NA.FA.EQU (equine, confidence 0.98)"""

RESPONSE_CONTRACT = """Reply ONLY with a JSON array, one object per word:
[{"surfaceForm": "x", "proposedCode": "XX.YY.ZZ", "confidence": 0.85}]"""


def batch_domains(entries: Iterable[EntryToClassify]) -> list[str]:
  """Return the distinct top-level codes of a batch in first-seen order."""
  domains: list[str] = []
  for entry in entries:
    domain = top_level(entry.current_code)
    if domain and domain not in domains:
      domains.append(domain)
  return domains


def render_hierarchy(taxonomy: Sequence[TaxonomyEntry], domains: Sequence[str]) -> str:
  """Render the taxonomy subtree of each domain, indented two spaces per level."""
  lines: list[str] = []
  for domain in domains:
    for entry in taxonomy:
      if entry.code == domain or entry.code.startswith(f"{domain}."):
        indent = "  " * (code_depth(entry.code) - 1)
        lines.append(f"{indent}{entry.code} - {entry.name}")
  return "\n".join(lines)


def build_system_prompt(taxonomy: Sequence[TaxonomyEntry], entries: Sequence[EntryToClassify]) -> str:
  domains = batch_domains(entries)
  sections = [
    "You are an expert in semantic classification of Brazilian Portuguese, specialised in gaúcho song lyrics.",
    "Your goal is to REFINE words classified at level N1 to the most specific sublevel available (N4 > N3 > N2).",
    f"AVAILABLE HIERARCHY:\n{render_hierarchy(taxonomy, domains)}",
  ]
  instructions = [DOMAIN_INSTRUCTIONS[domain] for domain in domains if domain in DOMAIN_INSTRUCTIONS]
  if instructions:
    sections.append("DOMAIN INSTRUCTIONS:\n" + "\n\n".join(instructions))
  sections.append(FEW_SHOT_EXAMPLES)
  sections.append(
    "CRITICAL RULES:\n"
    "1. ALWAYS prefer the most specific level available (N4 > N3 > N2)\n"
    "2. Return ONLY codes that exist in the hierarchy above\n"
    "3. The context window is ESSENTIAL for disambiguating polysemous words\n"
    f"4. For words marked {NO_CONTEXT_MARKER}, use the safest generic subcategory\n"
    "5. Keeping N1 when an N2+ code exists costs 0.20 confidence\n"
    "6. Confidence: 0.70-0.85 without context, 0.85-0.98 with clear context"
  )
  sections.append(RESPONSE_CONTRACT)
  return "\n\n".join(sections)


def format_entry(entry: EntryToClassify) -> str:
  freq = f" [freq: {entry.hits_count}]" if entry.hits_count > 1 else ""
  context_line = f'\n    Context: "{entry.context}"' if entry.context else f"\n    {NO_CONTEXT_MARKER}"
  return f'- "{entry.surface_form}" (POS: {entry.pos or "?"}, current: {entry.current_code}){freq}{context_line}'


def build_user_prompt(entries: Sequence[EntryToClassify]) -> str:
  word_list = "\n".join(format_entry(entry) for entry in entries)
  return f"Refine each word to the most specific level possible:\n\n{word_list}"
