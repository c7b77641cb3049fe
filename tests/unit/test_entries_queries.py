import pytest
from sqlalchemy.dialects import postgresql

from refiner.storage.postgres_entries_repo import _coarse_clause, _order_by, _page_statement

TABLE = "semantic_disambiguation_cache"


def _sql(clause) -> str:
  compiled = clause.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True})
  return " ".join(str(compiled).split())


@pytest.mark.parametrize(
  ("priority_mode", "expected"),
  [
    ("impact", [f"{TABLE}.hits_count DESC", f"{TABLE}.palavra ASC", f"{TABLE}.id ASC"]),
    ("alphabetical", [f"{TABLE}.palavra ASC", f"{TABLE}.id ASC"]),
    ("random", [f"{TABLE}.cached_at DESC", f"{TABLE}.id ASC"]),
  ],
)
def test_order_by_per_priority_mode(priority_mode, expected) -> None:
  assert [_sql(clause) for clause in _order_by(priority_mode)] == expected


def test_coarse_clause_without_filter_excludes_refined_and_unclassified() -> None:
  assert _sql(_coarse_clause(None)) == f"{TABLE}.tagset_n2 IS NULL AND {TABLE}.tagset_codigo != 'NC'"


def test_coarse_clause_for_a_single_domain() -> None:
  assert _sql(_coarse_clause("MG")) == f"{TABLE}.tagset_n2 IS NULL AND {TABLE}.tagset_codigo != 'NC' AND {TABLE}.tagset_codigo = 'MG'"


def test_coarse_clause_for_semantic_domains_excludes_grammar() -> None:
  assert _sql(_coarse_clause("DS")) == f"{TABLE}.tagset_n2 IS NULL AND {TABLE}.tagset_codigo != 'NC' AND {TABLE}.tagset_codigo != 'MG'"


def test_page_statement_keeps_rows_refined_by_the_job_in_any_domain() -> None:
  sql = _sql(_page_statement(job_id="job-1", domain_filter="NA", priority_mode="random", offset=100, limit=50))

  assert f"{TABLE}.tagset_codigo = 'NA' OR {TABLE}.refined_by_job_id = 'job-1' ORDER BY" in sql
  assert f"ORDER BY {TABLE}.cached_at DESC, {TABLE}.id ASC" in sql
  assert sql.endswith("LIMIT 50 OFFSET 100")
