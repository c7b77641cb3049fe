"""Postgres-backed repository for the disambiguation cache and its source documents."""

from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, Select, and_, func, or_, select, update

from refiner.core.database import get_session_factory
from refiner.jobs.models import EntryRefinement, EntryToClassify, PriorityMode
from refiner.schema.refinement import CorpusEntry, SourceDocument
from refiner.storage.entries_repo import CorpusEntriesRepository
from refiner.taxonomy.codes import GRAMMATICAL_DOMAIN, SEMANTIC_DOMAINS_FILTER, UNCLASSIFIED_CODE
from refiner.utils.db_retry import execute_with_retry


def _domain_clause(domain_filter: str | None, column: Any) -> ColumnElement[bool] | None:
  """Translate a job's domain filter into a predicate on a top-level code column."""
  if not domain_filter:
    return None
  if domain_filter == SEMANTIC_DOMAINS_FILTER:
    return column != GRAMMATICAL_DOMAIN
  return column == domain_filter


def _coarse_clause(domain_filter: str | None) -> ColumnElement[bool]:
  clauses: list[ColumnElement[bool]] = [CorpusEntry.tagset_n2.is_(None), CorpusEntry.tagset_codigo != UNCLASSIFIED_CODE]
  domain = _domain_clause(domain_filter, CorpusEntry.tagset_codigo)
  if domain is not None:
    clauses.append(domain)
  return and_(*clauses)


def _order_by(priority_mode: PriorityMode) -> list[Any]:
  if priority_mode == "alphabetical":
    return [CorpusEntry.palavra.asc(), CorpusEntry.id.asc()]
  if priority_mode == "random":
    return [CorpusEntry.cached_at.desc(), CorpusEntry.id.asc()]
  return [CorpusEntry.hits_count.desc(), CorpusEntry.palavra.asc(), CorpusEntry.id.asc()]


def _page_statement(*, job_id: str, domain_filter: str | None, priority_mode: PriorityMode, offset: int, limit: int) -> Select:
  # Entries refined by this job stay in the window so later offsets keep pointing at unseen rows.
  # A refinement may move an entry to another top-level domain, so the domain filter does not apply to them.
  refined_here = CorpusEntry.refined_by_job_id == job_id
  return select(CorpusEntry).where(or_(_coarse_clause(domain_filter), refined_here)).order_by(*_order_by(priority_mode)).offset(offset).limit(limit)


class PostgresCorpusEntriesRepository(CorpusEntriesRepository):
  """Read coarse entries and write refinements using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def count_unrefined(self, domain_filter: str | None) -> int:
    async with self._session_factory() as session:
      total = await session.scalar(select(func.count()).select_from(CorpusEntry).where(_coarse_clause(domain_filter)))
      return int(total or 0)

  async def fetch_page(self, *, job_id: str, domain_filter: str | None, priority_mode: PriorityMode, offset: int, limit: int) -> list[EntryToClassify]:
    stmt = _page_statement(job_id=job_id, domain_filter=domain_filter, priority_mode=priority_mode, offset=offset, limit=limit)
    async with self._session_factory() as session:
      rows = (await session.execute(stmt)).scalars().all()
      return [
        EntryToClassify(
          entry_id=str(row.id),
          surface_form=row.palavra,
          current_code=row.tagset_codigo,
          hits_count=int(row.hits_count or 1),
          lemma=row.lema,
          pos=row.pos,
          source_document_id=row.song_id,
          refined_by_job_id=row.refined_by_job_id,
        )
        for row in rows
      ]

  async def fetch_source_texts(self, document_ids: list[str]) -> dict[str, str]:
    unique_ids = sorted({doc_id for doc_id in document_ids if doc_id})
    if not unique_ids:
      return {}
    async with self._session_factory() as session:
      stmt = select(SourceDocument.id, SourceDocument.lyrics).where(SourceDocument.id.in_(unique_ids))
      rows = (await session.execute(stmt)).all()
      return {str(doc_id): lyrics for doc_id, lyrics in rows if lyrics}

  async def apply_refinement(self, entry_id: str, refinement: EntryRefinement) -> None:
    stmt = (
      update(CorpusEntry)
      .where(CorpusEntry.id == entry_id)
      .values(
        tagset_codigo=refinement.code,
        tagset_n1=refinement.n1,
        tagset_n2=refinement.n2,
        tagset_n3=refinement.n3,
        tagset_n4=refinement.n4,
        confianca=refinement.confidence,
        fonte=refinement.source,
        refined_by_job_id=refinement.job_id,
      )
    )

    async def _write() -> None:
      async with self._session_factory() as session:
        await session.execute(stmt)
        await session.commit()

    await execute_with_retry(operation_name="apply_refinement", func=_write)
