from __future__ import annotations

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from refiner.core.database import Base

_UTC_NOW_SQL = """to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')"""


class RefinementJob(Base):
  __tablename__ = "semantic_refinement_jobs"
  __table_args__ = (Index("ix_semantic_refinement_jobs_active", "status", postgresql_where=text("status IN ('pending', 'running', 'paused')")),)

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  status: Mapped[str] = mapped_column(String, nullable=False, index=True)
  is_cancelling: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
  domain_filter: Mapped[str | None] = mapped_column(String, nullable=True)
  model: Mapped[str] = mapped_column(String, nullable=False)
  priority_mode: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'impact'"))
  total_words: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  refined: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  current_offset: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  n2_refined: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  n3_refined: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  n4_refined: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  sample_refinements: Mapped[list] = mapped_column(JSONB, nullable=False, server_default=text("'[]'::jsonb"))
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  started_at: Mapped[str | None] = mapped_column(String, nullable=True)
  finished_at: Mapped[str | None] = mapped_column(String, nullable=True)
  last_chunk_at: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=text(_UTC_NOW_SQL))
  updated_at: Mapped[str] = mapped_column(String, nullable=False, server_default=text(_UTC_NOW_SQL))


class CorpusEntry(Base):
  """One cached word classification (the disambiguation cache)."""

  __tablename__ = "semantic_disambiguation_cache"
  __table_args__ = (Index("ix_semantic_disambiguation_cache_coarse", "tagset_codigo", "hits_count", postgresql_where=text("tagset_n2 IS NULL")),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  palavra: Mapped[str] = mapped_column(String, nullable=False, index=True)
  lema: Mapped[str | None] = mapped_column(String, nullable=True)
  pos: Mapped[str | None] = mapped_column(String, nullable=True)
  tagset_codigo: Mapped[str] = mapped_column(String, nullable=False, index=True)
  tagset_n1: Mapped[str | None] = mapped_column(String, nullable=True)
  tagset_n2: Mapped[str | None] = mapped_column(String, nullable=True)
  tagset_n3: Mapped[str | None] = mapped_column(String, nullable=True)
  tagset_n4: Mapped[str | None] = mapped_column(String, nullable=True)
  confianca: Mapped[float | None] = mapped_column(Float, nullable=True)
  fonte: Mapped[str | None] = mapped_column(String, nullable=True)
  song_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  hits_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))
  refined_by_job_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  cached_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SourceDocument(Base):
  """Source text (song lyrics) that corpus entries were extracted from."""

  __tablename__ = "songs"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  title: Mapped[str | None] = mapped_column(String, nullable=True)
  lyrics: Mapped[str | None] = mapped_column(Text, nullable=True)


class TaxonomyTag(Base):
  __tablename__ = "semantic_tagset"

  codigo: Mapped[str] = mapped_column(String, primary_key=True)
  nome: Mapped[str] = mapped_column(String, nullable=False)
  descricao: Mapped[str | None] = mapped_column(Text, nullable=True)
  nivel_profundidade: Mapped[int] = mapped_column(Integer, nullable=False)
  exemplos: Mapped[list | None] = mapped_column(JSONB, nullable=True)
  categoria_pai: Mapped[str | None] = mapped_column(String, nullable=True)
  status: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'ativo'"), index=True)
