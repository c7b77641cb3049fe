"""create refinement tables

Revision ID: a3f1c9d2e7b4
Revises:
Create Date: 2026-10-19 09:12:44.318207

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a3f1c9d2e7b4"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_UTC_NOW_SQL = """to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')"""


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "semantic_tagset",
    sa.Column("codigo", sa.String(), nullable=False),
    sa.Column("nome", sa.String(), nullable=False),
    sa.Column("descricao", sa.Text(), nullable=True),
    sa.Column("nivel_profundidade", sa.Integer(), nullable=False),
    sa.Column("exemplos", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("categoria_pai", sa.String(), nullable=True),
    sa.Column("status", sa.String(), server_default=sa.text("'ativo'"), nullable=False),
    sa.PrimaryKeyConstraint("codigo"),
  )
  op.create_index(op.f("ix_semantic_tagset_status"), "semantic_tagset", ["status"], unique=False)

  op.create_table(
    "songs",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("title", sa.String(), nullable=True),
    sa.Column("lyrics", sa.Text(), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )

  op.create_table(
    "semantic_disambiguation_cache",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("palavra", sa.String(), nullable=False),
    sa.Column("lema", sa.String(), nullable=True),
    sa.Column("pos", sa.String(), nullable=True),
    sa.Column("tagset_codigo", sa.String(), nullable=False),
    sa.Column("tagset_n1", sa.String(), nullable=True),
    sa.Column("tagset_n2", sa.String(), nullable=True),
    sa.Column("tagset_n3", sa.String(), nullable=True),
    sa.Column("tagset_n4", sa.String(), nullable=True),
    sa.Column("confianca", sa.Float(), nullable=True),
    sa.Column("fonte", sa.String(), nullable=True),
    sa.Column("song_id", sa.String(), nullable=True),
    sa.Column("hits_count", sa.Integer(), server_default=sa.text("1"), nullable=False),
    sa.Column("refined_by_job_id", sa.String(), nullable=True),
    sa.Column("cached_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_semantic_disambiguation_cache_palavra"), "semantic_disambiguation_cache", ["palavra"], unique=False)
  op.create_index(op.f("ix_semantic_disambiguation_cache_tagset_codigo"), "semantic_disambiguation_cache", ["tagset_codigo"], unique=False)
  op.create_index(op.f("ix_semantic_disambiguation_cache_song_id"), "semantic_disambiguation_cache", ["song_id"], unique=False)
  op.create_index(op.f("ix_semantic_disambiguation_cache_refined_by_job_id"), "semantic_disambiguation_cache", ["refined_by_job_id"], unique=False)
  op.create_index(
    "ix_semantic_disambiguation_cache_coarse",
    "semantic_disambiguation_cache",
    ["tagset_codigo", "hits_count"],
    unique=False,
    postgresql_where=sa.text("tagset_n2 IS NULL"),
  )

  op.create_table(
    "semantic_refinement_jobs",
    sa.Column("job_id", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("is_cancelling", sa.Boolean(), server_default=sa.text("false"), nullable=False),
    sa.Column("domain_filter", sa.String(), nullable=True),
    sa.Column("model", sa.String(), nullable=False),
    sa.Column("priority_mode", sa.String(), server_default=sa.text("'impact'"), nullable=False),
    sa.Column("total_words", sa.Integer(), nullable=False),
    sa.Column("processed", sa.Integer(), nullable=False),
    sa.Column("refined", sa.Integer(), nullable=False),
    sa.Column("errors", sa.Integer(), nullable=False),
    sa.Column("current_offset", sa.Integer(), nullable=False),
    sa.Column("n2_refined", sa.Integer(), nullable=False),
    sa.Column("n3_refined", sa.Integer(), nullable=False),
    sa.Column("n4_refined", sa.Integer(), nullable=False),
    sa.Column("sample_refinements", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("started_at", sa.String(), nullable=True),
    sa.Column("finished_at", sa.String(), nullable=True),
    sa.Column("last_chunk_at", sa.String(), nullable=True),
    sa.Column("created_at", sa.String(), server_default=sa.text(_UTC_NOW_SQL), nullable=False),
    sa.Column("updated_at", sa.String(), server_default=sa.text(_UTC_NOW_SQL), nullable=False),
    sa.PrimaryKeyConstraint("job_id"),
  )
  op.create_index(op.f("ix_semantic_refinement_jobs_status"), "semantic_refinement_jobs", ["status"], unique=False)
  op.create_index(
    "ix_semantic_refinement_jobs_active",
    "semantic_refinement_jobs",
    ["status"],
    unique=False,
    postgresql_where=sa.text("status IN ('pending', 'running', 'paused')"),
  )


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_semantic_refinement_jobs_active", table_name="semantic_refinement_jobs", postgresql_where=sa.text("status IN ('pending', 'running', 'paused')"))
  op.drop_index(op.f("ix_semantic_refinement_jobs_status"), table_name="semantic_refinement_jobs")
  op.drop_table("semantic_refinement_jobs")
  op.drop_index("ix_semantic_disambiguation_cache_coarse", table_name="semantic_disambiguation_cache", postgresql_where=sa.text("tagset_n2 IS NULL"))
  op.drop_index(op.f("ix_semantic_disambiguation_cache_refined_by_job_id"), table_name="semantic_disambiguation_cache")
  op.drop_index(op.f("ix_semantic_disambiguation_cache_song_id"), table_name="semantic_disambiguation_cache")
  op.drop_index(op.f("ix_semantic_disambiguation_cache_tagset_codigo"), table_name="semantic_disambiguation_cache")
  op.drop_index(op.f("ix_semantic_disambiguation_cache_palavra"), table_name="semantic_disambiguation_cache")
  op.drop_table("semantic_disambiguation_cache")
  op.drop_table("songs")
  op.drop_index(op.f("ix_semantic_tagset_status"), table_name="semantic_tagset")
  op.drop_table("semantic_tagset")
