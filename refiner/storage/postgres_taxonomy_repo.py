"""Postgres-backed taxonomy reads."""

from __future__ import annotations

from sqlalchemy import select

from refiner.core.database import get_session_factory
from refiner.schema.refinement import TaxonomyTag
from refiner.storage.taxonomy_repo import TaxonomyEntry, TaxonomyRepository

ACTIVE_STATUS = "ativo"


class PostgresTaxonomyRepository(TaxonomyRepository):
  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def list_active(self) -> list[TaxonomyEntry]:
    async with self._session_factory() as session:
      stmt = select(TaxonomyTag).where(TaxonomyTag.status == ACTIVE_STATUS).order_by(TaxonomyTag.codigo.asc())
      rows = (await session.execute(stmt)).scalars().all()
      return [
        TaxonomyEntry(
          code=row.codigo,
          name=row.nome,
          depth=int(row.nivel_profundidade),
          description=row.descricao,
          examples=tuple(str(item) for item in (row.exemplos or [])),
          parent_code=row.categoria_pai,
        )
        for row in rows
      ]
