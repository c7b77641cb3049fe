"""Storage interface for the read-only taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class TaxonomyEntry:
  """One active taxonomy label."""

  code: str
  name: str
  depth: int
  description: str | None = None
  examples: tuple[str, ...] = field(default_factory=tuple)
  parent_code: str | None = None


class TaxonomyRepository(Protocol):
  """Repository contract for taxonomy reads."""

  async def list_active(self) -> list[TaxonomyEntry]:
    """Return every active taxonomy entry ordered by code."""
