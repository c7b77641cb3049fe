"""Time-bounded cache over the active taxonomy with ancestor fallback resolution."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from refiner.storage.taxonomy_repo import TaxonomyEntry, TaxonomyRepository
from refiner.taxonomy.codes import ancestors

logger = logging.getLogger(__name__)


class TaxonomyUnavailableError(RuntimeError):
  """Raised when the taxonomy cannot be loaded and no earlier snapshot exists."""


class TaxonomyCache:
  """Serve the active taxonomy from memory, reloading after ``ttl_seconds``.

  The cache keeps the last good snapshot when a reload fails, so a flaky taxonomy
  read never fails a chunk that could still validate against slightly stale data.
  """

  def __init__(self, repo: TaxonomyRepository, *, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
    self._repo = repo
    self._ttl_seconds = ttl_seconds
    self._clock = clock
    self._entries: list[TaxonomyEntry] | None = None
    self._by_code: dict[str, TaxonomyEntry] = {}
    self._expires_at = 0.0

  @property
  def is_stale(self) -> bool:
    return self._entries is None or self._clock() >= self._expires_at

  def invalidate(self) -> None:
    """Force the next access to reload from the repository."""
    self._expires_at = 0.0

  async def load_active(self) -> list[TaxonomyEntry]:
    """Return all active taxonomy entries, reloading when the snapshot expired."""
    if not self.is_stale:
      return list(self._entries or [])

    try:
      entries = await self._repo.list_active()
    except Exception as exc:  # noqa: BLE001
      if self._entries is None:
        raise TaxonomyUnavailableError(f"Taxonomy load failed and no cached snapshot exists: {exc}") from exc
      logger.warning("Taxonomy reload failed; serving %d cached entries: %s", len(self._entries), exc)
      return list(self._entries)

    self._entries = list(entries)
    self._by_code = {entry.code: entry for entry in self._entries}
    self._expires_at = self._clock() + self._ttl_seconds
    logger.info("Taxonomy cache loaded with %d active entries", len(self._entries))
    return list(self._entries)

  async def is_valid(self, code: str | None) -> bool:
    if not code:
      return False
    await self.load_active()
    return code in self._by_code

  async def get_by_code(self, code: str) -> TaxonomyEntry | None:
    await self.load_active()
    return self._by_code.get(code)

  async def resolve_code(self, code: str | None) -> str | None:
    """Return ``code`` if valid, else its nearest valid ancestor, else ``None``."""
    if not code:
      return None
    await self.load_active()
    for candidate in ancestors(code.strip()):
      if candidate in self._by_code:
        if candidate != code:
          logger.info("Proposed code %s is not in the taxonomy; falling back to %s", code, candidate)
        return candidate
    logger.info("Proposed code %s has no valid ancestor", code)
    return None
