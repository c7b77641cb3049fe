from refiner.config import Settings
from refiner.storage.entries_repo import CorpusEntriesRepository
from refiner.storage.jobs_repo import RefinementJobsRepository
from refiner.storage.postgres_entries_repo import PostgresCorpusEntriesRepository
from refiner.storage.postgres_jobs_repo import PostgresRefinementJobsRepository
from refiner.storage.postgres_taxonomy_repo import PostgresTaxonomyRepository
from refiner.storage.taxonomy_repo import TaxonomyRepository


def _require_dsn(settings: Settings) -> None:
  if not settings.pg_dsn:
    raise ValueError("REFINER_PG_DSN must be set to enable Postgres persistence.")


def _get_jobs_repo(settings: Settings) -> RefinementJobsRepository:
  """Return the active refinement jobs repository."""
  _require_dsn(settings)
  return PostgresRefinementJobsRepository()


def _get_entries_repo(settings: Settings) -> CorpusEntriesRepository:
  """Return the active corpus entries repository."""
  _require_dsn(settings)
  return PostgresCorpusEntriesRepository()


def _get_taxonomy_repo(settings: Settings) -> TaxonomyRepository:
  _require_dsn(settings)
  return PostgresTaxonomyRepository()
