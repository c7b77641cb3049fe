from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Any

from alembic.autogenerate import compare_metadata
from alembic.migration import MigrationContext
from sqlalchemy.ext.asyncio import create_async_engine

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import refiner.schema.db_models  # noqa: E402, F401
from refiner.core.database import DATABASE_URL, Base  # noqa: E402
from refiner.core.migrations import build_migration_context_options  # noqa: E402


def _load_allowlist() -> list[str]:
  """Read comma-separated tokens for diffs that are known to be safe."""
  raw = os.getenv("REFINER_MIGRATION_DRIFT_ALLOWLIST", "")
  return [item.strip() for item in raw.split(",") if item.strip()]


def _filter_diffs(diffs: list[Any], allowlist: list[str]) -> list[Any]:
  if not allowlist:
    return diffs
  return [diff for diff in diffs if not any(token in str(diff) for token in allowlist)]


async def _collect_drift() -> list[Any]:
  """Compare the live schema with the ORM metadata."""
  if not DATABASE_URL:
    raise RuntimeError("REFINER_PG_DSN is not set, cannot run drift detection.")

  engine = create_async_engine(DATABASE_URL)
  try:
    async with engine.connect() as connection:

      def _compare(sync_connection: Any) -> list[Any]:
        options = build_migration_context_options(target_metadata=Base.metadata)
        options.pop("target_metadata", None)
        context = MigrationContext.configure(connection=sync_connection, opts=options)
        return compare_metadata(context, Base.metadata)

      return await connection.run_sync(_compare)

  finally:
    await engine.dispose()


def main() -> None:
  """Exit non-zero when drift exists and is not allowlisted."""
  try:
    diffs = asyncio.run(_collect_drift())
  except RuntimeError as exc:
    print(f"ERROR: {exc}")
    sys.exit(1)

  diffs = _filter_diffs(diffs, _load_allowlist())
  if diffs:
    print("Schema drift detected:")
    for diff in diffs:
      print(f"- {diff}")

    sys.exit(1)

  print("Schema drift check passed.")


if __name__ == "__main__":
  main()
