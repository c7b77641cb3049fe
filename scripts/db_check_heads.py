from __future__ import annotations

import sys
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory


def _load_alembic_config() -> Config:
  """Build the Alembic config with a stable script path for CI and local runs."""
  repo_root = Path(__file__).resolve().parents[1]
  config = Config(str(repo_root / "alembic.ini"))
  config.set_main_option("script_location", str(repo_root / "alembic"))
  return config


def check_single_head() -> int:
  """Return non-zero when the migration history has diverged."""
  script = ScriptDirectory.from_config(_load_alembic_config())
  heads = script.get_heads()

  if len(heads) != 1:
    print("ERROR: Multiple Alembic heads detected.")
    print(f"Found heads: {', '.join(heads) if heads else '(none)'}")
    print("Remediation: rebase migrations onto a single head.")
    return 1

  print(f"OK: Single Alembic head detected ({heads[0]}).")
  return 0


def main() -> None:
  sys.exit(check_single_head())


if __name__ == "__main__":
  main()
