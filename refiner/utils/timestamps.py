"""UTC timestamp helpers shared by jobs and storage."""

from __future__ import annotations

from datetime import UTC, datetime


def now_iso() -> str:
  return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
