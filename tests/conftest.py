"""Shared fixtures for the refinement service tests."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import replace
from typing import Any

# Ensure predictable settings before anything imports the app.
os.environ.setdefault("REFINER_ALLOWED_ORIGINS", "http://localhost")
os.environ.setdefault("REFINER_TASK_SECRET", "test-task-secret")
os.environ.setdefault("REFINER_BASE_URL", "http://localhost:8080")
os.environ.pop("REFINER_PG_DSN", None)
os.environ.pop("DATABASE_URL", None)

import pytest  # noqa: E402
from fakes import TAXONOMY_CODES, InMemoryEntriesRepo, InMemoryJobsRepo, InMemoryTaxonomyRepo, RecordingEnqueuer, ScriptedModel, ScriptedProvider, no_sleep  # noqa: E402

from refiner.config import Settings, get_settings  # noqa: E402
from refiner.services.runtime import RefinementRuntime, build_runtime  # noqa: E402


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def settings() -> Settings:
  get_settings.cache_clear()
  return replace(get_settings(), chunk_size=50, batch_size=15, batch_delay_ms=0, task_secret="test-task-secret", base_url="http://localhost:8080")


@pytest.fixture
def jobs_repo() -> InMemoryJobsRepo:
  return InMemoryJobsRepo()


@pytest.fixture
def taxonomy_repo() -> InMemoryTaxonomyRepo:
  return InMemoryTaxonomyRepo(TAXONOMY_CODES)


@pytest.fixture
def oracle() -> ScriptedModel:
  return ScriptedModel("scripted-oracle")


@pytest.fixture
def enqueuer() -> RecordingEnqueuer:
  return RecordingEnqueuer()


@pytest.fixture
def runtime_factory(settings, jobs_repo, taxonomy_repo, oracle, enqueuer) -> Callable[..., RefinementRuntime]:
  """Build a runtime around in-memory collaborators; pass ``entries_repo`` per test."""

  def _build(entries_repo: InMemoryEntriesRepo, **setting_overrides: Any) -> RefinementRuntime:
    return build_runtime(
      replace(settings, **setting_overrides),
      jobs_repo=jobs_repo,
      entries_repo=entries_repo,
      taxonomy_repo=taxonomy_repo,
      provider_factory=lambda: ScriptedProvider(oracle),
      enqueuer=enqueuer,
      sleep=no_sleep,
    )

  return _build
