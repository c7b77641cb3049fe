"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
  """Typed settings for the refinement service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  task_service_provider: str
  cloud_tasks_queue_path: str | None
  base_url: str | None
  task_secret: str | None
  ai_provider: str
  ai_gateway_url: str
  ai_gateway_api_key: str | None
  gemini_api_key: str | None
  chunk_size: int
  batch_size: int
  batch_delay_ms: int
  context_window: int
  max_samples: int
  taxonomy_cache_ttl_seconds: int
  oracle_timeout_seconds: float
  schedule_max_attempts: int
  schedule_initial_delay_ms: int
  schedule_base_delay_ms: int
  jobs_auto_process: bool


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:5173",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("REFINER_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("REFINER_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _non_negative_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value < 0:
    raise ValueError(f"{name} must be zero or a positive integer.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("REFINER_ENV", "development").lower()
  debug = _parse_bool(os.getenv("REFINER_DEBUG"))

  log_max_bytes = _positive_int("REFINER_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = _non_negative_int("REFINER_LOG_BACKUP_COUNT", "10")

  task_service_provider = os.getenv("REFINER_TASK_SERVICE_PROVIDER", "local-http").strip().lower()
  if task_service_provider not in {"local-http", "gcp"}:
    raise ValueError("REFINER_TASK_SERVICE_PROVIDER must be 'local-http' or 'gcp'.")

  ai_provider = os.getenv("REFINER_AI_PROVIDER", "gateway").strip().lower()
  if ai_provider not in {"gateway", "gemini"}:
    raise ValueError("REFINER_AI_PROVIDER must be 'gateway' or 'gemini'.")

  # Pipeline sizing mirrors the batch job defaults: 50 entries per chunk, 15 per oracle call.
  chunk_size = _positive_int("REFINER_CHUNK_SIZE", "50")
  batch_size = _positive_int("REFINER_BATCH_SIZE", "15")
  if batch_size > chunk_size:
    raise ValueError("REFINER_BATCH_SIZE must not exceed REFINER_CHUNK_SIZE.")

  oracle_timeout_seconds = float(os.getenv("REFINER_ORACLE_TIMEOUT_SECONDS", "120"))
  if oracle_timeout_seconds <= 0:
    raise ValueError("REFINER_ORACLE_TIMEOUT_SECONDS must be positive.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("REFINER_ALLOWED_ORIGINS")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("REFINER_LOG_HTTP_4XX")),
    pg_dsn=_optional_str(os.getenv("REFINER_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("REFINER_PG_CONNECT_TIMEOUT", "5"),
    task_service_provider=task_service_provider,
    cloud_tasks_queue_path=_optional_str(os.getenv("REFINER_CLOUD_TASKS_QUEUE_PATH")),
    base_url=_optional_str(os.getenv("REFINER_BASE_URL")),
    task_secret=_optional_str(os.getenv("REFINER_TASK_SECRET")),
    ai_provider=ai_provider,
    ai_gateway_url=(os.getenv("REFINER_AI_GATEWAY_URL") or "https://ai.gateway.lovable.dev/v1").strip(),
    ai_gateway_api_key=_optional_str(os.getenv("REFINER_AI_GATEWAY_API_KEY")),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    chunk_size=chunk_size,
    batch_size=batch_size,
    batch_delay_ms=_non_negative_int("REFINER_BATCH_DELAY_MS", "1500"),
    context_window=_positive_int("REFINER_CONTEXT_WINDOW", "40"),
    max_samples=_positive_int("REFINER_MAX_SAMPLES", "10"),
    taxonomy_cache_ttl_seconds=_positive_int("REFINER_TAXONOMY_CACHE_TTL_SECONDS", "300"),
    oracle_timeout_seconds=oracle_timeout_seconds,
    schedule_max_attempts=_positive_int("REFINER_SCHEDULE_MAX_ATTEMPTS", "3"),
    schedule_initial_delay_ms=_non_negative_int("REFINER_SCHEDULE_INITIAL_DELAY_MS", "500"),
    schedule_base_delay_ms=_non_negative_int("REFINER_SCHEDULE_BASE_DELAY_MS", "2000"),
    jobs_auto_process=_parse_bool(os.getenv("REFINER_JOBS_AUTO_PROCESS"), default=True),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration."""
  # Keep database configuration isolated so migrations and offline scripts don't require unrelated env vars.
  debug = _parse_bool(os.getenv("REFINER_DEBUG"))
  pg_connect_timeout = int(os.getenv("REFINER_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("REFINER_PG_CONNECT_TIMEOUT must be a positive integer.")

  pg_dsn = _optional_str(os.getenv("REFINER_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
