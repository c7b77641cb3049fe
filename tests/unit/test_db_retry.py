from __future__ import annotations

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from refiner.utils import db_retry
from refiner.utils.db_retry import classify_db_failure, execute_with_retry


class _DriverError(Exception):
  def __init__(self, sqlstate: str) -> None:
    super().__init__(f"sqlstate {sqlstate}")
    self.sqlstate = sqlstate


def _dbapi_error(sqlstate: str) -> DBAPIError:
  return DBAPIError("UPDATE semantic_disambiguation_cache", {}, _DriverError(sqlstate))


@pytest.mark.parametrize(("sqlstate", "category"), [("40001", "serialization_conflict"), ("40P01", "deadlock")])
def test_conflicts_are_retryable(sqlstate: str, category: str) -> None:
  classification = classify_db_failure(_dbapi_error(sqlstate))
  assert classification.retryable
  assert classification.category == category
  assert classification.sqlstate == sqlstate


@pytest.mark.parametrize(("sqlstate", "category"), [("23505", "integrity_error"), ("42P01", "schema_error"), ("28P01", "permission_error"), ("57014", "query_timeout")])
def test_permanent_failures_are_not_retried(sqlstate: str, category: str) -> None:
  classification = classify_db_failure(_dbapi_error(sqlstate))
  assert not classification.retryable
  assert classification.category == category


def test_dropped_connection_is_retryable() -> None:
  exc = OperationalError("SELECT 1", {}, Exception("connection reset by peer"))
  assert classify_db_failure(exc).retryable
  assert classify_db_failure(ConnectionError("refused")).retryable


def test_integrity_error_without_sqlstate_is_permanent() -> None:
  exc = IntegrityError("INSERT", {}, Exception("duplicate key"))
  assert classify_db_failure(exc).category == "integrity_error"


@pytest.mark.anyio
async def test_execute_with_retry_recovers_from_transient_failure(monkeypatch) -> None:
  async def no_sleep(_seconds: float) -> None:
    return None

  monkeypatch.setattr(db_retry.asyncio, "sleep", no_sleep)
  attempts: list[int] = []

  async def flaky() -> str:
    attempts.append(1)
    if len(attempts) == 1:
      raise _dbapi_error("40P01")
    return "ok"

  assert await execute_with_retry(operation_name="apply_refinement", func=flaky) == "ok"
  assert len(attempts) == 2


@pytest.mark.anyio
async def test_execute_with_retry_raises_permanent_failure_immediately() -> None:
  attempts: list[int] = []

  async def broken() -> None:
    attempts.append(1)
    raise _dbapi_error("42703")

  with pytest.raises(DBAPIError):
    await execute_with_retry(operation_name="apply_refinement", func=broken, max_attempts=3)
  assert len(attempts) == 1
