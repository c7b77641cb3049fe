from __future__ import annotations

import logging
import sys

from refiner.core.logging import TruncatedFormatter, _backup_namer, setup_logging


def test_backup_namer_uses_dash_suffix() -> None:
  assert _backup_namer("/var/log/refiner_1.log.3") == "/var/log/refiner_1.log-3"
  assert _backup_namer("/var/log/refiner_1.log") == "/var/log/refiner_1.log"


def test_truncated_formatter_keeps_tail_of_traceback() -> None:
  def _nested(depth: int) -> None:
    if depth == 0:
      raise RuntimeError("boom")
    _nested(depth - 1)

  try:
    _nested(10)
  except RuntimeError:
    formatted = TruncatedFormatter().formatException(sys.exc_info())
  assert formatted.startswith("Traceback")
  assert "    ...\n" in formatted
  assert formatted.rstrip().endswith("RuntimeError: boom")


def test_setup_logging_writes_to_log_dir(tmp_path, settings) -> None:
  log_path = setup_logging(settings, log_dir=tmp_path)
  try:
    assert log_path.parent == tmp_path
    assert log_path.name.startswith("refiner_")
    assert logging.getLogger("httpx").level == logging.WARNING
  finally:
    logging.basicConfig(force=True, handlers=[logging.NullHandler()])
