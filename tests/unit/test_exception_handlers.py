"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from refiner.core.exceptions import _error_payload, _sanitize_validation_errors


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Validation errors stay JSON-serializable and never echo the request payload."""
  errors = [{"type": "value_error", "loc": ("body", "model"), "msg": "Input should be 'gemini' or 'gpt5'", "input": "claude", "ctx": {"error": ValueError("bad model"), "input": "claude"}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "bad model"
  assert "input" not in sanitized[0]["ctx"]


def test_error_payload_carries_request_id_only_when_known() -> None:
  assert _error_payload("Job not found.") == {"detail": "Job not found."}
  assert _error_payload("Job not found.", request_id="abc") == {"detail": "Job not found.", "requestId": "abc"}
