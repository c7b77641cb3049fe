import json

import pytest

from refiner.ai.json_parser import parse_json_with_fallback


def test_strict_json_is_returned_unchanged() -> None:
  assert parse_json_with_fallback('[{"a": 1}]') == [{"a": 1}]


def test_prose_around_array_is_ignored() -> None:
  raw = 'Here you go:\n[{"surfaceForm": "pampa", "proposedCode": "NA.02"}]\nHope it helps.'
  assert parse_json_with_fallback(raw, opening="[") == [{"surfaceForm": "pampa", "proposedCode": "NA.02"}]


def test_trailing_commas_are_tolerated() -> None:
  assert parse_json_with_fallback('[{"a": 1,},]', opening="[") == [{"a": 1}]


def test_brackets_inside_strings_do_not_end_the_block() -> None:
  raw = 'note [{"s": "a ] b"}] trailing'
  assert parse_json_with_fallback(raw, opening="[") == [{"s": "a ] b"}]


def test_unrecoverable_text_raises() -> None:
  with pytest.raises(json.JSONDecodeError):
    parse_json_with_fallback("no json here")
