"""Keyword-in-context snippets used to disambiguate an entry during classification."""

from __future__ import annotations

import re

DEFAULT_WINDOW_SIZE = 40
ELLIPSIS = "..."

_WHITESPACE_RE = re.compile(r"\s+")


def _snippet_at(text: str, index: int, length: int, window_size: int) -> str:
  start = max(0, index - window_size)
  end = min(len(text), index + length + window_size)
  snippet = _WHITESPACE_RE.sub(" ", text[start:end]).strip()
  if start > 0:
    snippet = ELLIPSIS + snippet
  if end < len(text):
    snippet = snippet + ELLIPSIS
  return snippet


def extract_context(source_text: str | None, target_token: str | None, window_size: int = DEFAULT_WINDOW_SIZE) -> str:
  """Return a window of ``source_text`` around the first match of ``target_token``.

  Matching is a case-insensitive substring search on the original text, so offsets stay
  valid when lowercasing would change the text's length. An empty string means no match;
  callers classify such entries without context.
  """
  if not source_text or not target_token:
    return ""

  match = re.search(re.escape(target_token), source_text, flags=re.IGNORECASE)
  if match is None:
    return ""
  return _snippet_at(source_text, match.start(), len(match.group(0)), window_size)
