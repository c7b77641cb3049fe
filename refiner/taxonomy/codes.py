"""Helpers for dot-segmented taxonomy codes (``A``, ``A.B``, ``A.B.C``, ``A.B.C.D``)."""

from __future__ import annotations

MAX_DEPTH = 4
UNCLASSIFIED_CODE = "NC"
GRAMMATICAL_DOMAIN = "MG"
SEMANTIC_DOMAINS_FILTER = "DS"


def code_depth(code: str | None) -> int:
  """Return the number of segments in a code; empty codes have depth 0."""
  if not code:
    return 0
  return len(code.split("."))


def top_level(code: str | None) -> str | None:
  if not code:
    return None
  return code.split(".", 1)[0]


def ancestors(code: str) -> list[str]:
  """Return the code and each of its prefixes, most specific first."""
  parts = code.split(".")
  return [".".join(parts[:index]) for index in range(len(parts), 0, -1)]


def split_levels(code: str) -> tuple[str, str | None, str | None, str | None]:
  """Decompose a code into its N1..N4 prefixes, ``None`` for levels it does not reach."""
  parts = code.split(".")
  n1 = parts[0]
  n2 = ".".join(parts[:2]) if len(parts) >= 2 else None
  n3 = ".".join(parts[:3]) if len(parts) >= 3 else None
  n4 = code if len(parts) >= 4 else None
  return n1, n2, n3, n4
