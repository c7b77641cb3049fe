"""Base interfaces for AI providers and models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class SimpleModelResponse:
  """Minimal model response structure."""

  content: str
  usage: dict[str, int] | None = None


class AIModel(ABC):
  """Abstract base class for AI models."""

  name: str

  @abstractmethod
  async def generate(self, prompt: str, *, system_prompt: str | None = None) -> SimpleModelResponse:
    """Generate a response for the given prompt."""

  @staticmethod
  def strip_json_fences(text: str) -> str:
    """Remove a surrounding markdown code fence from model output."""
    stripped = text.strip()
    if not stripped.startswith("```"):
      return stripped
    lines = stripped.splitlines()
    if lines and lines[0].startswith("```"):
      lines = lines[1:]
    if lines and lines[-1].strip().startswith("```"):
      lines = lines[:-1]
    return "\n".join(lines).strip()


class Provider(ABC):
  """Abstract base class for AI providers."""

  name: str

  @abstractmethod
  def get_model(self, model: str) -> AIModel:
    """Return the model client for a job's model selector (``gemini`` or ``gpt5``)."""
