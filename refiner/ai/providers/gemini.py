"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import logging
from typing import Final

from google import genai
from google.genai import types

from refiner.ai.providers.base import AIModel, Provider, SimpleModelResponse

logger = logging.getLogger(__name__)


class GeminiModel(AIModel):
  """Gemini model client."""

  def __init__(self, name: str, client: genai.Client) -> None:
    self.name: str = name
    self._client = client

  async def generate(self, prompt: str, *, system_prompt: str | None = None) -> SimpleModelResponse:
    config = types.GenerateContentConfig(system_instruction=system_prompt) if system_prompt else None
    # Use the async client to avoid blocking the asyncio event loop.
    response = await self._client.aio.models.generate_content(model=self.name, contents=prompt, config=config)

    logger.debug("Gemini response from %s:\n%s", self.name, response.text)
    usage = None
    if response.usage_metadata:
      usage = {"prompt_tokens": response.usage_metadata.prompt_token_count, "completion_tokens": response.usage_metadata.candidates_token_count, "total_tokens": response.usage_metadata.total_token_count}
    return SimpleModelResponse(content=response.text or "", usage=usage)


class GeminiProvider(Provider):
  """Direct Gemini access; only the ``gemini`` selector is available here."""

  MODEL_IDS: Final[dict[str, str]] = {"gemini": "gemini-2.5-flash"}

  def __init__(self, api_key: str | None) -> None:
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")
    self.name: str = "gemini"
    self._client = genai.Client(api_key=api_key)

  def get_model(self, model: str) -> AIModel:
    model_id = self.MODEL_IDS.get(model)
    if model_id is None:
      raise ValueError(f"Model '{model}' is not available through the Gemini provider; use the gateway provider.")
    return GeminiModel(model_id, self._client)
