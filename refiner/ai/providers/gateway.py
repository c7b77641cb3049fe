"""OpenAI-compatible AI gateway provider using the openai SDK."""

from __future__ import annotations

import logging
from typing import Final

from openai import AsyncOpenAI

from refiner.ai.providers.base import AIModel, Provider, SimpleModelResponse

logger = logging.getLogger(__name__)


class GatewayModel(AIModel):
  """Chat-completions client for one gateway-hosted model."""

  def __init__(self, name: str, client: AsyncOpenAI) -> None:
    self.name: str = name
    self._client = client

  async def generate(self, prompt: str, *, system_prompt: str | None = None) -> SimpleModelResponse:
    messages = []
    if system_prompt:
      messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})

    response = await self._client.chat.completions.create(model=self.name, messages=messages)

    content = (response.choices[0].message.content or "") if response.choices else ""
    logger.debug("Gateway response from %s:\n%s", self.name, content)
    usage = None
    if response.usage:
      usage = {"prompt_tokens": response.usage.prompt_tokens, "completion_tokens": response.usage.completion_tokens, "total_tokens": response.usage.total_tokens}
    return SimpleModelResponse(content=content, usage=usage)


class GatewayProvider(Provider):
  """Routes both job model selectors through one OpenAI-compatible gateway."""

  MODEL_IDS: Final[dict[str, str]] = {"gemini": "google/gemini-2.5-flash", "gpt5": "openai/gpt-5-mini"}

  def __init__(self, api_key: str | None, base_url: str) -> None:
    if not api_key:
      raise ValueError("REFINER_AI_GATEWAY_API_KEY is required for the gateway provider")
    self.name: str = "gateway"
    self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)

  def get_model(self, model: str) -> AIModel:
    model_id = self.MODEL_IDS.get(model)
    if model_id is None:
      raise ValueError(f"Unsupported refinement model '{model}'.")
    return GatewayModel(model_id, self._client)
