"""Provider implementations."""

from refiner.ai.providers.base import AIModel, Provider, SimpleModelResponse
from refiner.ai.providers.gateway import GatewayModel, GatewayProvider
from refiner.ai.providers.gemini import GeminiModel, GeminiProvider
from refiner.config import Settings


def get_provider(settings: Settings) -> Provider:
  """Return the configured classification provider."""
  if settings.ai_provider == "gemini":
    return GeminiProvider(api_key=settings.gemini_api_key)
  return GatewayProvider(api_key=settings.ai_gateway_api_key, base_url=settings.ai_gateway_url)


__all__ = ["AIModel", "SimpleModelResponse", "Provider", "GatewayModel", "GatewayProvider", "GeminiModel", "GeminiProvider", "get_provider"]
