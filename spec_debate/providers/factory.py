"""Build a ProviderRegistry from configured backends."""

import logging

from config.config_loader import AppConfig
from spec_debate.providers.anthropic import AnthropicProvider
from spec_debate.providers.base import CritiqueProvider, ProviderRegistry
from spec_debate.providers.compatible import OpenAICompatibleProvider
from spec_debate.providers.gemini import GeminiProvider
from spec_debate.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[CritiqueProvider]] = {
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "openai_compatible": OpenAICompatibleProvider,
}


def build_registry(config: AppConfig) -> ProviderRegistry:
    """Instantiate every backend that has an API key. Unknown SDKs are skipped."""
    registry = ProviderRegistry()
    for name in sorted(config.available_backends):
        backend_cfg = config.backends[name]
        provider_cls = PROVIDER_CLASSES.get(backend_cfg.sdk)
        if provider_cls is None:
            logger.warning("Backend '%s' uses unknown sdk '%s', skipping", name, backend_cfg.sdk)
            continue
        try:
            registry.register(provider_cls(backend_cfg))
        except Exception as exc:
            logger.warning("Failed to instantiate backend '%s': %s", name, exc)
    return registry
