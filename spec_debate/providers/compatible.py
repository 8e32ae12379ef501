"""OpenAI-compatible endpoints (Cerebras, xAI Grok, DeepSeek) via the openai SDK."""

from config.config_loader import BackendConfig
from spec_debate.providers.base import ProviderError
from spec_debate.providers.openai_provider import OpenAIProvider


class OpenAICompatibleProvider(OpenAIProvider):
    """Any chat-completions API reachable through a custom base_url."""

    def __init__(self, config: BackendConfig) -> None:
        if not config.base_url:
            raise ProviderError(config.name, "base_url is required for OpenAI-compatible backends")
        super().__init__(config)
