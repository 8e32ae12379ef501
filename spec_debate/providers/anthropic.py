"""Anthropic Claude backend (anthropic SDK, native async)."""

import logging
import os
import time

import anthropic as anthropic_sdk

from config.config_loader import BackendConfig
from spec_debate.providers.base import CritiqueProvider, ProviderError

logger = logging.getLogger(__name__)


class AnthropicProvider(CritiqueProvider):
    """Messages API; the persona prompt goes in the top-level system field."""

    def __init__(self, config: BackendConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def complete(self, system: str, prompt: str, *, model: str | None = None) -> str:
        model = model or self._config.model
        options = {}
        if self._config.temperature is not None:
            options["temperature"] = self._config.temperature

        started = time.monotonic()
        message = await self._bounded(
            self._client.messages.create(
                model=model,
                system=system,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self._config.max_tokens,
                **options,
            ),
            self._config.timeout_sec,
        )

        text = "\n".join(block.text for block in message.content or [] if block.type == "text")
        if not text:
            raise ProviderError(self._config.name, "No text blocks in response")

        usage = message.usage
        logger.info(
            "%s %s: %.2fs, %s output tokens",
            self._config.name,
            model,
            time.monotonic() - started,
            usage.output_tokens if usage else None,
        )
        return text
