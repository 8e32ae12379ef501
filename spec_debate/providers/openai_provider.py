"""OpenAI chat-completions backend (openai SDK, native async)."""

import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import BackendConfig
from spec_debate.providers.base import CritiqueProvider, ProviderError

logger = logging.getLogger(__name__)


class OpenAIProvider(CritiqueProvider):
    """Chat completions with a system and a user message.

    base_url is passed through, so subclasses can point the same client at
    any compatible endpoint.
    """

    def __init__(self, config: BackendConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

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
        completion = await self._bounded(
            self._client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self._config.max_tokens,
                **options,
            ),
            self._config.timeout_sec,
        )

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ProviderError(self._config.name, "Empty response content")

        usage = completion.usage
        logger.info(
            "%s %s: %.2fs, %s tokens",
            self._config.name,
            model,
            time.monotonic() - started,
            usage.total_tokens if usage else None,
        )
        return content
