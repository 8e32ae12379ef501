"""Google Gemini backend (google-genai SDK, async client)."""

import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import BackendConfig
from spec_debate.providers.base import CritiqueProvider, ProviderError

logger = logging.getLogger(__name__)


class GeminiProvider(CritiqueProvider):
    """generate_content with the persona prompt as system_instruction."""

    def __init__(self, config: BackendConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def complete(self, system: str, prompt: str, *, model: str | None = None) -> str:
        model = model or self._config.model
        generation = genai_types.GenerateContentConfig(
            system_instruction=system,
            max_output_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
        )

        started = time.monotonic()
        result = await self._bounded(
            self._client.aio.models.generate_content(model=model, contents=prompt, config=generation),
            self._config.timeout_sec,
        )

        if not result.text:
            raise ProviderError(self._config.name, "Empty response text")

        usage = result.usage_metadata
        logger.info(
            "%s %s: %.2fs, %s tokens",
            self._config.name,
            model,
            time.monotonic() - started,
            usage.total_token_count if usage else None,
        )
        return result.text
