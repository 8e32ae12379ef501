"""Critique-provider capability: one implementation per backend, looked up by name."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import TypeVar

from spec_debate.models import Persona
from spec_debate.personas import critique_prompt, system_prompt


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


T = TypeVar("T")


class CritiqueProvider(ABC):
    """Abstract base for all text-generation backends."""

    @abstractmethod
    def name(self) -> str:
        """Return the backend identifier (e.g. 'gemini', 'cerebras')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the default model identifier string."""
        ...

    @abstractmethod
    async def complete(self, system: str, prompt: str, *, model: str | None = None) -> str:
        """Generate text for a system prompt and a user prompt.

        Args:
            system: Instruction block sent as the system message.
            prompt: The user prompt.
            model: Overrides the configured model when given.

        Returns:
            The raw response text.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...

    async def critique(self, persona: Persona, model: str | None, spec_text: str) -> str:
        """Ask the backend to review spec_text as persona; returns raw text."""
        return await self.complete(
            system_prompt(persona), critique_prompt(spec_text, persona), model=model
        )

    async def synthesize(self, system: str, prompt: str, model: str | None = None) -> str:
        return await self.complete(system, prompt, model=model)

    async def _bounded(self, call: Awaitable[T], timeout_sec: float) -> T:
        """Await an SDK call, translating timeouts and SDK errors to ProviderError."""
        try:
            return await asyncio.wait_for(call, timeout=timeout_sec)
        except TimeoutError as exc:
            raise ProviderError(self.name(), f"Request timed out after {timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self.name(), f"API call failed: {exc}") from exc


class ProviderRegistry:
    """Dispatches capability calls to the provider registered for a backend."""

    def __init__(self, providers: dict[str, CritiqueProvider] | None = None) -> None:
        self._providers: dict[str, CritiqueProvider] = dict(providers or {})

    def register(self, provider: CritiqueProvider) -> None:
        self._providers[provider.name()] = provider

    def get(self, backend: str) -> CritiqueProvider:
        try:
            return self._providers[backend]
        except KeyError:
            raise ProviderError(backend, f"Backend '{backend}' not supported") from None

    def names(self) -> list[str]:
        return sorted(self._providers)

    def __contains__(self, backend: object) -> bool:
        return backend in self._providers

    async def critique(
        self, persona: Persona, backend: str, model: str | None, spec_text: str
    ) -> str:
        return await self.get(backend).critique(persona, model, spec_text)

    async def synthesize(
        self, backend: str, model: str | None, system: str, prompt: str
    ) -> str:
        return await self.get(backend).synthesize(system, prompt, model)
