"""Shared pytest fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, BackendConfig, DefaultsConfig
from spec_debate.models import (
    AgentSpec,
    Critique,
    CritiqueIssue,
    DebateConfig,
    IssueSeverity,
    Persona,
    Verdict,
)
from spec_debate.providers.base import CritiqueProvider, ProviderRegistry
from spec_debate.synthesis import SYNTHESIS_SYSTEM_PROMPT

SAMPLE_SPEC = "# Feature\n\nUsers can export their data as CSV."


def critique_json(verdict: str = "approve", issues: list[dict] | None = None) -> str:
    return json.dumps({"verdict": verdict, "summary": f"Verdict is {verdict}.", "issues": issues or []})


NEEDS_CHANGES_JSON = critique_json(
    "needs-changes",
    [{"severity": "major", "title": "No size limit", "description": "Exports are unbounded."}],
)


class MockProvider(CritiqueProvider):
    """Test double backend.

    Critique calls return critique_response, synthesis calls (recognised by
    the synthesis system prompt) return synthesis_response.
    """

    def __init__(
        self,
        provider_name: str = "mock",
        critique_response: str = critique_json(),
        synthesis_response: str = "# Feature v2\n\nRevised.",
    ) -> None:
        self._name = provider_name
        self.critique_response = critique_response
        self.synthesis_response = synthesis_response
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because complete is defined in the class body below.
        self.complete = AsyncMock(side_effect=self._respond)  # type: ignore[method-assign]

    async def _respond(self, system: str, prompt: str, *, model: str | None = None) -> str:
        if system == SYNTHESIS_SYSTEM_PROMPT:
            return self.synthesis_response
        return self.critique_response

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def complete(self, system: str, prompt: str, *, model: str | None = None) -> str:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return await self._respond(system, prompt, model=model)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def registry(mock_provider: MockProvider) -> ProviderRegistry:
    return ProviderRegistry({"mock": mock_provider})


@pytest.fixture
def three_agent_config() -> DebateConfig:
    return DebateConfig(
        agents=[
            AgentSpec("mock", Persona.SECURITY),
            AgentSpec("mock", Persona.QA),
            AgentSpec("mock", Persona.PERFORMANCE, model="mock-large"),
        ],
        max_rounds=3,
        consensus_threshold=0.67,
        synthesis_enabled=True,
    )


def make_critique(
    verdict: Verdict = Verdict.APPROVE,
    persona: Persona = Persona.SECURITY,
    issues: tuple[CritiqueIssue, ...] = (),
) -> Critique:
    return Critique(
        backend="mock",
        model=None,
        persona=persona,
        verdict=verdict,
        summary="summary",
        issues=issues,
        raw_response="{}",
        timestamp="2025-01-01T00:00:00+00:00",
        duration_sec=0.1,
    )


def make_issue(severity: IssueSeverity, title: str = "Issue") -> CritiqueIssue:
    return CritiqueIssue(severity=severity, title=title, description=f"{title} description")


@pytest.fixture
def sample_backend_config() -> BackendConfig:
    return BackendConfig(
        name="test_backend",
        sdk="openai",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
    )


@pytest.fixture
def sample_app_config(sample_backend_config: BackendConfig) -> AppConfig:
    return AppConfig(
        defaults=DefaultsConfig(
            max_rounds=2,
            consensus_threshold=0.67,
            synthesis_enabled=True,
            agent_timeout_sec=60,
        ),
        backends={"test_backend": sample_backend_config},
        agents=[AgentSpec("test_backend", Persona.SECURITY), AgentSpec("test_backend", Persona.QA)],
        available_backends={"test_backend"},
    )


@pytest.fixture
def owner_dir(tmp_path: Path) -> Path:
    return tmp_path / "project"
