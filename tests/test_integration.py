"""Integration tests: real API calls, no mocks. Requires .env with 2+ API keys."""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

load_dotenv()

# Skip entire module if fewer than 2 API keys are set
_AVAILABLE_KEYS = [
    k for k in ["GEMINI_API_KEY", "CEREBRAS_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "XAI_API_KEY"]
    if os.environ.get(k, "").strip()
]
pytestmark = pytest.mark.integration

if len(_AVAILABLE_KEYS) < 2:
    pytestmark = pytest.mark.skip(reason=f"Need 2+ API keys, found {len(_AVAILABLE_KEYS)}")


async def test_single_round_debate(tmp_path: Path):
    """Run a real 1-round debate with available backends, verify no crash."""
    from config.config_loader import build_debate_config, load_config
    from spec_debate.models import AgentSpec, Persona, SessionStatus
    from spec_debate.orchestrator import DebateOrchestrator
    from spec_debate.output import save_transcript
    from spec_debate.providers.factory import build_registry
    from spec_debate.store import DebateStore

    config = load_config()
    registry = build_registry(config)
    backends = registry.names()
    assert len(backends) >= 2, f"Need 2+ backends, got {len(backends)}"

    # One persona per available backend so every configured client is exercised
    personas = [Persona.SECURITY, Persona.QA, Persona.PERFORMANCE, Persona.ONCALL, Persona.PM]
    agents = [AgentSpec(name, persona) for name, persona in zip(backends, personas)]
    debate_config = build_debate_config(config, agents=agents, max_rounds=1)

    spec = (
        "# Password reset\n\n"
        "Users request a reset link by email. The link contains the user id and "
        "lets them set a new password."
    )
    orchestrator = DebateOrchestrator("tasks/password-reset.md", spec, debate_config, registry)
    session = await orchestrator.run_debate()

    assert session.status is SessionStatus.COMPLETED
    assert len(session.rounds) == 1
    assert len(session.rounds[0].critiques) == len(agents)
    for critique in session.rounds[0].critiques:
        assert critique.raw_response, f"Empty response from {critique.backend}"
        assert critique.summary

    store = DebateStore()
    store.save(tmp_path, session)
    assert store.load(tmp_path, "tasks/password-reset.md") == session

    saved = save_transcript(session, tmp_path / "output")
    content = saved.read_text(encoding="utf-8")
    assert "# Spec Debate: tasks/password-reset.md" in content
    assert "## Round 1" in content
