"""Unit tests for spec_debate/healthcheck.py. No real API calls."""

import asyncio
from unittest.mock import AsyncMock

from spec_debate.healthcheck import run_health_checks
from spec_debate.providers.base import ProviderError, ProviderRegistry

from tests.conftest import MockProvider


async def test_all_backends_pass():
    """All backends succeed -> all marked ok, no errors."""
    registry = ProviderRegistry({"claude": MockProvider("claude"), "gemini": MockProvider("gemini")})

    results = await run_health_checks(registry)

    assert results["claude"] == (True, "")
    assert results["gemini"] == (True, "")


async def test_one_backend_fails():
    """A backend that raises returns ok=False with the error message."""
    grok = MockProvider("grok")
    grok.complete = AsyncMock(side_effect=ProviderError("grok", "403 Forbidden"))
    registry = ProviderRegistry({"claude": MockProvider("claude"), "grok": grok})

    results = await run_health_checks(registry)

    assert results["claude"] == (True, "")
    ok, err = results["grok"]
    assert ok is False
    assert "403" in err


async def test_all_backends_fail():
    """All fail -> all marked False."""
    providers = {"openai": MockProvider("openai"), "cerebras": MockProvider("cerebras")}
    for name, p in providers.items():
        p.complete = AsyncMock(side_effect=Exception(f"{name} down"))

    results = await run_health_checks(ProviderRegistry(providers))

    for name in providers:
        ok, err = results[name]
        assert ok is False
        assert name in err


async def test_empty_registry():
    """Empty registry returns empty results."""
    results = await run_health_checks(ProviderRegistry())
    assert results == {}


async def test_timeout_counts_as_failure(monkeypatch):
    """A backend that hangs past the timeout is marked as failed."""
    slow = MockProvider("slow")

    async def hang(*args, **kwargs):
        await asyncio.sleep(9999)

    slow.complete = AsyncMock(side_effect=hang)
    monkeypatch.setattr("spec_debate.healthcheck._TIMEOUT_SEC", 0.05)

    results = await run_health_checks(ProviderRegistry({"slow": slow}))

    ok, err = results["slow"]
    assert ok is False
    assert err == "TimeoutError"
