"""Backend health checks. Pings each registered backend before a debate."""

import asyncio
import logging

from spec_debate.providers.base import ProviderRegistry

logger = logging.getLogger(__name__)

_PING_SYSTEM = "You are a connectivity check."
_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _check_one(registry: ProviderRegistry, name: str) -> tuple[str, bool, str]:
    """Ping a single backend. Returns (name, ok, error_message)."""
    try:
        await asyncio.wait_for(
            registry.get(name).complete(_PING_SYSTEM, _PING_PROMPT),
            timeout=_TIMEOUT_SEC,
        )
        return name, True, ""
    except Exception as exc:
        logger.debug("Health check for %s failed: %s", name, exc)
        return name, False, str(exc) or type(exc).__name__


async def run_health_checks(registry: ProviderRegistry) -> dict[str, tuple[bool, str]]:
    """Ping all backends in parallel.

    Returns:
        Dict mapping backend name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(registry, n) for n in registry.names()))
    return {name: (ok, err) for name, ok, err in results}
