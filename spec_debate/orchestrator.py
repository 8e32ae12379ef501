"""Debate orchestration: concurrent critique rounds, consensus, synthesis, lifecycle.

The orchestrator exclusively owns its DebateSession. Callers only ever see
deep-copied snapshots (the ``session`` property and event payloads) and are
responsible for persisting them through DebateStore.
"""

import asyncio
import copy
import logging
import secrets
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol, TypeVar

from spec_debate.consensus import check_consensus
from spec_debate.events import (
    CritiqueComplete,
    CritiqueStarting,
    DebateComplete,
    DebateError,
    EventBus,
    RoundComplete,
    RoundStarting,
    SynthesisComplete,
    SynthesisStarting,
)
from spec_debate.models import (
    AgentSpec,
    Critique,
    CritiqueIssue,
    DebateConfig,
    DebateRound,
    DebateSession,
    IssueSeverity,
    Persona,
    SessionStatus,
    SynthesisAgent,
    Verdict,
)
from spec_debate.parsing import parse_critique
from spec_debate.synthesis import (
    SYNTHESIS_SYSTEM_PROMPT,
    changes_summary,
    parse_synthesis_response,
    synthesis_prompt,
)

logger = logging.getLogger(__name__)

E = TypeVar("E")


class CritiqueCapability(Protocol):
    """What the orchestrator needs from the backends (see ProviderRegistry)."""

    async def critique(
        self, persona: Persona, backend: str, model: str | None, spec_text: str
    ) -> str: ...

    async def synthesize(
        self, backend: str, model: str | None, system: str, prompt: str
    ) -> str: ...


class DebateStateError(RuntimeError):
    """Raised when a lifecycle operation is not valid in the current status."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_debate_id() -> str:
    return f"debate-{int(time.time() * 1000):x}-{secrets.token_hex(3)}"


def _agent_error_critique(agent: AgentSpec, error: str, duration_sec: float) -> Critique:
    return Critique(
        backend=agent.backend,
        model=agent.model,
        persona=agent.persona,
        verdict=Verdict.NEEDS_CHANGES,
        summary=f"Error: {error}",
        issues=(
            CritiqueIssue(
                severity=IssueSeverity.CRITICAL,
                title="Agent Error",
                description=f"Failed to get critique from {agent.backend}: {error}",
            ),
        ),
        raw_response=error,
        timestamp=_now(),
        duration_sec=duration_sec,
    )


class DebateOrchestrator:
    """Drives one debate session through its rounds."""

    def __init__(
        self,
        task_id: str,
        original_spec: str,
        config: DebateConfig,
        provider: CritiqueCapability,
        *,
        agent_timeout_sec: float | None = None,
    ) -> None:
        self._provider = provider
        self._agent_timeout_sec = (
            agent_timeout_sec if agent_timeout_sec is not None else config.agent_timeout_sec
        )
        self._events = EventBus()
        self._aborted = False
        self._session = DebateSession(
            id=_new_debate_id(),
            task_id=task_id,
            original_spec=original_spec,
            current_spec=original_spec,
            config=copy.deepcopy(config),
            started_at=_now(),
        )

    @classmethod
    def from_session(
        cls,
        session: DebateSession,
        provider: CritiqueCapability,
        *,
        agent_timeout_sec: float | None = None,
    ) -> "DebateOrchestrator":
        """Rebuild an orchestrator around a persisted session.

        A session stored while running was interrupted mid-debate and is
        restored as paused so it can be resumed.
        """
        orchestrator = cls(
            session.task_id,
            session.original_spec,
            session.config,
            provider,
            agent_timeout_sec=agent_timeout_sec,
        )
        restored = copy.deepcopy(session)
        if restored.status is SessionStatus.RUNNING:
            restored.status = SessionStatus.PAUSED
        orchestrator._session = restored
        return orchestrator

    @property
    def session(self) -> DebateSession:
        """A snapshot; mutating it does not affect the orchestrator."""
        return copy.deepcopy(self._session)

    @property
    def aborted(self) -> bool:
        return self._aborted

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        return self._events.subscribe(event_type, handler)

    async def _query_agent(self, agent: AgentSpec, spec: str) -> Critique | None:
        """Critique from one agent. Never raises; None if skipped after abort."""
        if self._aborted:
            logger.info("Skipping %s/%s: debate aborted", agent.backend, agent.persona.value)
            return None

        self._events.emit(CritiqueStarting(backend=agent.backend, persona=agent.persona))
        start = time.monotonic()
        try:
            raw = await asyncio.wait_for(
                self._provider.critique(agent.persona, agent.backend, agent.model, spec),
                timeout=self._agent_timeout_sec,
            )
            parsed = parse_critique(raw, agent.persona)
        except TimeoutError:
            error = f"Request timed out after {self._agent_timeout_sec}s"
            logger.warning("Agent %s/%s: %s", agent.backend, agent.persona.value, error)
            critique = _agent_error_critique(agent, error, time.monotonic() - start)
        except Exception as exc:
            logger.warning("Agent %s/%s failed: %s", agent.backend, agent.persona.value, exc)
            critique = _agent_error_critique(agent, str(exc), time.monotonic() - start)
        else:
            critique = Critique(
                backend=agent.backend,
                model=agent.model,
                persona=agent.persona,
                verdict=parsed.verdict,
                summary=parsed.summary,
                issues=tuple(parsed.issues),
                raw_response=parsed.raw_response,
                timestamp=_now(),
                duration_sec=time.monotonic() - start,
            )

        self._events.emit(CritiqueComplete(critique=critique))
        return critique

    def _synthesis_agent(self) -> SynthesisAgent | None:
        config = self._session.config
        if config.synthesis_agent is not None:
            return config.synthesis_agent
        if config.agents:
            first = config.agents[0]
            return SynthesisAgent(backend=first.backend, model=first.model)
        return None

    async def _synthesize(self, spec: str, critiques: list[Critique]) -> str | None:
        """Revised spec, or None if synthesis failed and the spec stays as is."""
        agent = self._synthesis_agent()
        if agent is None:
            logger.warning("No agent available for synthesis; keeping current spec")
            return None
        try:
            raw = await self._provider.synthesize(
                agent.backend, agent.model, SYNTHESIS_SYSTEM_PROMPT, synthesis_prompt(spec, critiques)
            )
        except Exception as exc:
            logger.warning("Synthesis via %s failed, keeping current spec: %s", agent.backend, exc)
            return None
        refined = parse_synthesis_response(raw)
        if not refined:
            logger.warning("Synthesis via %s returned empty content, keeping current spec", agent.backend)
            return None
        return refined

    async def run_round(self) -> DebateRound | None:
        """Run one critique round. Returns None without doing anything if aborted."""
        if self._aborted:
            return None

        session = self._session
        round_number = len(session.rounds) + 1
        spec = session.current_spec
        agents = list(session.config.agents)
        self._events.emit(RoundStarting(round_number=round_number))
        logger.info("Starting round %d with %d agents", round_number, len(agents))

        rnd = DebateRound(number=round_number, spec_version=spec, started_at=_now())

        results = await asyncio.gather(*(self._query_agent(agent, spec) for agent in agents))
        rnd.critiques = [c for c in results if c is not None]

        rnd.consensus_reached = check_consensus(rnd.critiques, session.config.consensus_threshold)

        if not rnd.consensus_reached and session.config.synthesis_enabled and not self._aborted:
            self._events.emit(SynthesisStarting())
            refined = await self._synthesize(spec, rnd.critiques)
            if refined is not None:
                rnd.refined_spec = refined
                rnd.changes_summary = changes_summary(rnd.critiques)
                session.current_spec = refined
                self._events.emit(SynthesisComplete(refined_spec=refined))

        rnd.completed_at = _now()
        session.rounds.append(rnd)
        logger.info(
            "Round %d complete: %d/%d critiques, consensus=%s",
            round_number,
            len(rnd.critiques),
            len(agents),
            rnd.consensus_reached,
        )
        self._events.emit(RoundComplete(round=copy.deepcopy(rnd)))
        return copy.deepcopy(rnd)

    async def run_debate(self) -> DebateSession:
        """Run rounds until consensus, max rounds, or abort. Returns a snapshot."""
        session = self._session
        if session.status not in (SessionStatus.IDLE, SessionStatus.PAUSED):
            raise DebateStateError(f"Cannot run a debate that is {session.status.value}")

        session.status = SessionStatus.RUNNING
        try:
            while not self._aborted and len(session.rounds) < session.config.max_rounds:
                rnd = await self.run_round()
                if rnd is None:
                    break
                if rnd.consensus_reached:
                    session.consensus_reached = True
                    break

            session.status = SessionStatus.PAUSED if self._aborted else SessionStatus.COMPLETED
            session.completed_at = _now()
        except Exception as exc:
            logger.exception("Debate %s failed", session.id)
            session.status = SessionStatus.FAILED
            session.error = str(exc) or type(exc).__name__
            session.completed_at = _now()
            self._events.emit(DebateError(message=session.error))
            return self.session

        logger.info(
            "Debate %s %s after %d rounds (consensus=%s)",
            session.id,
            session.status.value,
            len(session.rounds),
            session.consensus_reached,
        )
        self._events.emit(DebateComplete(session=self.session))
        return self.session

    def abort(self) -> None:
        """Stop dispatching new work. Calls already in flight finish normally."""
        self._aborted = True
        self._session.status = SessionStatus.PAUSED
        logger.info("Debate %s aborted", self._session.id)

    async def resume(self) -> DebateSession:
        if self._session.status is not SessionStatus.PAUSED:
            raise DebateStateError(
                f"Only a paused debate can be resumed, this one is {self._session.status.value}"
            )
        self._aborted = False
        return await self.run_debate()

    def accept_spec(self) -> DebateSession:
        """Mark the debate completed with the current spec, whatever the consensus."""
        self._session.status = SessionStatus.COMPLETED
        self._session.completed_at = _now()
        return self.session
