"""Dataclasses and enums for the spec debate pipeline. No IO, no deps."""

from dataclasses import dataclass, field
from enum import Enum


class ConfigError(ValueError):
    """Raised when a debate configuration is out of range."""


class Persona(str, Enum):
    SECURITY = "security"
    ONCALL = "oncall"
    PM = "pm"
    PERFORMANCE = "performance"
    QA = "qa"


class IssueSeverity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
    SUGGESTION = "suggestion"

    @property
    def rank(self) -> int:
        """0 for the most severe level."""
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [
    IssueSeverity.CRITICAL,
    IssueSeverity.MAJOR,
    IssueSeverity.MINOR,
    IssueSeverity.SUGGESTION,
]


class Verdict(str, Enum):
    APPROVE = "approve"
    NEEDS_CHANGES = "needs-changes"
    REJECT = "reject"


class SessionStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class CritiqueIssue:
    severity: IssueSeverity
    title: str
    description: str
    section: str | None = None
    suggestion: str | None = None


@dataclass(frozen=True)
class Critique:
    backend: str               # "gemini", "anthropic", "cerebras", ...
    model: str | None
    persona: Persona
    verdict: Verdict
    summary: str
    issues: tuple[CritiqueIssue, ...] = ()
    raw_response: str = ""     # kept for audit
    timestamp: str = ""        # ISO-8601, UTC
    duration_sec: float | None = None


@dataclass
class DebateRound:
    number: int
    spec_version: str
    critiques: list[Critique] = field(default_factory=list)
    consensus_reached: bool = False
    refined_spec: str | None = None
    changes_summary: str | None = None
    started_at: str = ""
    completed_at: str | None = None


@dataclass(frozen=True)
class AgentSpec:
    backend: str
    persona: Persona
    model: str | None = None


@dataclass(frozen=True)
class SynthesisAgent:
    backend: str
    model: str | None = None


MAX_AGENTS = 5

DEFAULT_AGENTS = (
    AgentSpec("gemini", Persona.SECURITY, "gemini-2.0-flash"),
    AgentSpec("gemini", Persona.QA, "gemini-2.0-flash"),
    AgentSpec("cerebras", Persona.PERFORMANCE, "llama-4-scout-17b-16e-instruct"),
)


@dataclass
class DebateConfig:
    agents: list[AgentSpec] = field(default_factory=lambda: list(DEFAULT_AGENTS))
    max_rounds: int = 3
    consensus_threshold: float = 0.67
    synthesis_enabled: bool = True
    synthesis_agent: SynthesisAgent | None = None
    agent_timeout_sec: float | None = None

    def validate(self) -> None:
        """Raise ConfigError if any value is outside its allowed range."""
        if not 1 <= len(self.agents) <= MAX_AGENTS:
            raise ConfigError(f"Need 1 to {MAX_AGENTS} agents, got {len(self.agents)}")
        if self.max_rounds < 1:
            raise ConfigError(f"max_rounds must be >= 1, got {self.max_rounds}")
        if not 0 < self.consensus_threshold <= 1:
            raise ConfigError(
                f"consensus_threshold must be in (0, 1], got {self.consensus_threshold}"
            )
        if self.agent_timeout_sec is not None and self.agent_timeout_sec <= 0:
            raise ConfigError(f"agent_timeout_sec must be positive, got {self.agent_timeout_sec}")


@dataclass
class DebateSession:
    id: str
    task_id: str               # path of the task file under review
    original_spec: str
    current_spec: str
    config: DebateConfig
    rounds: list[DebateRound] = field(default_factory=list)
    status: SessionStatus = SessionStatus.IDLE
    consensus_reached: bool = False
    error: str | None = None
    started_at: str = ""
    completed_at: str | None = None
