"""File-backed persistence for debate sessions.

One JSON document per session at
``<owner_dir>/<base_dir>/debates/<task slug>.json``.
"""

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any

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

logger = logging.getLogger(__name__)

_TASK_EXTENSION = ".md"
_SEPARATOR_REPLACEMENT = "~"


def task_slug(task_id: str) -> str:
    """Map a task path to a filesystem-safe key.

    "tasks/my-feature.md" -> "tasks~my-feature".

    Task ids are posix paths of markdown task files relative to the owner
    directory (see cli.task_id_for) and never contain "~". Only over such ids
    is the mapping injective: "x" and "x.md" share a slug, as do "a\\b" and
    "a/b".
    """
    slug = task_id.removesuffix(_TASK_EXTENSION)
    return slug.replace("\\", _SEPARATOR_REPLACEMENT).replace("/", _SEPARATOR_REPLACEMENT)


def session_to_dict(session: DebateSession) -> dict[str, Any]:
    """Plain-JSON form of a session; enum members become their string values."""
    def _convert(value: Any) -> Any:
        if isinstance(value, dict):
            return {k: _convert(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [_convert(v) for v in value]
        if isinstance(value, (Persona, IssueSeverity, Verdict, SessionStatus)):
            return value.value
        return value

    return _convert(dataclasses.asdict(session))


def _issue_from_dict(raw: dict) -> CritiqueIssue:
    return CritiqueIssue(
        severity=IssueSeverity(raw["severity"]),
        title=raw["title"],
        description=raw["description"],
        section=raw.get("section"),
        suggestion=raw.get("suggestion"),
    )


def _critique_from_dict(raw: dict) -> Critique:
    return Critique(
        backend=raw["backend"],
        model=raw.get("model"),
        persona=Persona(raw["persona"]),
        verdict=Verdict(raw["verdict"]),
        summary=raw["summary"],
        issues=tuple(_issue_from_dict(i) for i in raw.get("issues", [])),
        raw_response=raw.get("raw_response", ""),
        timestamp=raw.get("timestamp", ""),
        duration_sec=raw.get("duration_sec"),
    )


def _round_from_dict(raw: dict) -> DebateRound:
    return DebateRound(
        number=int(raw["number"]),
        spec_version=raw["spec_version"],
        critiques=[_critique_from_dict(c) for c in raw.get("critiques", [])],
        consensus_reached=bool(raw.get("consensus_reached", False)),
        refined_spec=raw.get("refined_spec"),
        changes_summary=raw.get("changes_summary"),
        started_at=raw.get("started_at", ""),
        completed_at=raw.get("completed_at"),
    )


def _config_from_dict(raw: dict) -> DebateConfig:
    synthesis_raw = raw.get("synthesis_agent")
    return DebateConfig(
        agents=[
            AgentSpec(backend=a["backend"], persona=Persona(a["persona"]), model=a.get("model"))
            for a in raw["agents"]
        ],
        max_rounds=int(raw["max_rounds"]),
        consensus_threshold=float(raw["consensus_threshold"]),
        synthesis_enabled=bool(raw["synthesis_enabled"]),
        synthesis_agent=SynthesisAgent(**synthesis_raw) if synthesis_raw else None,
        agent_timeout_sec=raw.get("agent_timeout_sec"),
    )


def session_from_dict(raw: dict) -> DebateSession:
    """Inverse of session_to_dict. Raises KeyError/ValueError/TypeError on bad input."""
    return DebateSession(
        id=raw["id"],
        task_id=raw["task_id"],
        original_spec=raw["original_spec"],
        current_spec=raw["current_spec"],
        config=_config_from_dict(raw["config"]),
        rounds=[_round_from_dict(r) for r in raw.get("rounds", [])],
        status=SessionStatus(raw["status"]),
        consensus_reached=bool(raw.get("consensus_reached", False)),
        error=raw.get("error"),
        started_at=raw.get("started_at", ""),
        completed_at=raw.get("completed_at"),
    )


class DebateStore:
    """Save/load/delete/list debate sessions under an owner directory."""

    def __init__(self, base_dir: str = ".spec-debate") -> None:
        self._base_dir = base_dir

    def debates_dir(self, owner_dir: Path) -> Path:
        return Path(owner_dir) / self._base_dir / "debates"

    def path_for(self, owner_dir: Path, task_id: str) -> Path:
        return self.debates_dir(owner_dir) / f"{task_slug(task_id)}.json"

    def save(self, owner_dir: Path, session: DebateSession) -> Path:
        """Write the session. OSError propagates to the caller."""
        path = self.path_for(owner_dir, session.task_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(session_to_dict(session), indent=2), encoding="utf-8")
        logger.debug("Debate for %s saved to %s", session.task_id, path)
        return path

    def _read(self, path: Path) -> DebateSession | None:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return session_from_dict(raw)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring corrupt debate record %s: %s", path, exc)
            return None

    def load(self, owner_dir: Path, task_id: str) -> DebateSession | None:
        """Return the stored session, or None if missing or unreadable."""
        path = self.path_for(owner_dir, task_id)
        if not path.exists():
            return None
        return self._read(path)

    def delete(self, owner_dir: Path, task_id: str) -> bool:
        """Remove the record. False if there was none; OSError propagates."""
        path = self.path_for(owner_dir, task_id)
        if not path.exists():
            return False
        path.unlink()
        logger.debug("Debate for %s deleted", task_id)
        return True

    def exists(self, owner_dir: Path, task_id: str) -> bool:
        return self.path_for(owner_dir, task_id).exists()

    def list_active(self, owner_dir: Path) -> list[DebateSession]:
        """All readable sessions whose status is not completed, sorted by file name."""
        debates_dir = self.debates_dir(owner_dir)
        if not debates_dir.is_dir():
            return []
        sessions: list[DebateSession] = []
        for path in sorted(debates_dir.glob("*.json")):
            session = self._read(path)
            if session is not None and session.status is not SessionStatus.COMPLETED:
                sessions.append(session)
        return sessions
