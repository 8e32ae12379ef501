"""Turn a backend's raw critique text into structured fields. Never raises."""

import json
import logging
import re
from dataclasses import dataclass, field

from spec_debate.models import CritiqueIssue, IssueSeverity, Persona, Verdict

logger = logging.getLogger(__name__)

# Whole text is one fenced block, any language label
_ENCLOSING_FENCE = re.compile(r"```[\w+-]*[ \t]*\n([\s\S]*?)\n?[ \t]*```")

# Greedy: from the first fence to the last one
_JSON_BLOCK = re.compile(r"```(?:json)?[ \t]*\n?([\s\S]*)```")

PARSE_FAILURE_SUMMARY = "parse failure"


@dataclass
class ParsedCritique:
    verdict: Verdict
    summary: str
    issues: list[CritiqueIssue] = field(default_factory=list)
    raw_response: str = ""


def strip_fence(text: str, pattern: re.Pattern[str] = _ENCLOSING_FENCE) -> str:
    """Unwrap text that is entirely one fenced block; anything else is only trimmed.

    Fenced blocks embedded in surrounding text are left alone.
    """
    stripped = text.strip()
    match = pattern.fullmatch(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def _decode_payload(raw_response: str) -> object:
    """JSON from the whole response, else from its fenced block."""
    text = raw_response.strip()
    try:
        return json.loads(text)
    except ValueError:
        match = _JSON_BLOCK.search(text)
        if match is None:
            raise
    return json.loads(match.group(1).strip())


def _coerce_verdict(value: object) -> Verdict:
    try:
        return Verdict(value)
    except ValueError:
        return Verdict.NEEDS_CHANGES


def _coerce_severity(value: object) -> IssueSeverity:
    try:
        return IssueSeverity(value)
    except ValueError:
        return IssueSeverity.MINOR


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def _parse_issue(raw: object) -> CritiqueIssue:
    if not isinstance(raw, dict):
        # A bare string in the issues list still carries information
        return CritiqueIssue(
            severity=IssueSeverity.MINOR,
            title="Untitled issue",
            description=str(raw),
        )
    return CritiqueIssue(
        severity=_coerce_severity(raw.get("severity")),
        title=str(raw.get("title") or "Untitled issue"),
        description=str(raw.get("description") or ""),
        section=_optional_text(raw.get("section")),
        suggestion=_optional_text(raw.get("suggestion")),
    )


def parse_critique(raw_response: str, persona: Persona) -> ParsedCritique:
    """Parse a critique response into verdict, summary and issues.

    Malformed fields fall back to defaults (verdict needs-changes, severity
    minor, placeholder text). If the payload is not a JSON object at all, a
    single major "Parse Error" issue is returned instead.
    """
    try:
        data = _decode_payload(raw_response)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        raw_issues = data.get("issues") or []
        if not isinstance(raw_issues, list):
            raise ValueError(f"'issues' must be a list, got {type(raw_issues).__name__}")
    except (ValueError, RecursionError) as exc:
        # json.JSONDecodeError is a ValueError subclass; deep nesting overflows the decoder
        logger.warning("Could not parse %s critique: %s", persona.value, exc)
        return ParsedCritique(
            verdict=Verdict.NEEDS_CHANGES,
            summary=PARSE_FAILURE_SUMMARY,
            issues=[
                CritiqueIssue(
                    severity=IssueSeverity.MAJOR,
                    title="Parse Error",
                    description=f"Could not parse agent response: {exc}",
                )
            ],
            raw_response=raw_response,
        )

    return ParsedCritique(
        verdict=_coerce_verdict(data.get("verdict")),
        summary=str(data.get("summary") or "No summary provided"),
        issues=[_parse_issue(item) for item in raw_issues],
        raw_response=raw_response,
    )
