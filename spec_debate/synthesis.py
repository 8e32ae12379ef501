"""Spec synthesis: merge critique issues into a revise prompt and summarize changes."""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from spec_debate.consensus import approval_rate
from spec_debate.models import Critique, CritiqueIssue, DebateRound, IssueSeverity, Persona
from spec_debate.parsing import strip_fence

SYNTHESIS_SYSTEM_PROMPT = (
    "You are a technical writer refining specifications based on expert feedback."
)

NO_CHANGES = "No significant changes"

_MARKDOWN_FENCE = re.compile(r"```(?:markdown|md)?[ \t]*\n([\s\S]*)\n?[ \t]*```")

_ADDRESSED = {IssueSeverity.CRITICAL, IssueSeverity.MAJOR}

_SYNTHESIS_TEMPLATE = """\
You are refining a technical specification based on multi-expert review feedback.

<original_specification>
{spec}
</original_specification>

<review_feedback>
{issues}
</review_feedback>

Your task:
1. Address all CRITICAL and MAJOR issues in the specification
2. Consider MINOR issues and incorporate where appropriate
3. Note SUGGESTIONS for future consideration (don't necessarily implement)
4. Preserve the original structure and intent of the spec
5. Add any missing sections identified in the feedback

Return ONLY the refined specification in markdown format.
Do not include explanations or commentary - just the improved spec.
The spec should be complete and ready for implementation."""


def _flatten_issues(critiques: Sequence[Critique]) -> list[tuple[Persona, CritiqueIssue]]:
    """All issues in encounter order, sorted by severity (sorted() is stable)."""
    tagged = [(c.persona, issue) for c in critiques for issue in c.issues]
    return sorted(tagged, key=lambda pair: IssueSeverity(pair[1].severity).rank)


def _format_issue(index: int, persona: Persona, issue: CritiqueIssue) -> str:
    lines = [
        f"{index}. [{IssueSeverity(issue.severity).value.upper()}] ({Persona(persona).value}): {issue.title}",
        f"   {issue.description}",
    ]
    if issue.section:
        lines.append(f"   Section: {issue.section}")
    if issue.suggestion:
        lines.append(f"   Suggestion: {issue.suggestion}")
    return "\n".join(lines)


def synthesis_prompt(current_spec: str, critiques: Sequence[Critique]) -> str:
    """Build the prompt asking the synthesizer for a revised spec."""
    issues = [
        _format_issue(i, persona, issue)
        for i, (persona, issue) in enumerate(_flatten_issues(critiques), start=1)
    ]
    return _SYNTHESIS_TEMPLATE.format(spec=current_spec, issues="\n\n".join(issues))


def changes_summary(critiques: Sequence[Critique]) -> str:
    """List critical/major issues as addressed and the rest as deferred."""
    addressed: list[str] = []
    deferred: list[str] = []
    for critique in critiques:
        for issue in critique.issues:
            severity = IssueSeverity(issue.severity)
            line = f"- [{Persona(critique.persona).value}/{severity.value}] {issue.title}"
            (addressed if severity in _ADDRESSED else deferred).append(line)

    parts: list[str] = []
    if addressed:
        parts.append("Addressed:\n" + "\n".join(addressed))
    if deferred:
        parts.append("Deferred:\n" + "\n".join(deferred))
    return "\n\n".join(parts) or NO_CHANGES


def parse_synthesis_response(raw_response: str) -> str:
    """Unwrap a reply fenced as a whole in a markdown block; otherwise return it trimmed."""
    return strip_fence(raw_response, _MARKDOWN_FENCE)


def aggregate_issues(critiques: Sequence[Critique]) -> dict[IssueSeverity, list[CritiqueIssue]]:
    """Bucket every issue by severity, most severe bucket first."""
    buckets: dict[IssueSeverity, list[CritiqueIssue]] = {s: [] for s in IssueSeverity}
    for critique in critiques:
        for issue in critique.issues:
            buckets[IssueSeverity(issue.severity)].append(issue)
    return buckets


@dataclass
class RoundStats:
    total_issues: int
    critical: int
    major: int
    minor: int
    suggestion: int
    approval_rate: float


def round_stats(rnd: DebateRound) -> RoundStats:
    buckets = aggregate_issues(rnd.critiques)
    return RoundStats(
        total_issues=sum(len(b) for b in buckets.values()),
        critical=len(buckets[IssueSeverity.CRITICAL]),
        major=len(buckets[IssueSeverity.MAJOR]),
        minor=len(buckets[IssueSeverity.MINOR]),
        suggestion=len(buckets[IssueSeverity.SUGGESTION]),
        approval_rate=approval_rate(rnd.critiques),
    )
