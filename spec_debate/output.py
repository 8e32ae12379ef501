"""Rich console output and markdown transcript export for debate sessions."""

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from spec_debate.models import Critique, DebateRound, DebateSession, Verdict
from spec_debate.personas import PERSONA_LABELS
from spec_debate.store import task_slug
from spec_debate.synthesis import round_stats

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_VERDICT_STYLES = {
    Verdict.APPROVE: "green",
    Verdict.NEEDS_CHANGES: "yellow",
    Verdict.REJECT: "red",
}


def _critique_title(critique: Critique) -> str:
    model = f" ({critique.model})" if critique.model else ""
    return f"{PERSONA_LABELS[critique.persona]} — {critique.backend}{model}"


def print_round_summary(rnd: DebateRound) -> None:
    """Print one panel per critique plus the round's issue counts."""
    stats = round_stats(rnd)
    console.print(Rule(f"[bold cyan]Round {rnd.number}[/bold cyan]"))
    for critique in rnd.critiques:
        style = _VERDICT_STYLES[critique.verdict]
        body = Text(critique.summary)
        for issue in critique.issues:
            body.append(f"\n  [{issue.severity.value}] {issue.title}", style="dim")
        subtitle = f"{critique.duration_sec:.1f}s" if critique.duration_sec is not None else None
        console.print(
            Panel(
                body,
                title=f"[bold]{_critique_title(critique)}[/bold] [{style}]{critique.verdict.value}[/{style}]",
                subtitle=subtitle,
                border_style="dim",
            )
        )
    console.print(
        Text(
            f"Approval: {stats.approval_rate:.0%} | Issues: {stats.total_issues} "
            f"(critical {stats.critical}, major {stats.major}, "
            f"minor {stats.minor}, suggestion {stats.suggestion}) | "
            f"Consensus: {'yes' if rnd.consensus_reached else 'no'}",
            style="dim",
        )
    )


def print_session(session: DebateSession, show_spec: bool = False) -> None:
    """Print the session header and a table of its rounds."""
    console.print(
        Text(
            f"{session.task_id} | {session.status.value} | "
            f"rounds {len(session.rounds)}/{session.config.max_rounds} | "
            f"consensus {'yes' if session.consensus_reached else 'no'}",
            style="bold",
        )
    )
    if session.error:
        console.print(f"[bold red]Error:[/bold red] {session.error}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Round", justify="right")
    table.add_column("Approve", justify="right")
    table.add_column("Issues", justify="right")
    table.add_column("Consensus")
    table.add_column("Refined")
    for rnd in session.rounds:
        stats = round_stats(rnd)
        table.add_row(
            str(rnd.number),
            f"{stats.approval_rate:.0%}",
            str(stats.total_issues),
            "yes" if rnd.consensus_reached else "no",
            "yes" if rnd.refined_spec else "no",
        )
    console.print(table)

    if show_spec:
        console.print(Rule("[bold green]Current spec[/bold green]"))
        console.print(Markdown(session.current_spec))


def render_markdown(session: DebateSession) -> str:
    """Full debate transcript as markdown."""
    lines: list[str] = [
        f"# Spec Debate: {session.task_id}",
        "",
        f"**Status:** {session.status.value}",
        f"**Consensus:** {'reached' if session.consensus_reached else 'not reached'}",
        f"**Rounds:** {len(session.rounds)} of {session.config.max_rounds}",
        f"**Threshold:** {session.config.consensus_threshold:.2f}",
        f"**Started:** {session.started_at}",
        f"**Completed:** {session.completed_at or '-'}",
        "",
        "---",
        "",
    ]

    for rnd in session.rounds:
        lines.append(f"## Round {rnd.number}")
        lines.append("")
        for critique in rnd.critiques:
            lines.append(f"### {_critique_title(critique)}: {critique.verdict.value}")
            lines.append("")
            lines.append(critique.summary)
            lines.append("")
            for issue in critique.issues:
                section = f" _(section: {issue.section})_" if issue.section else ""
                lines.append(f"- **[{issue.severity.value}] {issue.title}**{section}: {issue.description}")
                if issue.suggestion:
                    lines.append(f"  - Suggestion: {issue.suggestion}")
            lines.append("")
        if rnd.changes_summary:
            lines += ["### Changes", "", rnd.changes_summary, ""]

    lines += ["## Final spec", "", session.current_spec, ""]
    return "\n".join(lines)


def save_transcript(session: DebateSession, output_dir: Path) -> Path:
    """Write the transcript to output_dir and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = output_dir / f"{timestamp}_{task_slug(session.task_id)}.md"
    filepath.write_text(render_markdown(session), encoding="utf-8")
    logger.info("Transcript saved to: %s", filepath)
    return filepath
