"""Click CLI: loads config, builds backends, runs and manages debate sessions."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, build_debate_config, load_config, parse_agent
from spec_debate.events import CritiqueComplete, RoundComplete, RoundStarting, SynthesisStarting
from spec_debate.healthcheck import run_health_checks
from spec_debate.models import AgentSpec, ConfigError, DebateSession, SessionStatus
from spec_debate.orchestrator import DebateOrchestrator
from spec_debate.output import print_round_summary, print_session, save_transcript
from spec_debate.personas import PERSONA_DESCRIPTIONS, PERSONA_LABELS
from spec_debate.providers.base import ProviderRegistry
from spec_debate.providers.factory import build_registry
from spec_debate.specfile import read_spec, write_spec
from spec_debate.store import DebateStore

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _load_config_or_exit() -> AppConfig:
    try:
        return load_config()
    except (FileNotFoundError, ConfigError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)


def parse_agents_arg(value: str) -> list[AgentSpec]:
    """Parse "backend:persona[:model],..." into agent specs."""
    agents: list[AgentSpec] = []
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":", 2)
        if len(parts) < 2:
            raise ConfigError(f"Agent '{entry}' must look like backend:persona[:model]")
        raw = {"backend": parts[0], "persona": parts[1]}
        if len(parts) == 3:
            raw["model"] = parts[2]
        agents.append(parse_agent(raw))
    return agents


def _agents_from_meta(meta_agents: object) -> list[AgentSpec]:
    if isinstance(meta_agents, str):
        return parse_agents_arg(meta_agents)
    if isinstance(meta_agents, list):
        return [parse_agent(a) for a in meta_agents]
    raise ConfigError(f"Frontmatter 'agents' must be a string or list, got {type(meta_agents).__name__}")


def task_id_for(task_file: Path, owner_dir: Path) -> str:
    """Task id is the task file path relative to the owner directory, posix style."""
    try:
        return task_file.resolve().relative_to(owner_dir.resolve()).as_posix()
    except ValueError:
        return task_file.as_posix()


def _check_and_filter_backends(registry: ProviderRegistry, confirm: bool = True) -> None:
    """Run health checks and print results. Exits if no backend passes."""
    console.print("\n[bold]Checking backends...[/bold]")
    results = asyncio.run(run_health_checks(registry))

    failed = 0
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
            failed += 1

    if failed == len(results):
        console.print("\n[bold red]Error:[/bold red] No backends passed the health check.")
        sys.exit(1)
    if failed and confirm:
        # Failing agents are downgraded to "Agent Error" critiques during the debate
        if not click.confirm("Continue anyway? Failing agents will report errors.", default=True):
            sys.exit(0)
    console.print()


async def _drive(orchestrator: DebateOrchestrator, resume: bool) -> DebateSession:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting debate...", total=None)

        def on_round_start(event: RoundStarting) -> None:
            progress.update(task, description=f"Round {event.round_number}: collecting critiques...")

        def on_critique(event: CritiqueComplete) -> None:
            c = event.critique
            progress.print(f"  {c.backend}/{c.persona.value}: {c.verdict.value} ({len(c.issues)} issues)")

        def on_synthesis(event: SynthesisStarting) -> None:
            progress.update(task, description="Synthesizing revised spec...")

        def on_round_complete(event: RoundComplete) -> None:
            rnd = event.round
            progress.print(
                f"[green]OK[/green] Round {rnd.number} complete "
                f"({len(rnd.critiques)} critiques, consensus {'yes' if rnd.consensus_reached else 'no'})"
            )

        orchestrator.subscribe(RoundStarting, on_round_start)
        orchestrator.subscribe(CritiqueComplete, on_critique)
        orchestrator.subscribe(SynthesisStarting, on_synthesis)
        orchestrator.subscribe(RoundComplete, on_round_complete)

        if resume:
            return await orchestrator.resume()
        return await orchestrator.run_debate()


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(verbose: bool) -> None:
    """Spec Debate -- multi-persona adversarial review of task specs.

    \b
    Examples:
      spec-debate run tasks/my-feature.md
      spec-debate run tasks/my-feature.md --rounds 2 --threshold 1.0
      spec-debate run tasks/my-feature.md --agents claude:security,openai:qa
      spec-debate status tasks/my-feature.md
      spec-debate accept tasks/my-feature.md
      spec-debate list
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)


_owner_option = click.option(
    "--owner-dir",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Project directory that owns the debate records (default: cwd)",
)


@main.command()
@click.argument("task_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_owner_option
@click.option("--rounds", default=None, type=int, help="Maximum debate rounds (default: from config)")
@click.option("--threshold", default=None, type=float, help="Fraction of approvals needed (default: from config)")
@click.option("--agents", default=None, help="Comma-separated backend:persona[:model] list")
@click.option("--no-synthesis", is_flag=True, default=False, help="Do not revise the spec between rounds")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def run(
    task_file: Path,
    owner_dir: Path,
    rounds: int | None,
    threshold: float | None,
    agents: str | None,
    no_synthesis: bool,
    skip_health_check: bool,
) -> None:
    """Debate TASK_FILE, resuming a paused debate for it if one exists.

    Precedence for settings: CLI flag > task frontmatter > config default.
    """
    config = _load_config_or_exit()
    store = DebateStore(config.defaults.store_dir)
    task_id = task_id_for(task_file, owner_dir)

    registry = build_registry(config)
    if not registry.names():
        console.print("[bold red]Error:[/bold red] No backends available. Check API keys in .env.")
        sys.exit(1)

    existing = store.load(owner_dir, task_id)
    if existing is not None and existing.status is SessionStatus.FAILED:
        console.print(
            f"[bold red]Error:[/bold red] Previous debate failed: {existing.error}. "
            f"Run 'spec-debate discard {task_file}' to start over."
        )
        sys.exit(1)

    if existing is not None and existing.status is not SessionStatus.COMPLETED:
        orchestrator = DebateOrchestrator.from_session(existing, registry)
        resume = orchestrator.session.status is SessionStatus.PAUSED
        console.print(f"Resuming debate {existing.id} after {len(existing.rounds)} rounds")
    else:
        spec_text, meta = read_spec(task_file)
        try:
            debate_config = build_debate_config(
                config,
                agents=(
                    parse_agents_arg(agents) if agents is not None
                    else _agents_from_meta(meta["agents"]) if "agents" in meta
                    else None
                ),
                max_rounds=(
                    rounds if rounds is not None
                    else int(meta["rounds"]) if "rounds" in meta
                    else None
                ),
                consensus_threshold=(
                    threshold if threshold is not None
                    else float(meta["threshold"]) if "threshold" in meta
                    else None
                ),
                synthesis_enabled=(
                    False if no_synthesis
                    else bool(meta["synthesis"]) if "synthesis" in meta
                    else None
                ),
            )
        except ConfigError as exc:
            raise click.BadParameter(str(exc)) from exc
        orchestrator = DebateOrchestrator(task_id, spec_text, debate_config, registry)
        resume = False

    missing = sorted({a.backend for a in orchestrator.session.config.agents} - set(registry.names()))
    if missing:
        console.print(f"[yellow]Warning:[/yellow] no API key for {', '.join(missing)}; those agents will report errors")

    if not skip_health_check:
        _check_and_filter_backends(registry)

    # Persist after every round so an interrupted debate can be resumed
    orchestrator.subscribe(RoundComplete, lambda _event: store.save(owner_dir, orchestrator.session))
    store.save(owner_dir, orchestrator.session)

    cfg = orchestrator.session.config
    console.print(
        f"\n[bold cyan]Spec Debate[/bold cyan] — {task_id}: {len(cfg.agents)} agents, "
        f"up to {cfg.max_rounds} rounds, threshold {cfg.consensus_threshold:.2f}\n"
    )

    try:
        session = asyncio.run(_drive(orchestrator, resume))
    except KeyboardInterrupt:
        store.save(owner_dir, orchestrator.session)
        console.print("\n[yellow]Interrupted.[/yellow] Run the same command again to resume.")
        sys.exit(130)

    store.save(owner_dir, session)

    for rnd in session.rounds:
        print_round_summary(rnd)
    print_session(session)

    if session.status is SessionStatus.FAILED:
        console.print(f"[bold red]Debate failed:[/bold red] {session.error}")
        sys.exit(1)
    console.print(
        f"\nAccept the revised spec with [bold]spec-debate accept {task_file}[/bold] "
        f"or drop it with [bold]spec-debate discard {task_file}[/bold]."
    )


@main.command()
@click.argument("task_file", type=click.Path(dir_okay=False, path_type=Path))
@_owner_option
@click.option("--show-spec", is_flag=True, default=False, help="Print the current spec too")
def status(task_file: Path, owner_dir: Path, show_spec: bool) -> None:
    """Show the stored debate for TASK_FILE."""
    config = _load_config_or_exit()
    session = DebateStore(config.defaults.store_dir).load(owner_dir, task_id_for(task_file, owner_dir))
    if session is None:
        console.print(f"No debate for {task_file}.")
        return
    print_session(session, show_spec=show_spec)


@main.command("list")
@_owner_option
def list_debates(owner_dir: Path) -> None:
    """List debates that are not completed."""
    config = _load_config_or_exit()
    sessions = DebateStore(config.defaults.store_dir).list_active(owner_dir)
    if not sessions:
        click.echo("No active debates.")
        return
    for session in sessions:
        click.echo(
            f"{session.task_id}\t{session.status.value}\t"
            f"{len(session.rounds)}/{session.config.max_rounds} rounds\t{session.id}"
        )


@main.command()
@click.argument("task_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_owner_option
def accept(task_file: Path, owner_dir: Path) -> None:
    """Write the debated spec back into TASK_FILE and drop the debate record."""
    config = _load_config_or_exit()
    store = DebateStore(config.defaults.store_dir)
    task_id = task_id_for(task_file, owner_dir)
    stored = store.load(owner_dir, task_id)
    if stored is None:
        console.print(f"[bold red]Error:[/bold red] No debate for {task_file}.")
        sys.exit(1)

    session = DebateOrchestrator.from_session(stored, ProviderRegistry()).accept_spec()
    write_spec(task_file, session.current_spec)
    store.delete(owner_dir, task_id)
    click.echo(f"Accepted: {task_file} updated after {len(session.rounds)} rounds.")


@main.command()
@click.argument("task_file", type=click.Path(dir_okay=False, path_type=Path))
@_owner_option
def discard(task_file: Path, owner_dir: Path) -> None:
    """Delete the debate record for TASK_FILE without touching the file."""
    config = _load_config_or_exit()
    removed = DebateStore(config.defaults.store_dir).delete(owner_dir, task_id_for(task_file, owner_dir))
    click.echo("Discarded." if removed else f"No debate for {task_file}.")


@main.command()
@click.argument("task_file", type=click.Path(dir_okay=False, path_type=Path))
@_owner_option
@click.option("--output", "output_dir", default="output", type=click.Path(file_okay=False, path_type=Path),
              help="Directory for the transcript (default: ./output)")
def export(task_file: Path, owner_dir: Path, output_dir: Path) -> None:
    """Save the debate for TASK_FILE as a markdown transcript."""
    config = _load_config_or_exit()
    session = DebateStore(config.defaults.store_dir).load(owner_dir, task_id_for(task_file, owner_dir))
    if session is None:
        console.print(f"[bold red]Error:[/bold red] No debate for {task_file}.")
        sys.exit(1)
    click.echo(f"Saved to: {save_transcript(session, output_dir)}")


@main.command()
def personas() -> None:
    """List the reviewer personas."""
    for persona, label in PERSONA_LABELS.items():
        click.echo(f"{persona.value:<12} {label:<12} {PERSONA_DESCRIPTIONS[persona]}")


@main.command()
def check() -> None:
    """Ping every backend that has an API key."""
    config = _load_config_or_exit()
    registry = build_registry(config)
    if not registry.names():
        console.print("[bold red]Error:[/bold red] No backends available. Check API keys in .env.")
        sys.exit(1)
    _check_and_filter_backends(registry, confirm=False)


if __name__ == "__main__":
    main()
