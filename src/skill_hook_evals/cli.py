"""CLI entry point for the skill hook evaluation harness."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import (
    BASELINE_DATASET,
    EARLY_EXIT_TIMEOUT_SEC,
    EXEC_TIMEOUT_SLACK_SEC,
    HARD_DATASET,
    HEAD_TO_HEAD_CONFIGS,
    LOCAL_SETTINGS_JSON,
    RESULTS_DIR,
    SKILLS_DIR,
    validate_env,
)
from .errors import ConfigurationError, ProvisionError
from .eval_activation.metrics import TestCase
from .hooks.catalog import HOOK_CONFIGS, list_config_ids

console = Console()

# Two quick cases for checking a sandbox end to end.
DEBUG_CASES = [
    TestCase(
        id="act-001",
        query="How do I use $state in Svelte 5?",
        expected_skill="svelte-runes",
        description="test runes",
    ),
    TestCase(
        id="act-002",
        query="How do I set up SvelteKit routing with nested layouts?",
        expected_skill="sveltekit-structure",
        description="test structure",
    ),
]

config_choice = click.Choice(list_config_ids())


def _preflight() -> None:
    """Abort before any sandbox exists if credentials are missing."""
    try:
        validate_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def _create_client():
    from .sandbox.provisioner import create_client

    try:
        return create_client()
    except ProvisionError as e:
        raise click.ClickException(str(e)) from e


def _load_cases(dataset: Path) -> list[TestCase]:
    from .eval_activation.runner import load_activation_dataset
    from .skills.loader import find_unknown_skills, load_all_skills

    cases = load_activation_dataset(dataset)
    unknown = find_unknown_skills(cases, load_all_skills(SKILLS_DIR))
    if unknown:
        console.print(
            f"[yellow]Warning: no local skill for {', '.join(unknown)} in {SKILLS_DIR}[/yellow]"
        )
    return cases


def _timeout_options(f):
    f = click.option(
        "--exec-slack",
        type=int,
        default=EXEC_TIMEOUT_SLACK_SEC,
        show_default=True,
        help="Extra seconds the exec call waits beyond the monitor timeout.",
    )(f)
    f = click.option(
        "--monitor-timeout",
        type=int,
        default=EARLY_EXIT_TIMEOUT_SEC,
        show_default=True,
        help="Seconds before the monitor script kills claude.",
    )(f)
    return f


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """Skill activation hook harness.

    Installs each hook configuration into its own Daytona sandbox, runs a
    battery of prompts through claude and compares how often the expected
    skill gets activated.
    """


@cli.command("run")
@click.option(
    "--config",
    "config_ids",
    multiple=True,
    type=config_choice,
    help="Hook config(s) to test. Defaults to all of them.",
)
@click.option(
    "--dataset",
    type=click.Path(exists=True, path_type=Path),
    default=BASELINE_DATASET,
    show_default=True,
    help="Path to JSONL dataset file.",
)
@click.option(
    "--parallel",
    type=click.IntRange(min=1),
    default=1,
    help="Number of configurations to run at once (one sandbox each).",
)
@_timeout_options
@click.option(
    "--results-dir",
    type=click.Path(path_type=Path),
    default=RESULTS_DIR,
    show_default=True,
    help="Directory for JSON results.",
)
def run(
    config_ids: tuple[str, ...],
    dataset: Path,
    parallel: int,
    monitor_timeout: int,
    exec_slack: int,
    results_dir: Path,
):
    """Compare hook configurations on the baseline battery."""
    from .config import ANTHROPIC_API_KEY
    from .eval_activation.runner import run_comparison
    from .reporting.results import generate_report

    _preflight()
    ids = list(config_ids) or list_config_ids()
    cases = _load_cases(dataset)

    console.print("[bold]Skill activation harness starting[/bold]")
    console.print(f"Configs to test: {', '.join(ids)}")
    console.print(f"Test cases: {len(cases)} ({dataset})")

    daytona = _create_client()
    results = run_comparison(
        daytona,
        ids,
        cases,
        ANTHROPIC_API_KEY,
        max_workers=parallel,
        save_dir=results_dir,
        monitor_timeout=monitor_timeout,
        exec_slack=exec_slack,
    )

    if not results:
        console.print("[red]No results to report[/red]")
        return

    generate_report(results, results_dir)


@cli.command("head-to-head")
@click.option(
    "--config",
    "config_ids",
    multiple=True,
    type=config_choice,
    help="Exactly two hook configs. Defaults to forced-eval vs llm-eval.",
)
@click.option(
    "--dataset",
    type=click.Path(exists=True, path_type=Path),
    default=HARD_DATASET,
    show_default=True,
    help="Path to JSONL dataset file.",
)
@click.option(
    "--parallel",
    is_flag=True,
    help="Run both configurations at the same time.",
)
@_timeout_options
@click.option(
    "--results-dir",
    type=click.Path(path_type=Path),
    default=RESULTS_DIR,
    show_default=True,
    help="Directory for JSON results.",
)
def head_to_head(
    config_ids: tuple[str, ...],
    dataset: Path,
    parallel: bool,
    monitor_timeout: int,
    exec_slack: int,
    results_dir: Path,
):
    """Paired comparison of two configurations on the hard battery.

    Adds a negative-case analysis and a case-by-case win/loss diff to the
    usual report.
    """
    from .config import ANTHROPIC_API_KEY
    from .eval_activation.runner import run_comparison
    from .reporting.results import (
        generate_report,
        print_negative_analysis,
        print_paired_diff,
    )

    ids = list(config_ids) or list(HEAD_TO_HEAD_CONFIGS)
    if len(ids) != 2:
        raise click.BadParameter("head-to-head needs exactly two --config values")

    _preflight()
    cases = _load_cases(dataset)

    console.print(f"[bold]Head-to-head comparison: {ids[0]} vs {ids[1]}[/bold]")
    console.print(f"Test cases: {len(cases)} ({dataset})")

    daytona = _create_client()
    results = run_comparison(
        daytona,
        ids,
        cases,
        ANTHROPIC_API_KEY,
        max_workers=2 if parallel else 1,
        monitor_timeout=monitor_timeout,
        exec_slack=exec_slack,
    )

    if not results:
        console.print("[red]No results to report[/red]")
        return

    generate_report(results, results_dir)
    print_negative_analysis(results)
    if len(results) == 2:
        print_paired_diff(results[0], results[1], cases)
    console.print("\n[bold]Head-to-head complete[/bold]")


@cli.command()
@click.argument("config_id", type=config_choice, default="none")
@_timeout_options
def debug(config_id: str, monitor_timeout: int, exec_slack: int):
    """Provision one sandbox, show its state and run two smoke tests."""
    from .config import ANTHROPIC_API_KEY, SANDBOX_CLAUDE_DIR
    from .eval_activation.runner import run_test
    from .hooks.catalog import get_hook_config
    from .sandbox.provisioner import provisioned_sandbox

    _preflight()
    config = get_hook_config(config_id)
    console.print(
        f"Debug: config={config.id} ({config.label}), timeout={monitor_timeout}s"
    )

    daytona = _create_client()
    console.print("Creating sandbox...")
    try:
        with provisioned_sandbox(daytona, config, ANTHROPIC_API_KEY) as sandbox:
            state = sandbox.process.exec(
                f"ls -la {SANDBOX_CLAUDE_DIR}/skills/ && cat {SANDBOX_CLAUDE_DIR}/settings.json"
            )
            console.print("[bold]--- SANDBOX STATE ---[/bold]")
            console.print(escape(state.result or ""))
            console.print("[bold]--- END ---[/bold]")

            for tc in DEBUG_CASES:
                console.print(f"\n--- Running: {tc.id} ({escape(tc.query[:50])}...) ---")
                result = run_test(
                    sandbox,
                    tc,
                    config.id,
                    monitor_timeout=monitor_timeout,
                    exec_slack=exec_slack,
                )
                console.print(f"  activated: {result.activated}")
                console.print(f"  correct: {result.correct}")
                console.print(f"  skills: {', '.join(result.activated_skills) or '(none)'}")
                console.print(f"  latency: {result.latency_ms}ms")
                if result.error:
                    console.print(f"  [red]error: {escape(result.error)}[/red]")
            console.print("\nTearing down...")
    except ProvisionError as e:
        raise click.ClickException(str(e)) from e
    console.print("Done")


@cli.command("list-configs")
def list_configs():
    """List the hook configurations in the catalog."""
    table = Table(title="Hook Configurations")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Label")
    table.add_column("Hook", style="yellow")
    table.add_column("Extra Files", style="dim", overflow="fold")

    for config in HOOK_CONFIGS:
        table.add_row(
            config.id,
            config.label,
            config.hook_kind,
            ", ".join(f.remote_path for f in config.extra_files) or "-",
        )

    console.print(table)


@cli.command("list-skills")
@click.option(
    "--skills-dir",
    type=click.Path(path_type=Path),
    default=SKILLS_DIR,
    show_default=True,
    help="Local skills directory that gets uploaded to each sandbox.",
)
def list_skills(skills_dir: Path):
    """List the local skills that will be installed in each sandbox."""
    from .skills.loader import load_all_skills

    skills = load_all_skills(skills_dir)
    if not skills:
        console.print(f"[yellow]No skills found in {skills_dir}[/yellow]")
        return

    table = Table(title="Local Skills")
    table.add_column("Name", style="cyan")
    table.add_column("Directory", style="dim")
    table.add_column("Lines", style="yellow", justify="right")

    for s in skills:
        table.add_row(s.name, s.directory_name, str(s.line_count))

    console.print(table)


@cli.command("show-hook")
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(path_type=Path),
    default=LOCAL_SETTINGS_JSON,
    show_default=True,
    help="settings.json to inspect.",
)
def show_hook(settings_path: Path):
    """Identify which hook configuration a local settings.json installs."""
    from .hooks.catalog import identify_hook_config

    if not settings_path.exists():
        raise click.ClickException(f"No settings file found at {settings_path}")

    with open(settings_path, encoding="utf-8") as f:
        try:
            settings = json.load(f)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"{settings_path} is not valid JSON: {e}") from e

    try:
        config_id = identify_hook_config(settings)
    except ValueError as e:
        raise click.ClickException(f"{settings_path}: {e}") from e
    if config_id is None:
        console.print("Hook type: [yellow]CUSTOM[/yellow] (not in the catalog)")
    elif config_id == "none":
        console.print("Hook type: NONE (no hooks configured)")
    else:
        console.print(f"Hook type: [green]{config_id}[/green]")

    hooks = settings.get("hooks")
    if hooks:
        console.print("\nFull hooks configuration:\n")
        console.print_json(data=hooks)
