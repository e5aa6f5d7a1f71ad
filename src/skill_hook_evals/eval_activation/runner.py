"""Run activation test cases inside provisioned sandboxes."""

from __future__ import annotations

import json
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from ..config import (
    EARLY_EXIT_TIMEOUT_SEC,
    EXEC_TIMEOUT_SLACK_SEC,
    HOOKS_DIR,
    MONITOR_SCRIPT_PATH,
    SKILLS_DIR,
)
from ..errors import ConfigurationError, TestExecutionError
from ..hooks.catalog import get_hook_config
from ..reporting.results import save_config_result
from ..sandbox.provisioner import provisioned_sandbox
from .metrics import ConfigResult, TestCase, TestResult, aggregate_results
from .parser import parse_skill_activations

if TYPE_CHECKING:
    from daytona import Daytona, Sandbox

console = Console()


def load_activation_dataset(dataset_path: Path) -> list[TestCase]:
    """Load test cases from a JSONL file."""
    cases = []
    with open(dataset_path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                cases.append(TestCase.from_dict(json.loads(line)))
    return cases


def result_icon(result: TestResult) -> str:
    """One-glance status: Y/~/N for positive cases, TN/FP for negatives."""
    if result.is_negative:
        return "FP" if result.activated else "TN"
    if result.correct:
        return "Y"
    if result.activated:
        return "~"
    return "N"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def run_test(
    sandbox: Sandbox,
    test_case: TestCase,
    hook_config: str,
    monitor_timeout: int = EARLY_EXIT_TIMEOUT_SEC,
    exec_slack: int = EXEC_TIMEOUT_SLACK_SEC,
) -> TestResult:
    """Run one test case through the monitor script.

    The query is uploaded as a file so arbitrary characters never pass
    through a shell. The monitor kills claude after monitor_timeout seconds
    and prints whatever was captured; the exec call itself waits
    monitor_timeout + exec_slack so it never gives up first.

    Never raises for transport, timeout or exit-code failures; those are
    recorded in the returned result's error field.
    """
    query_file = f"/tmp/query-{uuid.uuid4().hex}.txt"
    command = f'{MONITOR_SCRIPT_PATH} "{query_file}" {monitor_timeout}'

    start = time.monotonic()
    try:
        sandbox.fs.upload_file(test_case.query.encode("utf-8"), query_file)
        start = time.monotonic()

        response = sandbox.process.exec(command, timeout=monitor_timeout + exec_slack)
        latency_ms = _elapsed_ms(start)

        if response.exit_code != 0:
            raise TestExecutionError(
                f"Monitor exited with {response.exit_code}: {(response.result or '').strip()}"
            )

        skills = parse_skill_activations(response.result or "")
        return TestResult.from_activations(test_case, hook_config, skills, latency_ms)

    except Exception as e:
        return TestResult.from_error(
            test_case, hook_config, str(e) or type(e).__name__, _elapsed_ms(start)
        )


def run_config(
    daytona: Daytona,
    config_id: str,
    test_cases: list[TestCase],
    api_key: str,
    monitor_timeout: int = EARLY_EXIT_TIMEOUT_SEC,
    exec_slack: int = EXEC_TIMEOUT_SLACK_SEC,
    skills_dir: Path = SKILLS_DIR,
    hooks_dir: Path = HOOKS_DIR,
) -> ConfigResult:
    """Provision a sandbox for one configuration and run every test case in it.

    Test cases run one at a time; the sandbox is deleted afterwards no
    matter how the run ends.

    Raises:
        ConfigNotFound: Unknown config_id.
        ProvisionError: The sandbox could not be created or set up.
    """
    config = get_hook_config(config_id)
    console.print(f"\n[bold cyan]=== Config: {config.label} ({config.id}) ===[/bold cyan]")

    results: list[TestResult] = []
    total = len(test_cases)

    with provisioned_sandbox(daytona, config, api_key, skills_dir, hooks_dir) as sandbox:
        for i, case in enumerate(test_cases):
            result = run_test(
                sandbox,
                case,
                config.id,
                monitor_timeout=monitor_timeout,
                exec_slack=exec_slack,
            )
            results.append(result)

            skills = ", ".join(result.activated_skills) or "(none)"
            line = (
                f"  [{config.id}] [{i + 1}/{total}] {case.id} "
                f"{result_icon(result)} => {skills} ({result.latency_ms}ms)"
            )
            console.print(escape(line))
            if result.error:
                console.print(f"    [red]ERROR: {escape(result.error)}[/red]")

    config_result = aggregate_results(config.id, results)
    console.print(
        f"  [bold]Summary ({config.id}):[/bold] "
        f"{config_result.correct_count}/{config_result.total_tests} correct, "
        f"{config_result.activated_count} activated, "
        f"avg {config_result.avg_latency_ms:.0f}ms"
    )
    return config_result


def run_comparison(
    daytona: Daytona,
    config_ids: list[str],
    test_cases: list[TestCase],
    api_key: str,
    max_workers: int = 1,
    save_dir: Path | None = None,
    **run_kwargs,
) -> list[ConfigResult]:
    """Run several configurations, skipping any that fail to provision.

    With max_workers > 1 configurations run concurrently, each in its own
    sandbox. Results come back in config_ids order either way; configurations
    that failed are left out.

    Raises:
        ConfigNotFound: Any id is unknown. Checked before a sandbox exists.
    """
    for config_id in config_ids:
        get_hook_config(config_id)

    def _run_one(config_id: str) -> ConfigResult | None:
        try:
            result = run_config(daytona, config_id, test_cases, api_key, **run_kwargs)
        except ConfigurationError:
            raise
        except Exception as e:
            console.print(f"[red]ERROR running config {config_id}: {escape(str(e))}[/red]")
            return None
        if save_dir is not None:
            try:
                save_config_result(result, save_dir)
            except OSError as e:
                console.print(
                    f"[red]ERROR saving results for {config_id}: {escape(str(e))}[/red]"
                )
        return result

    if max_workers > 1 and len(config_ids) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as ex:
            outcomes = list(ex.map(_run_one, config_ids))
    else:
        outcomes = [_run_one(config_id) for config_id in config_ids]

    return [r for r in outcomes if r is not None]
