"""Reporting utilities for hook comparison results."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..eval_activation.metrics import NO_SKILL, ConfigResult, TestCase, TestResult


console = Console()


def pct(rate: float, count: int, total: int) -> str:
    """'45% (10/22)'"""
    return f"{rate * 100:.0f}% ({count}/{total})"


def print_comparison_report(all_results: list[ConfigResult]) -> None:
    """One row per configuration: activation, accuracy and mean latency."""
    console.print("\n[bold]=== Comparison Report ===[/bold]\n")

    table = Table()
    table.add_column("Config", style="cyan", min_width=16)
    table.add_column("Activation", style="yellow", min_width=14)
    table.add_column("Correct", style="green", min_width=14)
    table.add_column("Avg Latency", justify="right", min_width=12)

    for cr in all_results:
        table.add_row(
            cr.hook_config,
            pct(cr.activation_rate, cr.activated_count, cr.total_tests),
            pct(cr.accuracy_rate, cr.correct_count, cr.total_tests),
            f"{cr.avg_latency_ms:.0f}ms",
        )

    console.print(table)


def group_by_category(
    all_results: list[ConfigResult],
) -> dict[str, dict[str, list[TestResult]]]:
    """Group every test result by expected skill, then by configuration.

    Categories and configurations keep first-seen order.
    """
    categories: dict[str, dict[str, list[TestResult]]] = {}
    for cr in all_results:
        for r in cr.results:
            categories.setdefault(r.category, {}).setdefault(cr.hook_config, []).append(r)
    return categories


def print_category_breakdown(all_results: list[ConfigResult]) -> None:
    """Each configuration's accuracy within each expected-skill category."""
    console.print("\n[bold]=== Per-Category Breakdown ===[/bold]")

    for category, by_config in group_by_category(all_results).items():
        console.print(f"\n  [cyan]{escape(category)}[/cyan]:")
        for config_id, tests in by_config.items():
            correct = sum(1 for t in tests if t.correct)
            total = len(tests)
            rate = correct / total if total else 0.0
            console.print(f"    {config_id:<16} {pct(rate, correct, total)}")


def print_negative_analysis(all_results: list[ConfigResult]) -> None:
    """True negatives vs false positives on the no-skill-expected cases."""
    console.print("\n[bold]=== Negative Case Analysis ===[/bold]")
    console.print(f"[dim](expected_skill={NO_SKILL}: correct if NO skill activated)[/dim]\n")

    for cr in all_results:
        negatives = cr.negative_results
        true_neg = sum(1 for r in negatives if r.true_negative)
        false_pos = sum(1 for r in negatives if r.false_positive)

        console.print(f"  [cyan]{cr.hook_config}[/cyan]:")
        console.print(f"    True negatives: {true_neg}/{len(negatives)}")
        console.print(f"    False positives: {false_pos}/{len(negatives)}")
        for r in negatives:
            icon = "[red]FP[/red]" if r.activated else "[green]TN[/green]"
            skills = ", ".join(r.activated_skills) or "(none)"
            console.print(f"      {icon} {r.test_id}: {escape(skills)}")


@dataclass
class PairedDiff:
    """Case-by-case comparison of two configurations on the same test cases."""

    a_config: str
    b_config: str
    a_wins: list[str] = field(default_factory=list)
    b_wins: list[str] = field(default_factory=list)
    ties: int = 0

    @property
    def compared(self) -> int:
        return len(self.a_wins) + len(self.b_wins) + self.ties


def compute_paired_diff(
    a: ConfigResult,
    b: ConfigResult,
    test_cases: list[TestCase],
) -> PairedDiff:
    """Compare correctness of a and b on each positive case in test_cases.

    Cases missing from either configuration are skipped. Negative cases are
    left to the negative analysis.
    """
    diff = PairedDiff(a_config=a.hook_config, b_config=b.hook_config)

    for tc in test_cases:
        if tc.is_negative:
            continue
        a_result = a.result_for(tc.id)
        b_result = b.result_for(tc.id)
        if a_result is None or b_result is None:
            continue

        if a_result.correct == b_result.correct:
            diff.ties += 1
        elif a_result.correct:
            diff.a_wins.append(tc.id)
        else:
            diff.b_wins.append(tc.id)

    return diff


def print_paired_diff(
    a: ConfigResult,
    b: ConfigResult,
    test_cases: list[TestCase],
) -> PairedDiff:
    """Print every case one configuration won, then the totals."""
    diff = compute_paired_diff(a, b, test_cases)
    queries = {tc.id: tc.query for tc in test_cases}

    console.print(f"\n[bold]=== Diff: {a.hook_config} vs {b.hook_config} ===[/bold]\n")
    for winner, ids in ((diff.a_config, diff.a_wins), (diff.b_config, diff.b_wins)):
        for test_id in ids:
            console.print(f'  {winner} wins: {test_id} "{escape(queries[test_id][:60])}"')

    console.print("")
    console.print(f"  {diff.a_config} wins: {len(diff.a_wins)}")
    console.print(f"  {diff.b_config} wins: {len(diff.b_wins)}")
    console.print(f"  Ties: {diff.ties}")
    return diff


def _timestamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def _write_json(data, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    return output_path


def export_comparison_json(all_results: list[ConfigResult], results_dir: Path) -> Path:
    """Write every ConfigResult of a run as one JSON array."""
    output_path = results_dir / f"{_timestamp()}-comparison.json"
    _write_json([cr.to_dict() for cr in all_results], output_path)
    console.print(f"\nFull report written to [bold]{output_path}[/bold]")
    return output_path


def save_config_result(config_result: ConfigResult, results_dir: Path) -> Path:
    """Write a single configuration's results, keyed by config id."""
    output_path = results_dir / f"{_timestamp()}-{config_result.hook_config}.json"
    _write_json(config_result.to_dict(), output_path)
    console.print(f"Config result saved to [bold]{output_path}[/bold]")
    return output_path


def generate_report(all_results: list[ConfigResult], results_dir: Path) -> Path:
    """Comparison table, per-category breakdown and the JSON record of the run."""
    print_comparison_report(all_results)
    print_category_breakdown(all_results)
    return export_comparison_json(all_results, results_dir)
