"""Test cases, per-test results and per-configuration aggregates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

# How a negative case is spelled in dataset files and JSON exports.
NO_SKILL = "none"


@dataclass(frozen=True)
class TestCase:
    """A single activation prompt.

    expected_skill is None for negative cases, where the correct outcome is
    that no skill activates at all.
    """

    __test__ = False

    id: str
    query: str
    expected_skill: str | None
    description: str = ""

    @property
    def is_negative(self) -> bool:
        return self.expected_skill is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestCase:
        expected = data["expected_skill"]
        if expected == NO_SKILL or expected == "":
            expected = None
        return cls(
            id=data["id"],
            query=data["query"],
            expected_skill=expected,
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class TestResult:
    """Outcome of one test case under one hook configuration.

    Build these with from_activations() or from_error() so that activated
    and correct always agree with activated_skills.
    """

    __test__ = False

    test_id: str
    hook_config: str
    query: str
    expected_skill: str | None
    activated_skills: list[str]
    activated: bool
    correct: bool
    latency_ms: int
    error: str | None = None

    @classmethod
    def from_activations(
        cls,
        test_case: TestCase,
        hook_config: str,
        activated_skills: Iterable[str],
        latency_ms: int,
    ) -> TestResult:
        skills = sorted(set(activated_skills))
        activated = len(skills) > 0
        if test_case.is_negative:
            correct = not activated
        else:
            correct = test_case.expected_skill in skills
        return cls(
            test_id=test_case.id,
            hook_config=hook_config,
            query=test_case.query,
            expected_skill=test_case.expected_skill,
            activated_skills=skills,
            activated=activated,
            correct=correct,
            latency_ms=latency_ms,
        )

    @classmethod
    def from_error(
        cls,
        test_case: TestCase,
        hook_config: str,
        error: str,
        latency_ms: int,
    ) -> TestResult:
        return cls(
            test_id=test_case.id,
            hook_config=hook_config,
            query=test_case.query,
            expected_skill=test_case.expected_skill,
            activated_skills=[],
            activated=False,
            correct=False,
            latency_ms=latency_ms,
            error=error,
        )

    @property
    def is_negative(self) -> bool:
        return self.expected_skill is None

    @property
    def true_negative(self) -> bool:
        """Negative case where nothing activated."""
        return self.is_negative and not self.activated

    @property
    def false_positive(self) -> bool:
        """Negative case where a skill activated anyway."""
        return self.is_negative and self.activated

    @property
    def category(self) -> str:
        return self.expected_skill or NO_SKILL

    def to_dict(self) -> dict[str, Any]:
        data = {
            "test_id": self.test_id,
            "hook_config": self.hook_config,
            "query": self.query,
            "expected_skill": self.category,
            "activated_skills": list(self.activated_skills),
            "activated": self.activated,
            "correct": self.correct,
            "latency_ms": self.latency_ms,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class ConfigResult:
    """Aggregated results for one hook configuration."""

    hook_config: str
    total_tests: int
    activated_count: int
    correct_count: int
    activation_rate: float
    accuracy_rate: float
    avg_latency_ms: float
    results: list[TestResult] = field(default_factory=list)

    def result_for(self, test_id: str) -> TestResult | None:
        for r in self.results:
            if r.test_id == test_id:
                return r
        return None

    @property
    def negative_results(self) -> list[TestResult]:
        return [r for r in self.results if r.is_negative]

    def to_dict(self) -> dict[str, Any]:
        return {
            "hook_config": self.hook_config,
            "total_tests": self.total_tests,
            "activated_count": self.activated_count,
            "correct_count": self.correct_count,
            "activation_rate": self.activation_rate,
            "accuracy_rate": self.accuracy_rate,
            "avg_latency_ms": self.avg_latency_ms,
            "results": [r.to_dict() for r in self.results],
        }


def aggregate_results(hook_config: str, results: list[TestResult]) -> ConfigResult:
    """Fold a completed batch of test results into a ConfigResult."""
    total = len(results)
    activated_count = sum(1 for r in results if r.activated)
    correct_count = sum(1 for r in results if r.correct)
    avg_latency_ms = sum(r.latency_ms for r in results) / total if total else 0.0

    return ConfigResult(
        hook_config=hook_config,
        total_tests=total,
        activated_count=activated_count,
        correct_count=correct_count,
        activation_rate=activated_count / total if total else 0.0,
        accuracy_rate=correct_count / total if total else 0.0,
        avg_latency_ms=avg_latency_ms,
        results=list(results),
    )
