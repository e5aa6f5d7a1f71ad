"""Tests for the monitored test runner and the configuration driver."""

import json

import pytest

from skill_hook_evals.config import MONITOR_SCRIPT_PATH
from skill_hook_evals.errors import ConfigNotFound, ProvisionError
from skill_hook_evals.eval_activation.metrics import TestCase, aggregate_results
from skill_hook_evals.eval_activation.runner import (
    load_activation_dataset,
    result_icon,
    run_comparison,
    run_config,
    run_test,
)
from skill_hook_evals.config import BASELINE_DATASET, HARD_DATASET
from skill_hook_evals.sandbox import provisioner

from conftest import FakeResponse


RUNES = TestCase(id="act-001", query="How do I use $state in Svelte 5?", expected_skill="svelte-runes")
STRUCTURE = TestCase(
    id="act-011",
    query="How does file-based routing work in SvelteKit?",
    expected_skill="sveltekit-structure",
)
NEGATIVE = TestCase(id="hard-016", query="How do I center a div in CSS?", expected_skill=None)


def _activation_output(skill: str) -> str:
    lines = [
        json.dumps({"type": "system", "subtype": "init"}),
        json.dumps(
            {
                "type": "assistant",
                "message": {
                    "content": [{"type": "tool_use", "name": "Skill", "input": {"skill": skill}}]
                },
            }
        ),
        '{"type":"result","subtype":"succ',  # killed mid-write
    ]
    return "\n".join(lines)


class TestRunTest:
    def test_activation_detected(self, fake_sandbox):
        fake_sandbox.process.queue.append(FakeResponse(0, _activation_output("svelte-runes")))
        result = run_test(fake_sandbox, RUNES, "forced-eval")

        assert result.activated_skills == ["svelte-runes"]
        assert result.activated is True
        assert result.correct is True
        assert result.error is None
        assert result.hook_config == "forced-eval"
        assert result.latency_ms >= 0

    def test_query_uploaded_to_unique_file(self, fake_sandbox):
        run_test(fake_sandbox, RUNES, "none")
        run_test(fake_sandbox, RUNES, "none")

        paths = list(fake_sandbox.fs.uploads)
        assert len(paths) == 2
        assert len(set(paths)) == 2
        for path in paths:
            assert path.startswith("/tmp/query-")
            assert fake_sandbox.fs.uploads[path] == RUNES.query.encode("utf-8")

    def test_command_and_exec_timeout(self, fake_sandbox):
        run_test(fake_sandbox, RUNES, "none", monitor_timeout=20, exec_slack=15)

        query_file = next(iter(fake_sandbox.fs.uploads))
        command, timeout = fake_sandbox.process.calls[0]
        assert command == f'{MONITOR_SCRIPT_PATH} "{query_file}" 20'
        assert timeout == 35

    def test_query_never_in_command(self, fake_sandbox):
        tricky = TestCase(id="x", query='say "hi"; rm -rf / $(whoami)', expected_skill="svelte-runes")
        run_test(fake_sandbox, tricky, "none")
        command, _ = fake_sandbox.process.calls[0]
        assert "whoami" not in command

    def test_timeout_becomes_error_result(self, fake_sandbox):
        fake_sandbox.process.queue.append(TimeoutError("Request timed out after 35s"))
        result = run_test(fake_sandbox, RUNES, "llm-eval")

        assert result.activated is False
        assert result.correct is False
        assert result.activated_skills == []
        assert "timed out" in result.error

    def test_nonzero_exit_becomes_error_result(self, fake_sandbox):
        fake_sandbox.process.queue.append(
            FakeResponse(1, "Error: query file not found: /tmp/query-x.txt")
        )
        result = run_test(fake_sandbox, RUNES, "simple")
        assert result.activated is False
        assert "exited with 1" in result.error

    def test_upload_failure_becomes_error_result(self, fake_sandbox):
        fake_sandbox.fs.fail_uploads = True
        result = run_test(fake_sandbox, RUNES, "simple")
        assert result.error == "upload refused"
        assert fake_sandbox.process.calls == []

    def test_exception_without_message(self, fake_sandbox):
        fake_sandbox.process.queue.append(TimeoutError())
        result = run_test(fake_sandbox, RUNES, "simple")
        assert result.error == "TimeoutError"

    def test_no_output_on_negative_case_is_correct(self, fake_sandbox):
        fake_sandbox.process.queue.append(FakeResponse(0, ""))
        result = run_test(fake_sandbox, NEGATIVE, "llm-eval")
        assert result.activated is False
        assert result.correct is True

    def test_two_case_batch(self, fake_sandbox):
        fake_sandbox.process.queue.extend(
            [
                FakeResponse(0, _activation_output("svelte-runes")),
                TimeoutError("timed out"),
            ]
        )
        results = [run_test(fake_sandbox, case, "forced-eval") for case in (RUNES, STRUCTURE)]

        assert results[0].correct is True
        assert results[1].activated is False
        assert results[1].correct is False
        assert results[1].error

        cr = aggregate_results("forced-eval", results)
        assert cr.activation_rate == pytest.approx(0.5)
        assert cr.accuracy_rate == pytest.approx(0.5)


class TestResultIcon:
    def test_icons(self, fake_sandbox):
        fake_sandbox.process.queue.extend(
            [
                FakeResponse(0, _activation_output("svelte-runes")),
                FakeResponse(0, _activation_output("sveltekit-data-flow")),
                FakeResponse(0, ""),
                FakeResponse(0, ""),
                FakeResponse(0, _activation_output("svelte-runes")),
            ]
        )
        icons = [
            result_icon(run_test(fake_sandbox, case, "none"))
            for case in (RUNES, RUNES, RUNES, NEGATIVE, NEGATIVE)
        ]
        assert icons == ["Y", "~", "N", "TN", "FP"]


class TestRunConfig:
    def test_runs_all_cases_and_tears_down(self, fake_daytona, patch_create, tmp_path):
        result = run_config(
            fake_daytona,
            "type-prompt",
            [RUNES, STRUCTURE],
            "sk-test",
            skills_dir=tmp_path / "missing-skills",
            hooks_dir=tmp_path / "missing-hooks",
        )

        assert result.hook_config == "type-prompt"
        assert result.total_tests == 2
        assert [r.test_id for r in result.results] == ["act-001", "act-011"]
        assert len(fake_daytona.created) == 1
        assert fake_daytona.deleted == fake_daytona.created

    def test_one_activation_one_timeout(self, fake_daytona, patch_create, tmp_path):
        fake_daytona.monitor_responses = [
            FakeResponse(0, _activation_output("svelte-runes")),
            TimeoutError("Request timed out after 35s"),
        ]
        result = run_config(
            fake_daytona,
            "type-prompt",
            [RUNES, STRUCTURE],
            "sk-test",
            skills_dir=tmp_path / "missing-skills",
            hooks_dir=tmp_path / "missing-hooks",
        )

        assert result.activation_rate == pytest.approx(0.5)
        assert result.accuracy_rate == pytest.approx(0.5)
        first, second = result.results
        assert first.correct is True
        assert first.error is None
        assert second.activated is False
        assert "timed out" in second.error
        assert fake_daytona.deleted == fake_daytona.created

    def test_unknown_config(self, fake_daytona, patch_create):
        with pytest.raises(ConfigNotFound):
            run_config(fake_daytona, "does-not-exist", [RUNES], "sk-test")
        assert fake_daytona.created == []


class TestRunComparison:
    def _kwargs(self, tmp_path):
        return {
            "skills_dir": tmp_path / "missing-skills",
            "hooks_dir": tmp_path / "missing-hooks",
        }

    def test_failed_config_is_skipped(self, fake_daytona, monkeypatch, tmp_path):
        calls = []

        def _create(daytona, api_key):
            calls.append(1)
            if len(calls) == 1:
                raise ProvisionError("quota exceeded")
            return daytona.create()

        monkeypatch.setattr(provisioner, "create_sandbox", _create)

        results = run_comparison(
            fake_daytona, ["none", "type-prompt"], [RUNES], "sk-test", **self._kwargs(tmp_path)
        )

        assert [r.hook_config for r in results] == ["type-prompt"]
        assert len(fake_daytona.deleted) == 1

    def test_saves_each_config(self, fake_daytona, patch_create, tmp_path):
        save_dir = tmp_path / "results"
        run_comparison(
            fake_daytona,
            ["none", "type-prompt"],
            [RUNES],
            "sk-test",
            save_dir=save_dir,
            **self._kwargs(tmp_path),
        )
        names = sorted(p.name for p in save_dir.iterdir())
        assert len(names) == 2
        assert names[0].endswith("-none.json")
        assert names[1].endswith("-type-prompt.json")

    def test_unwritable_save_dir_does_not_stop_later_configs(
        self, fake_daytona, patch_create, tmp_path
    ):
        blocker = tmp_path / "results"
        blocker.write_text("not a directory", encoding="utf-8")

        results = run_comparison(
            fake_daytona,
            ["none", "type-prompt"],
            [RUNES],
            "sk-test",
            save_dir=blocker / "sub",
            **self._kwargs(tmp_path),
        )

        assert [r.hook_config for r in results] == ["none", "type-prompt"]
        assert len(fake_daytona.created) == 2

    def test_unknown_config_aborts_before_any_sandbox(self, fake_daytona, patch_create, tmp_path):
        with pytest.raises(ConfigNotFound):
            run_comparison(
                fake_daytona, ["none", "bogus"], [RUNES], "sk-test", **self._kwargs(tmp_path)
            )
        assert fake_daytona.created == []

    def test_parallel_keeps_requested_order(self, fake_daytona, patch_create, tmp_path):
        results = run_comparison(
            fake_daytona,
            ["type-prompt", "none"],
            [RUNES, STRUCTURE],
            "sk-test",
            max_workers=2,
            **self._kwargs(tmp_path),
        )
        assert [r.hook_config for r in results] == ["type-prompt", "none"]
        assert len(fake_daytona.created) == 2
        assert len(fake_daytona.deleted) == 2


class TestDatasets:
    def test_baseline(self):
        cases = load_activation_dataset(BASELINE_DATASET)
        assert len(cases) == 22
        assert all(not c.is_negative for c in cases)

    def test_hard(self):
        cases = load_activation_dataset(HARD_DATASET)
        assert len(cases) == 24
        assert sum(1 for c in cases if c.is_negative) == 5
        assert any(c.id == "hard-011" for c in cases)

    def test_disjoint(self):
        baseline = {c.id for c in load_activation_dataset(BASELINE_DATASET)}
        hard = {c.id for c in load_activation_dataset(HARD_DATASET)}
        assert baseline.isdisjoint(hard)

    def test_blank_lines_skipped(self, tmp_path):
        path = tmp_path / "cases.jsonl"
        path.write_text(
            '\n{"id": "a", "query": "q", "expected_skill": "none"}\n\n',
            encoding="utf-8",
        )
        cases = load_activation_dataset(path)
        assert len(cases) == 1
        assert cases[0].is_negative
