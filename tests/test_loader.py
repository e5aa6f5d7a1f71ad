"""Tests for the local skill tree loader."""

import pytest

from skill_hook_evals.eval_activation.metrics import TestCase
from skill_hook_evals.skills.loader import find_unknown_skills, load_all_skills, load_skill


def _write_skill(root, directory, name, description="Does things"):
    d = root / directory
    d.mkdir(parents=True)
    (d / "SKILL.md").write_text(
        f"---\nname: {name}\ndescription: {description}\n---\n\n# {name}\n\nBody line\n",
        encoding="utf-8",
    )
    return d


@pytest.fixture
def skills_dir(tmp_path):
    root = tmp_path / "skills"
    _write_skill(root, "sveltekit-structure", "sveltekit-structure")
    _write_skill(root, "svelte-runes", "svelte5-runes", "Svelte 5 runes")
    (root / "notes").mkdir()
    return root


class TestSkillLoader:
    def test_load_single_skill(self, skills_dir):
        skill = load_skill(skills_dir / "svelte-runes")
        assert skill.name == "svelte5-runes"
        assert skill.description == "Svelte 5 runes"
        assert skill.directory_name == "svelte-runes"
        assert skill.line_count == 8

    def test_load_all_sorted_by_name(self, skills_dir):
        skills = load_all_skills(skills_dir)
        assert [s.name for s in skills] == ["svelte5-runes", "sveltekit-structure"]

    def test_missing_directory(self, tmp_path):
        assert load_all_skills(tmp_path / "nope") == []

    def test_missing_skill_raises(self, skills_dir):
        with pytest.raises(FileNotFoundError):
            load_skill(skills_dir / "notes")

    def test_missing_frontmatter(self, tmp_path):
        d = tmp_path / "bad"
        d.mkdir()
        (d / "SKILL.md").write_text("# No frontmatter\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_skill(d)


class TestFindUnknownSkills:
    def test_matches_name_or_directory(self, skills_dir):
        skills = load_all_skills(skills_dir)
        cases = [
            TestCase(id="a", query="q", expected_skill="svelte-runes"),
            TestCase(id="b", query="q", expected_skill="svelte5-runes"),
            TestCase(id="c", query="q", expected_skill="sveltekit-data-flow"),
            TestCase(id="d", query="q", expected_skill="sveltekit-data-flow"),
            TestCase(id="e", query="q", expected_skill=None),
        ]
        assert find_unknown_skills(cases, skills) == ["sveltekit-data-flow"]
