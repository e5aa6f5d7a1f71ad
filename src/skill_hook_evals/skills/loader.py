"""Parse the local .claude/skills tree that gets installed into each sandbox."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import frontmatter

from ..eval_activation.metrics import TestCase


@dataclass
class SkillMetadata:
    """Parsed YAML frontmatter from a SKILL.md file."""

    name: str
    description: str
    directory_name: str
    file_path: Path
    line_count: int


def load_skill(skill_dir: Path) -> SkillMetadata:
    """Load a single skill's metadata from its directory.

    Raises:
        FileNotFoundError: If SKILL.md does not exist in the directory.
        ValueError: If required frontmatter fields are missing.
    """
    skill_file = skill_dir / "SKILL.md"
    if not skill_file.exists():
        raise FileNotFoundError(f"No SKILL.md found in {skill_dir}")

    raw = skill_file.read_text(encoding="utf-8")
    post = frontmatter.loads(raw)

    name = post.metadata.get("name")
    description = post.metadata.get("description")
    if not name or not description:
        raise ValueError(
            f"SKILL.md in {skill_dir} missing required frontmatter fields "
            f"(name={name!r}, description={description!r})"
        )

    return SkillMetadata(
        name=name,
        description=description,
        directory_name=skill_dir.name,
        file_path=skill_file,
        line_count=len(raw.splitlines()),
    )


def load_all_skills(skills_dir: Path) -> list[SkillMetadata]:
    """Load every skill under skills_dir, sorted by name.

    A missing skills directory yields an empty list; the sandbox simply
    gets no skills bundle in that case.
    """
    if not skills_dir.is_dir():
        return []
    skills = []
    for child in sorted(skills_dir.iterdir()):
        if child.is_dir() and (child / "SKILL.md").exists():
            skills.append(load_skill(child))
    return sorted(skills, key=lambda s: s.name)


def find_unknown_skills(
    test_cases: Iterable[TestCase],
    skills: list[SkillMetadata],
) -> list[str]:
    """Expected skills that no local skill answers to, by name or directory.

    Such cases can never be scored correct, which usually means a typo in
    the dataset or the wrong project root.
    """
    known = {s.name for s in skills} | {s.directory_name for s in skills}
    unknown: list[str] = []
    for case in test_cases:
        if case.expected_skill and case.expected_skill not in known:
            if case.expected_skill not in unknown:
                unknown.append(case.expected_skill)
    return unknown
