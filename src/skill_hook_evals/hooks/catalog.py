"""Catalog of hook configurations under test.

Each configuration is a `.claude/settings.json` payload plus any hook
scripts it needs installed in the sandbox before the settings take effect.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config import HOOKS_DIR
from ..errors import ConfigNotFound


@dataclass(frozen=True)
class ExtraFile:
    """A local file to install in the sandbox.

    remote_path is relative to the sandbox working directory.
    """

    local_path: Path
    remote_path: str


@dataclass(frozen=True)
class HookConfig:
    """A named hook configuration."""

    id: str
    label: str
    settings: dict[str, Any]
    extra_files: tuple[ExtraFile, ...] = field(default_factory=tuple)

    @property
    def hook_kind(self) -> str:
        """'command', 'prompt' or 'none'."""
        hooks = _prompt_submit_hooks(self.settings)
        if not hooks:
            return "none"
        return hooks[0].get("type", "command")


def _command_hook_config(config_id: str, label: str, script: str) -> HookConfig:
    remote_path = f".claude/hooks/{script}"
    return HookConfig(
        id=config_id,
        label=label,
        settings={
            "hooks": {
                "UserPromptSubmit": [
                    {"hooks": [{"type": "command", "command": remote_path}]}
                ]
            }
        },
        extra_files=(ExtraFile(local_path=HOOKS_DIR / script, remote_path=remote_path),),
    )


TYPE_PROMPT_TEXT = (
    "Evaluate if any available skills match this user prompt. For each skill "
    "in <available_skills>, determine YES/NO. If any are YES, activate them "
    "using the Skill(skill-name) tool BEFORE proceeding with implementation.\n\n"
    "CRITICAL: You MUST call Skill() tool for each matching skill. "
    "Do NOT skip to implementation."
)

HOOK_CONFIGS: tuple[HookConfig, ...] = (
    HookConfig(id="none", label="No hook (control)", settings={}),
    _command_hook_config(
        "simple",
        "Simple instruction (shell echo)",
        "skill-simple-instruction-hook.sh",
    ),
    _command_hook_config(
        "forced-eval",
        "Forced eval (shell multi-step)",
        "skill-forced-eval-hook.sh",
    ),
    _command_hook_config(
        "llm-eval",
        "LLM eval (Haiku pre-eval)",
        "skill-llm-eval-hook.sh",
    ),
    HookConfig(
        id="type-prompt",
        label="Native type:prompt hook",
        settings={
            "hooks": {
                "UserPromptSubmit": [
                    {
                        "hooks": [
                            {
                                "type": "prompt",
                                "prompt": TYPE_PROMPT_TEXT,
                                "timeout": 30,
                            }
                        ]
                    }
                ]
            }
        },
    ),
)


def list_config_ids() -> list[str]:
    """All configuration ids in catalog order."""
    return [c.id for c in HOOK_CONFIGS]


def get_hook_config(config_id: str) -> HookConfig:
    """Look up a configuration by id.

    Raises:
        ConfigNotFound: If the id is not in the catalog.
    """
    for config in HOOK_CONFIGS:
        if config.id == config_id:
            return config
    raise ConfigNotFound(config_id, list_config_ids())


def _prompt_submit_hooks(settings: dict[str, Any]) -> list[dict[str, Any]]:
    """Flatten every UserPromptSubmit hook entry in a settings document.

    Raises:
        ValueError: If the settings or their hooks section is not an object.
    """
    if not isinstance(settings, dict):
        raise ValueError(f"settings must be a JSON object, got {type(settings).__name__}")
    section = settings.get("hooks") or {}
    if not isinstance(section, dict):
        raise ValueError(f"'hooks' must be a JSON object, got {type(section).__name__}")

    groups = section.get("UserPromptSubmit")
    if not isinstance(groups, list):
        return []

    hooks = []
    for group in groups:
        entries = group.get("hooks") if isinstance(group, dict) else None
        if isinstance(entries, list):
            hooks.extend(h for h in entries if isinstance(h, dict))
    return hooks


def identify_hook_config(settings: dict[str, Any]) -> str | None:
    """Work out which catalog configuration a settings document installs.

    Returns:
        The matching config id, "none" when no prompt-submit hook is
        configured, or None for a hook that is not in the catalog.

    Raises:
        ValueError: If the settings document is not shaped like settings.json.
    """
    hooks = _prompt_submit_hooks(settings)
    if not hooks:
        return "none"

    hook = hooks[0]
    for config in HOOK_CONFIGS:
        candidates = _prompt_submit_hooks(config.settings)
        if not candidates:
            continue
        expected = candidates[0]
        if hook.get("type", "command") != expected.get("type"):
            continue
        if expected["type"] == "prompt":
            if hook.get("prompt") == expected["prompt"]:
                return config.id
            continue
        # Match on script name so ./ prefixes and absolute paths still count
        command = str(hook.get("command", ""))
        if Path(expected["command"]).name in command:
            return config.id
    return None
