"""Configuration for credentials, paths, timeouts and sandbox layout."""

import os
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

# --- Credentials ---
# ANTHROPIC_API_KEY is forwarded into every sandbox so the claude CLI can run.
# DAYTONA_API_KEY is read by the Daytona SDK client itself.

REQUIRED_ENV_VARS = ("ANTHROPIC_API_KEY", "DAYTONA_API_KEY")

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")

# --- Paths ---
# The project under test: its .claude/skills and .claude/hooks trees are
# installed into each sandbox.
PROJECT_ROOT = Path(os.getenv("SKILL_HOOK_EVALS_PROJECT_ROOT", Path.cwd()))

SKILLS_DIR = PROJECT_ROOT / ".claude" / "skills"
HOOKS_DIR = PROJECT_ROOT / ".claude" / "hooks"
LOCAL_SETTINGS_JSON = PROJECT_ROOT / ".claude" / "settings.json"

RESULTS_DIR = Path(
    os.getenv(
        "SKILL_HOOK_EVALS_RESULTS_DIR",
        Path(__file__).parent.parent.parent / "results",
    )
)

# Datasets
DATASETS_DIR = Path(__file__).parent.parent.parent / "datasets"
ACTIVATION_DATASET_DIR = DATASETS_DIR / "activation"
BASELINE_DATASET = ACTIVATION_DATASET_DIR / "baseline.jsonl"
HARD_DATASET = ACTIVATION_DATASET_DIR / "hard.jsonl"

# --- Timeouts ---
# Hard kill bound applied by the monitor script inside the sandbox.
EARLY_EXIT_TIMEOUT_SEC = int(os.getenv("SKILL_HOOK_EVALS_MONITOR_TIMEOUT", "20"))

# Added on top of the monitor timeout for the remote exec call, so the
# harness never gives up before the monitor has printed its output.
EXEC_TIMEOUT_SLACK_SEC = int(os.getenv("SKILL_HOOK_EVALS_EXEC_SLACK", "15"))

SANDBOX_AUTO_STOP_MIN = 30

# --- Sandbox layout ---
SANDBOX_WORKDIR = "/home/daytona"
SANDBOX_CLAUDE_DIR = f"{SANDBOX_WORKDIR}/.claude"
MONITOR_SCRIPT_PATH = f"{SANDBOX_WORKDIR}/monitor-claude.sh"
LOCAL_MONITOR_SCRIPT = Path(__file__).parent / "sandbox" / "scripts" / "monitor-claude.sh"

# --- Experiments ---
# Default pair for the head-to-head comparison on the hard battery.
HEAD_TO_HEAD_CONFIGS = ("forced-eval", "llm-eval")


def validate_env() -> None:
    """Check that every required credential is present.

    Raises:
        ConfigurationError: Naming all missing variables.
    """
    missing = [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]
    if missing:
        raise ConfigurationError(
            f"Missing required env vars: {', '.join(missing)}"
        )
