"""Create, set up and tear down Daytona sandboxes for hook configuration runs.

One sandbox is created per configuration run. Setup installs the local
skills and hooks trees, the configuration's hook scripts and finally its
settings.json, so bundle extraction can never overwrite the settings.
"""

from __future__ import annotations

import io
import json
import tarfile
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from rich.console import Console
from rich.markup import escape

from ..config import (
    HOOKS_DIR,
    LOCAL_MONITOR_SCRIPT,
    MONITOR_SCRIPT_PATH,
    SANDBOX_AUTO_STOP_MIN,
    SANDBOX_CLAUDE_DIR,
    SANDBOX_WORKDIR,
    SKILLS_DIR,
)
from ..errors import ProvisionError
from ..hooks.catalog import HookConfig

if TYPE_CHECKING:
    from daytona import Daytona, Sandbox

console = Console()


def create_client() -> Daytona:
    """Build a Daytona client; credentials come from DAYTONA_API_KEY."""
    from daytona import Daytona

    try:
        return Daytona()
    except Exception as e:
        raise ProvisionError(f"Could not create Daytona client: {e}") from e


def create_sandbox(daytona: Daytona, api_key: str) -> Sandbox:
    """Create a fresh sandbox with the Anthropic key in its environment.

    Raises:
        ProvisionError: If api_key is empty or the Daytona call fails.
    """
    if not api_key:
        raise ProvisionError("ANTHROPIC_API_KEY environment variable is required")

    from daytona import CreateSandboxFromSnapshotParams

    params = CreateSandboxFromSnapshotParams(
        language="typescript",
        env_vars={"ANTHROPIC_API_KEY": api_key},
        auto_stop_interval=SANDBOX_AUTO_STOP_MIN,
    )
    try:
        return daytona.create(params)
    except Exception as e:
        raise ProvisionError(f"Sandbox creation failed: {e}") from e


def _exec(sandbox: Sandbox, command: str) -> str:
    try:
        response = sandbox.process.exec(command)
    except Exception as e:
        raise ProvisionError(f"Command failed: {command}: {e}") from e
    if response.exit_code != 0:
        raise ProvisionError(
            f"Command exited with {response.exit_code}: {command}: {response.result}"
        )
    return response.result or ""


def _upload(sandbox: Sandbox, content: bytes, remote_path: str) -> None:
    try:
        sandbox.fs.upload_file(content, remote_path)
    except Exception as e:
        raise ProvisionError(f"Upload to {remote_path} failed: {e}") from e


def pack_directory(directory: Path) -> bytes:
    """Pack a directory's contents into an in-memory tar.gz rooted at '.'."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        tar.add(str(directory), arcname=".")
    return buffer.getvalue()


def _install_bundle(sandbox: Sandbox, local_dir: Path, name: str) -> bool:
    """Upload and extract one asset tree. Returns False if it doesn't exist locally."""
    if not local_dir.is_dir():
        console.print(f"  [dim]No local {name} directory at {local_dir}, skipping[/dim]")
        return False

    remote_dir = f"{SANDBOX_CLAUDE_DIR}/{name}"
    archive = f"{name}.tar.gz"
    _upload(sandbox, pack_directory(local_dir), f"{remote_dir}/{archive}")
    _exec(sandbox, f"cd {remote_dir} && tar -xzf {archive} && rm {archive}")
    return True


def setup_sandbox(
    sandbox: Sandbox,
    config: HookConfig,
    skills_dir: Path = SKILLS_DIR,
    hooks_dir: Path = HOOKS_DIR,
) -> None:
    """Install skills, hooks, extra files and settings for one configuration.

    Raises:
        ProvisionError: If any remote step fails or an extra file is missing.
    """
    _exec(sandbox, f"mkdir -p {SANDBOX_CLAUDE_DIR}/skills {SANDBOX_CLAUDE_DIR}/hooks")

    _install_bundle(sandbox, skills_dir, "skills")
    _install_bundle(sandbox, hooks_dir, "hooks")

    for extra in config.extra_files:
        if not extra.local_path.is_file():
            raise ProvisionError(
                f"Hook script for config {config.id} not found: {extra.local_path}"
            )
        remote_path = f"{SANDBOX_WORKDIR}/{extra.remote_path}"
        _upload(sandbox, extra.local_path.read_bytes(), remote_path)
        _exec(sandbox, f'chmod +x "{remote_path}"')

    # Last, so nothing extracted above can replace it
    settings = json.dumps(config.settings, indent=2).encode("utf-8")
    _upload(sandbox, settings, f"{SANDBOX_CLAUDE_DIR}/settings.json")


def upload_monitor_script(sandbox: Sandbox, script: Path = LOCAL_MONITOR_SCRIPT) -> None:
    """Install the monitor script that runs claude under a hard timeout."""
    _upload(sandbox, script.read_bytes(), MONITOR_SCRIPT_PATH)
    _exec(sandbox, f"chmod +x {MONITOR_SCRIPT_PATH}")


def teardown_sandbox(daytona: Daytona, sandbox: Sandbox) -> None:
    daytona.delete(sandbox)


@contextmanager
def provisioned_sandbox(
    daytona: Daytona,
    config: HookConfig,
    api_key: str,
    skills_dir: Path = SKILLS_DIR,
    hooks_dir: Path = HOOKS_DIR,
) -> Iterator[Sandbox]:
    """Yield a sandbox fully set up for config, deleting it on every exit path.

    Teardown runs exactly once even if setup or the caller's body raises;
    a teardown failure is reported but does not replace the original error.
    """
    sandbox = create_sandbox(daytona, api_key)
    try:
        setup_sandbox(sandbox, config, skills_dir, hooks_dir)
        upload_monitor_script(sandbox)
        yield sandbox
    finally:
        try:
            teardown_sandbox(daytona, sandbox)
        except Exception as e:
            console.print(
                f"[red]Teardown failed for config {config.id}: {escape(str(e))}[/red]"
            )
