# journal/git_utils.py
"""
Process runner for the git executable.

Every call returns a CommandResult; spawn failures and timeouts are turned
into sentinel exit codes instead of exceptions, so callers only need to check
``result.ok``.
"""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

# Same conventions as coreutils `timeout` and POSIX shells
TIMEOUT_EXIT_CODE = 124
SPAWN_FAILURE_EXIT_CODE = 127


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of one external command.

    Attributes:
        returncode: Process exit code, or a sentinel for timeout/spawn failure
        stdout: Captured standard output (possibly partial on timeout)
        stderr: Captured standard error, diagnostic only
    """
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """Zero exit code is the only success signal."""
        return self.returncode == 0


def _to_text(data: Union[str, bytes, None]) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def run_command(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    input_text: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CommandResult:
    """
    Run an external command and capture its output.

    Args:
        cmd: Executable followed by its arguments
        cwd: Working directory for the process
        input_text: Text written to stdin, which is then closed
        timeout: Maximum seconds to wait before the process is killed

    Returns:
        CommandResult with output decoded as UTF-8, undecodable bytes replaced.
        On timeout the process is killed and the result carries
        whatever output was captured with TIMEOUT_EXIT_CODE. If the process
        cannot be spawned the result is empty with SPAWN_FAILURE_EXIT_CODE.

    Raises:
        ValueError: If cmd is empty or timeout is negative
    """
    if not cmd:
        raise ValueError("cmd must contain at least the executable")
    if timeout is not None and timeout < 0:
        raise ValueError(f"timeout must be non-negative, got {timeout}")

    kwargs = {}
    if input_text is None:
        kwargs["stdin"] = subprocess.DEVNULL
    else:
        kwargs["input"] = input_text

    try:
        proc = subprocess.run(
            list(cmd),
            cwd=str(cwd) if cwd is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            **kwargs,
        )
    except subprocess.TimeoutExpired as e:
        logger.debug(f"Command timed out after {timeout}s: {' '.join(cmd)}")
        return CommandResult(
            returncode=TIMEOUT_EXIT_CODE,
            stdout=_to_text(e.stdout),
            stderr=_to_text(e.stderr),
        )
    except OSError as e:
        logger.debug(f"Failed to spawn {cmd[0]}: {e}")
        return CommandResult(returncode=SPAWN_FAILURE_EXIT_CODE, stderr=str(e))

    if proc.returncode != 0:
        logger.debug(f"Command exited with {proc.returncode}: {' '.join(cmd)}: {proc.stderr.strip()}")

    return CommandResult(returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)


def run_git(args: List[str], repo_path: Path, timeout: Optional[float] = None) -> CommandResult:
    """Run ``git -C <repo_path> <args>``."""
    return run_command(["git", "-C", str(repo_path), *args], timeout=timeout)


def check_git_installed() -> bool:
    return run_command(["git", "--version"], timeout=5).ok


def get_git_user_name() -> Optional[str]:
    """Return the globally configured git user name, if any."""
    result = run_command(["git", "config", "user.name"], timeout=5)
    name = result.stdout.strip()
    if result.ok and name:
        return name
    return None
