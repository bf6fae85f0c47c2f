from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, Dict, Optional

import pytest


def run(cmd: list[str], *, cwd: Path, env: Optional[Dict[str, str]] = None) -> str:
    proc = subprocess.run(cmd, cwd=str(cwd), env=env, check=True, capture_output=True, text=True)
    return proc.stdout


def git_env(author: str = "Test User", date: Optional[str] = None) -> Dict[str, str]:
    env = os.environ.copy()
    env["GIT_AUTHOR_NAME"] = author
    env["GIT_AUTHOR_EMAIL"] = "test@example.com"
    env["GIT_COMMITTER_NAME"] = author
    env["GIT_COMMITTER_EMAIL"] = "test@example.com"
    if date:
        env["GIT_AUTHOR_DATE"] = date
        env["GIT_COMMITTER_DATE"] = date
    return env


def init_repo(repo: Path, branch: str = "main") -> Path:
    repo.mkdir(parents=True, exist_ok=True)
    run(["git", "init", "-q"], cwd=repo)
    run(["git", "symbolic-ref", "HEAD", f"refs/heads/{branch}"], cwd=repo)
    run(["git", "config", "user.name", "Test User"], cwd=repo)
    run(["git", "config", "user.email", "test@example.com"], cwd=repo)
    run(["git", "config", "commit.gpgsign", "false"], cwd=repo)
    return repo


def commit(repo: Path, message: str, author: str = "Test User", date: Optional[str] = None) -> str:
    marker = repo / "history.txt"
    with open(marker, "a", encoding="utf-8") as f:
        f.write(message + "\n")
    run(["git", "add", "history.txt"], cwd=repo)
    run(["git", "commit", "-q", "-m", message], cwd=repo, env=git_env(author, date))
    return run(["git", "rev-parse", "HEAD"], cwd=repo).strip()


@pytest.fixture
def fake_git(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Callable[[str], Path]:
    """Put a python script named git first on PATH; body runs as its main."""

    def install(body: str) -> Path:
        bin_dir = tmp_path / "fakebin"
        bin_dir.mkdir(exist_ok=True)
        script = bin_dir / "git"
        script.write_text(f"#!{sys.executable}\nimport sys, time\n{body}\n", encoding="utf-8")
        script.chmod(0o755)
        monkeypatch.setenv("PATH", str(bin_dir) + os.pathsep + os.environ.get("PATH", ""))
        return script

    return install
