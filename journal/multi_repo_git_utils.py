# journal/multi_repo_git_utils.py
from __future__ import annotations

import logging
import math
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Set

from standup.types import Commit
from .git_utils import run_git

logger = logging.getLogger(__name__)

GIT_DIR_NAME = ".git"
DEFAULT_MAX_DEPTH = 3
DEFAULT_FETCH_TIMEOUT = 5.0

# hash | author date | author name | ref decoration | subject
FIELD_SEPARATOR = "|"
LOG_FORMAT = "%H|%aI|%an|%d|%s"

REMOTE_PREFIX = "origin/"
TAG_PREFIX = "tag:"
_HEAD_RE = re.compile(r"HEAD -> (.+)")


def get_repository_name(repo_path: Path) -> str:
    return Path(repo_path).name


def discover_repositories(
    root_path: Path,
    exclude_names: Iterable[str] = (),
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[Path]:
    """
    Find git repositories under root_path.

    A repository is any directory holding a ``.git`` directory no deeper than
    max_depth levels below root_path (the ``.git`` entry itself counts as one
    level, so root_path/a/b/.git is depth 3). Repositories whose short name is
    in exclude_names are dropped.

    Returns:
        Repository paths in walk order. Any error during the walk yields [].

    Raises:
        ValueError: If root_path is empty or max_depth is negative
    """
    if root_path is None or str(root_path).strip() == "":
        raise ValueError("root_path is required")
    if max_depth < 0:
        raise ValueError(f"max_depth must be non-negative, got {max_depth}")

    root = Path(os.path.expanduser(str(root_path)))
    excluded = set(exclude_names)

    def onerror(err: OSError) -> None:
        raise err

    repos: List[Path] = []
    seen: Set[Path] = set()
    try:
        for dirpath, dirnames, _ in os.walk(root, onerror=onerror):
            current = Path(dirpath)
            depth = len(current.relative_to(root).parts)
            # a .git entry here sits at depth + 1
            if GIT_DIR_NAME in dirnames and depth + 1 <= max_depth and current not in seen:
                seen.add(current)
                repos.append(current)
            dirnames[:] = sorted(d for d in dirnames if d != GIT_DIR_NAME) if depth + 2 <= max_depth else []
    except OSError as e:
        logger.debug(f"Repository discovery under {root} failed: {e}")
        return []

    logger.debug(f"Found {len(repos)} repositories under {root}")
    if excluded:
        repos = [r for r in repos if get_repository_name(r) not in excluded]
        logger.debug(f"After exclusions: {len(repos)} repositories")
    return repos


def extract_branch_name(ref_names: str) -> Optional[str]:
    """
    Pick a branch name out of a ``%d`` ref decoration.

    "(HEAD -> main, origin/main)" -> "main"
    "(feature-x)"                 -> "feature-x"
    "(tag: v1.0, origin/main)"    -> "main"
    ""                            -> None
    """
    if not ref_names:
        return None

    cleaned = ref_names.replace("(", "").replace(")", "").strip()
    if not cleaned:
        return None

    refs = [r.strip() for r in cleaned.split(",")]

    for ref in refs:
        m = _HEAD_RE.match(ref)
        if m:
            return m.group(1)

    for ref in refs:
        if ref and not ref.startswith(REMOTE_PREFIX) and not ref.startswith(TAG_PREFIX):
            return ref

    for ref in refs:
        if ref.startswith(REMOTE_PREFIX):
            return ref[len(REMOTE_PREFIX):]

    return None


def hours_since(cutoff: datetime, now: Optional[datetime] = None) -> int:
    """
    Whole hours between cutoff and now, rounded up, as passed to
    ``git log --since="N hours ago"``. A cutoff in the future gives 0.
    """
    if not isinstance(cutoff, datetime):
        raise TypeError(f"cutoff must be a datetime, got {type(cutoff).__name__}")
    if now is None:
        now = datetime.now(cutoff.tzinfo)
    return max(0, math.ceil((now - cutoff).total_seconds() / 3600))


def parse_commit_line(line: str, repo_name: str) -> Optional[Commit]:
    """
    Parse one ``LOG_FORMAT`` record.

    Only the first four separators split fields; the subject keeps any
    separators it contains. Returns None for records that cannot be parsed.
    """
    parts = line.split(FIELD_SEPARATOR, 4)
    if len(parts) < 5:
        logger.debug(f"Skipping malformed log record in {repo_name}: {line!r}")
        return None

    commit_hash, timestamp, author, ref_names, message = parts
    try:
        authored = datetime.fromisoformat(timestamp.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Skipping record with bad timestamp in {repo_name}: {timestamp!r}")
        return None

    ref_names = ref_names.strip()
    return Commit(
        hash=commit_hash.strip(),
        author=author,
        timestamp=authored,
        message=message.strip(),
        ref_names=ref_names,
        repo_name=repo_name,
        branch=extract_branch_name(ref_names),
        is_unpushed=False,
    )


def fetch_commits_since(
    repo_path: Path,
    cutoff: datetime,
    author_filter: Optional[str] = None,
    skip_merges: bool = False,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
    now: Optional[datetime] = None,
) -> List[Commit]:
    """
    Get commits on all branches of a repository since cutoff.

    Args:
        repo_path: Path to the git repository
        cutoff: Earliest commit time, rounded up to whole hours
        author_filter: Passed to ``git log --author``
        skip_merges: Add ``--no-merges``
        timeout: Seconds before git is killed
        now: Reference time for the hour computation (defaults to now)

    Returns:
        Commits in git order (newest first), push status unset (False).
        Any failure, including a timeout, yields [].
    """
    repo_name = get_repository_name(repo_path)
    since = f"{hours_since(cutoff, now)} hours ago"

    args = ["log", "--all", f"--since={since}", f"--pretty=format:{LOG_FORMAT}"]
    if author_filter:
        args.append(f"--author={author_filter}")
    if skip_merges:
        args.append("--no-merges")

    logger.debug(f"Getting commits from {repo_name} since {since} (author={author_filter!r})")
    result = run_git(args, repo_path, timeout=timeout)

    if not result.ok:
        logger.debug(f"git log failed for {repo_name} (exit {result.returncode})")
        return []

    commits: List[Commit] = []
    for line in result.stdout.splitlines():
        if not line.strip():
            continue
        commit = parse_commit_line(line, repo_name)
        if commit is not None:
            commits.append(commit)

    logger.debug(f"Found {len(commits)} commits in {repo_name}")
    return commits


def list_local_branches(repo_path: Path, timeout: Optional[float] = None) -> List[str]:
    result = run_git(["for-each-ref", "--format=%(refname:short)", "refs/heads"], repo_path, timeout=timeout)
    if not result.ok:
        return []
    return [b.strip() for b in result.stdout.splitlines() if b.strip()]


def detect_unpushed(repo_path: Path, timeout: Optional[float] = None) -> Set[str]:
    """
    Hashes reachable from a local branch but not from ``origin/<branch>``.

    Branches without a same-named remote-tracking branch are skipped.
    Never raises; any failure yields an empty (or partial) set.
    """
    unpushed: Set[str] = set()
    repo_name = get_repository_name(repo_path)

    for branch in list_local_branches(repo_path, timeout=timeout):
        result = run_git(
            ["log", f"{REMOTE_PREFIX}{branch}..{branch}", "--pretty=format:%H"],
            repo_path,
            timeout=timeout,
        )
        if not result.ok:
            logger.debug(f"No remote counterpart for {repo_name}:{branch}, skipping")
            continue
        unpushed.update(h.strip() for h in result.stdout.splitlines() if h.strip())

    if unpushed:
        logger.debug(f"{len(unpushed)} unpushed commits in {repo_name}")
    return unpushed
