"""
Commit aggregation service for standup-cli.

Fans out commit retrieval and unpushed-commit detection across repositories
on a bounded worker pool, joins the two results per repository, and groups
the commits by repository name.
"""

from __future__ import annotations

import locale
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set

from journal import multi_repo_git_utils as repo_git
from standup.config import StandupConfig
from standup.types import AggregationResult, Commit, CommitGroup, ScanProgress, TimeRange

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8
DEFAULT_FETCH_TIMEOUT = 5.0


def _repo_sort_key(repo_name: str):
    # case-insensitive first, exact name breaks ties; collation follows LC_COLLATE
    return (locale.strxfrm(repo_name.casefold()), locale.strxfrm(repo_name))


def build_groups(per_repo: Sequence[tuple]) -> List[CommitGroup]:
    """
    Turn (repo_name, commits) pairs into sorted CommitGroups.

    Repositories without commits are dropped. Pairs sharing a name are merged
    in input order with duplicate hashes removed.
    """
    merged: Dict[str, List[Commit]] = {}
    seen: Dict[str, Set[str]] = {}
    for repo_name, commits in per_repo:
        if not commits:
            continue
        bucket = merged.setdefault(repo_name, [])
        hashes = seen.setdefault(repo_name, set())
        for commit in commits:
            if commit.hash in hashes:
                continue
            hashes.add(commit.hash)
            bucket.append(commit)

    groups = [CommitGroup(repo_name=name, commits=tuple(commits)) for name, commits in merged.items()]
    groups.sort(key=lambda g: _repo_sort_key(g.repo_name))
    return groups


def aggregate(
    repo_paths: Sequence[Path],
    cutoff: datetime,
    author_filter: Optional[str] = None,
    skip_merges: bool = False,
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
    git_timeout: Optional[float] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    progress_callback: Optional[Callable[[ScanProgress], None]] = None,
    now: Optional[datetime] = None,
) -> AggregationResult:
    """
    Aggregate commits since cutoff across repositories.

    For each repository the commit fetch and the unpushed detection run as
    separate tasks on the pool. Push status is marked once both have finished.
    A failing repository contributes no commits; it never aborts the run.

    Args:
        repo_paths: Repositories to scan
        cutoff: Earliest commit time
        author_filter: Optional ``git log --author`` value
        skip_merges: Exclude merge commits
        fetch_timeout: Seconds before a ``git log`` call is killed
        git_timeout: Seconds before branch/remote comparison calls are killed
        max_workers: Worker pool size
        progress_callback: Called after each repository and on completion
        now: Reference time (defaults to now)

    Returns:
        AggregationResult with groups sorted by repository name
    """
    if not isinstance(cutoff, datetime):
        raise TypeError(f"cutoff must be a datetime, got {type(cutoff).__name__}")
    if max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got {max_workers}")

    until = now or datetime.now(cutoff.tzinfo)
    repos = [Path(p) for p in repo_paths]
    total_repos = len(repos)
    logger.info(f"Aggregating commits from {total_repos} repositories since {cutoff.isoformat()}")

    per_repo = []
    if repos:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            pending = [
                (
                    repo,
                    executor.submit(
                        repo_git.fetch_commits_since,
                        repo,
                        cutoff,
                        author_filter=author_filter,
                        skip_merges=skip_merges,
                        timeout=fetch_timeout,
                        now=until,
                    ),
                    executor.submit(repo_git.detect_unpushed, repo, timeout=git_timeout),
                )
                for repo in repos
            ]

            for idx, (repo, commits_future, unpushed_future) in enumerate(pending, start=1):
                # join point: both tasks for this repository are done
                commits = commits_future.result()
                unpushed = unpushed_future.result()
                marked = [replace(c, is_unpushed=c.hash in unpushed) for c in commits]
                repo_name = repo_git.get_repository_name(repo)
                per_repo.append((repo_name, marked))

                if progress_callback:
                    progress_callback(ScanProgress(
                        total_repos=total_repos,
                        current_repo=idx,
                        current_repo_name=repo_name,
                        phase="scanning",
                        message=f"Scanned {repo_name} ({len(marked)} commits)",
                    ))

    groups = build_groups(per_repo)
    result = AggregationResult(groups=tuple(groups), time_range=TimeRange(since=cutoff, until=until))

    if progress_callback:
        progress_callback(ScanProgress(
            total_repos=total_repos,
            current_repo=total_repos,
            current_repo_name="",
            phase="complete",
            message=f"Scan complete: {len(groups)} repositories with commits",
        ))

    logger.info(f"Found {result.total_commits} commits in {len(groups)} of {total_repos} repositories")
    return result


class CommitAggregator:
    """
    Config-driven front end for discovery and aggregation.

    Provides methods for finding repositories and aggregating their recent
    commits using the scanning section of a StandupConfig.
    """

    def __init__(self, config: StandupConfig):
        """
        Initialize the aggregator.

        Args:
            config: Configuration instance
        """
        self.config = config
        logger.debug(f"Using root_path: {self.config.scanning.root_path}")

    def find_repositories(self, root_path: Optional[Path] = None) -> List[Path]:
        """
        Find all git repositories under the given root path.

        Args:
            root_path: Root directory to search. If None, uses config root_path.

        Returns:
            List of repository paths, excluded names removed
        """
        if root_path is None:
            root_path = self.config.get_expanded_root_path()

        logger.info(f"Finding repositories under {root_path}")
        return repo_git.discover_repositories(
            root_path,
            exclude_names=self.config.scanning.exclude_repos,
            max_depth=self.config.scanning.max_depth,
        )

    def aggregate(
        self,
        repo_paths: Sequence[Path],
        cutoff: datetime,
        progress_callback: Optional[Callable[[ScanProgress], None]] = None,
        now: Optional[datetime] = None,
    ) -> AggregationResult:
        scanning = self.config.scanning
        return aggregate(
            repo_paths,
            cutoff,
            author_filter=self.config.resolve_author_filter(),
            skip_merges=scanning.skip_merge_commits,
            fetch_timeout=scanning.fetch_timeout,
            git_timeout=scanning.git_timeout,
            max_workers=scanning.max_workers,
            progress_callback=progress_callback,
            now=now,
        )

    def scan(
        self,
        cutoff: datetime,
        progress_callback: Optional[Callable[[ScanProgress], None]] = None,
    ) -> AggregationResult:
        """Discover repositories under the configured root and aggregate them."""
        return self.aggregate(self.find_repositories(), cutoff, progress_callback=progress_callback)
