"""
Text renderings of aggregated commit groups.

All functions are pure: they take CommitGroups and return lines.
"""

from __future__ import annotations

import re
from typing import List, Sequence

from standup.types import Commit, CommitGroup

PUSHED_MARKER = "✅"
UNPUSHED_MARKER = "🚀"

_CONVENTIONAL_PREFIX_RE = re.compile(r"^(feat|fix|docs|style|refactor|test|chore|perf):\s*", re.IGNORECASE)


def strip_conventional_prefix(message: str) -> str:
    """Drop a leading ``feat:``/``fix:``/... prefix and the whitespace after it."""
    return _CONVENTIONAL_PREFIX_RE.sub("", message, count=1)


def _branch_tag(commit: Commit) -> str:
    return f"[{commit.branch}] " if commit.branch else ""


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def format_grouped(groups: Sequence[CommitGroup]) -> List[str]:
    """
    One header per repository followed by its commits and a blank line::

        **api** (3 commits, 1 unpushed)

        - 🚀 [main] add login *unpushed*
        - ✅ fix: bug
    """
    lines: List[str] = []

    for group in groups:
        unpushed_info = f", {group.unpushed_count} unpushed" if group.unpushed_count > 0 else ""
        lines.append(f"**{group.repo_name}** ({_plural(group.commit_count, 'commit')}{unpushed_info})")
        lines.append("")

        for commit in group.commits:
            marker = UNPUSHED_MARKER if commit.is_unpushed else PUSHED_MARKER
            unpushed_mark = " *unpushed*" if commit.is_unpushed else ""
            lines.append(f"- {marker} {_branch_tag(commit)}{commit.message}{unpushed_mark}")

        lines.append("")

    return lines


def format_flat(groups: Sequence[CommitGroup]) -> List[str]:
    """One ``[repo] [branch] message`` line per commit, unpushed ones marked."""
    lines: List[str] = []

    for group in groups:
        for commit in group.commits:
            unpushed_mark = " *unpushed*" if commit.is_unpushed else ""
            lines.append(f"[{group.repo_name}] {_branch_tag(commit)}{commit.message}{unpushed_mark}")

    return lines


def to_accomplishments(groups: Sequence[CommitGroup]) -> List[str]:
    """Flat lines with conventional-commit prefixes removed, for pre-filling a standup."""
    accomplishments: List[str] = []

    for group in groups:
        for commit in group.commits:
            message = strip_conventional_prefix(commit.message)
            unpushed_mark = " (unpushed)" if commit.is_unpushed else ""
            accomplishments.append(f"[{group.repo_name}] {_branch_tag(commit)}{message}{unpushed_mark}")

    return accomplishments
