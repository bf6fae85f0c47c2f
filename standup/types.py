"""
Type definitions and data structures for standup-cli.

This module provides the value objects produced by a commit aggregation run
and by standup summary generation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple


class DisplayFormat(Enum):
    """Ways of rendering aggregated commits."""
    GROUPED = "grouped"
    FLAT = "flat"
    ACCOMPLISHMENTS = "accomplishments"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Commit:
    """
    A single git commit.

    Attributes:
        hash: Full commit hash
        author: Author display name
        timestamp: Authored date
        message: Commit subject line
        ref_names: Raw ref decoration from ``git log %d`` (may be empty)
        repo_name: Short name of the owning repository
        branch: Branch name derived from ref_names, if any
        is_unpushed: True if the commit is on a local branch but not its remote
    """
    hash: str
    author: str
    timestamp: datetime
    message: str
    ref_names: str = ""
    repo_name: str = ""
    branch: Optional[str] = None
    is_unpushed: bool = False


@dataclass(frozen=True)
class CommitGroup:
    """
    Commits belonging to one repository, in git order (newest first).

    Counts are derived from the commits so they always add up.
    """
    repo_name: str
    commits: Tuple[Commit, ...] = ()

    @property
    def commit_count(self) -> int:
        return len(self.commits)

    @property
    def unpushed_count(self) -> int:
        return sum(1 for c in self.commits if c.is_unpushed)

    @property
    def pushed_count(self) -> int:
        return self.commit_count - self.unpushed_count


@dataclass(frozen=True)
class TimeRange:
    since: datetime
    until: datetime


@dataclass(frozen=True)
class AggregationResult:
    """
    Result of one aggregation run.

    Attributes:
        groups: Repositories with at least one commit, sorted by name
        time_range: Cutoff and the time the run happened
    """
    groups: Tuple[CommitGroup, ...]
    time_range: TimeRange

    @property
    def total_commits(self) -> int:
        """Return the total number of commits across all repositories."""
        return sum(g.commit_count for g in self.groups)

    @property
    def total_unpushed(self) -> int:
        return sum(g.unpushed_count for g in self.groups)

    @property
    def repo_names(self) -> List[str]:
        return [g.repo_name for g in self.groups]


@dataclass
class ScanProgress:
    """
    Progress tracking for aggregation runs.

    Attributes:
        total_repos: Total number of repositories to scan
        current_repo: Number of repositories finished so far
        current_repo_name: Name of the repository just finished
        phase: Current phase ("scanning" or "complete")
        message: Optional status message
    """
    total_repos: int
    current_repo: int
    current_repo_name: str
    phase: str  # "scanning", "complete"
    message: str = ""

    @property
    def percentage(self) -> float:
        """
        Return the completion percentage (0-100).

        Returns:
            Float representing percentage complete
        """
        if self.total_repos == 0:
            return 100.0
        return (self.current_repo / self.total_repos) * 100.0

    @property
    def is_complete(self) -> bool:
        return self.phase == "complete"


@dataclass
class StandupSummary:
    """
    Generated content of a standup entry.

    Attributes:
        mood: Emoji plus short phrase
        accomplishments: One line per accomplishment
        blockers: Blockers, ["None"] when there are none
        todays_plan: Planned work items
        git_summary: One-line summary of git activity
        used_ai: Whether the local LLM produced this summary
    """
    mood: str
    accomplishments: List[str] = field(default_factory=list)
    blockers: List[str] = field(default_factory=lambda: ["None"])
    todays_plan: List[str] = field(default_factory=list)
    git_summary: str = ""
    used_ai: bool = False


@dataclass(frozen=True)
class ParsedStandup:
    """
    A daily standup entry read back from its markdown file.

    Attributes:
        day: Date taken from the file name
        mood: Mood line, "Unknown" when the section is missing
        accomplishments: Bullet items of the accomplishments section
        blockers: Bullet items of the blockers section, empty for "None"
        todays_plan: Bullet items of the plan section
        git_summary: Git summary line, if the entry has one
    """
    day: date
    mood: str = "Unknown"
    accomplishments: Tuple[str, ...] = ()
    blockers: Tuple[str, ...] = ()
    todays_plan: Tuple[str, ...] = ()
    git_summary: Optional[str] = None

    @property
    def day_name(self) -> str:
        return self.day.strftime("%A")


@dataclass
class RetroSummary:
    """
    Content of a weekly retrospective.

    Attributes:
        total_days: Number of standups found for the week
        moods: Mood of each day, in date order
        all_accomplishments: Every accomplishment of the week
        all_blockers: Every blocker of the week
        themes: Main areas of work
        highlights: Standout wins
        challenges: Difficulties, or a note that there were none
        lessons_learned: Takeaways
        next_week_focus: Suggested focus for next week
        mood_analysis: Short reading of the mood trend (AI only)
        used_ai: Whether the local LLM produced this summary
    """
    total_days: int
    moods: List[str] = field(default_factory=list)
    all_accomplishments: List[str] = field(default_factory=list)
    all_blockers: List[str] = field(default_factory=list)
    themes: List[str] = field(default_factory=list)
    highlights: List[str] = field(default_factory=list)
    challenges: List[str] = field(default_factory=list)
    lessons_learned: List[str] = field(default_factory=list)
    next_week_focus: List[str] = field(default_factory=list)
    mood_analysis: str = ""
    used_ai: bool = False
