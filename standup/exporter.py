"""
Markdown export of standup entries for standup-cli.

One file per day under the configured standup directory. Writing is last
write wins; an existing entry is only replaced when asked to.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

from standup.config import StandupConfig
from standup.formatter import format_grouped
from standup.types import AggregationResult, StandupSummary

logger = logging.getLogger(__name__)


def ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def format_list(items: List[str]) -> str:
    if not items or items == ["None"]:
        return "None"
    return "\n".join(f"- {item}" for item in items)


class StandupExporter:
    """Renders standup entries as markdown and writes them to disk."""

    def __init__(self, config: StandupConfig):
        self.config = config

    def entry_path(self, day: date) -> Path:
        return self.config.get_standup_directory() / f"{day.strftime('%Y-%m-%d')}.md"

    def render(
        self,
        summary: StandupSummary,
        result: Optional[AggregationResult] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Render a standup entry.

        Args:
            summary: Generated standup content
            result: Aggregated commits for the git activity section
            now: Time of generation (defaults to now)

        Returns:
            Markdown text
        """
        now = now or datetime.now()
        title = f"{now.strftime('%A, %B')} {ordinal(now.day)}, {now.year}"

        lines: List[str] = [
            f"# Standup - {title}",
            "",
            "## 😊 Mood",
            "",
            summary.mood,
            "",
            "## ✅ Accomplishments",
            "",
            format_list(summary.accomplishments),
            "",
            "## 🚧 Blockers",
            "",
            format_list(summary.blockers),
            "",
            "## 📋 Today's Plan",
            "",
            format_list(summary.todays_plan),
            "",
        ]

        if summary.git_summary:
            lines.extend(["## 📊 Git Summary", "", summary.git_summary, ""])

        if result is not None and result.total_commits > 0:
            lines.extend([
                "<details>",
                f"<summary>📦 Detailed Git Activity ({result.total_commits} commits)</summary>",
                "",
                *format_grouped(result.groups),
                "</details>",
                "",
            ])

        source = "AI summary" if summary.used_ai else "simple summary"
        lines.extend(["---", "", f"*Generated automatically at {now.strftime('%H:%M:%S')} ({source})*", ""])
        return "\n".join(lines)

    def write(self, markdown: str, day: date, overwrite: bool = False) -> Path:
        """
        Write an entry for day.

        Raises:
            FileExistsError: If an entry exists and overwrite is False
        """
        path = self.entry_path(day)
        if path.exists() and not overwrite:
            raise FileExistsError(f"Standup already exists: {path}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(markdown, encoding="utf-8")
        logger.info(f"Standup saved to {path}")
        return path
