"""
Weekly retrospective service for standup-cli.

Reads the week's daily entries back from the standup directory, summarizes
them, and writes one ``YYYY-Www.md`` retro per ISO week.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from journal.date_utils import week_bounds
from standup.config import StandupConfig
from standup.exporter import format_list, ordinal
from standup.summarizer import StandupSummarizer
from standup.types import ParsedStandup, RetroSummary

logger = logging.getLogger(__name__)

WORKDAYS = 5

# headings written by StandupExporter, plus the question-style ones of older entries
_SECTION_KEYS = {
    "mood": "mood",
    "accomplishments": "accomplishments",
    "what did you accomplish?": "accomplishments",
    "blockers": "blockers",
    "any blockers or help needed?": "blockers",
    "today's plan": "todays_plan",
    "what will you focus on today?": "todays_plan",
    "git summary": "git_summary",
}
_HEADING_DECORATION_RE = re.compile(r"^[^\w']+")


def _section_key(heading: str) -> Optional[str]:
    return _SECTION_KEYS.get(_HEADING_DECORATION_RE.sub("", heading).strip().lower())


def _bullets(lines: Sequence[str]) -> Tuple[str, ...]:
    return tuple(line[2:].strip() for line in lines if line.startswith("- "))


def parse_standup_markdown(text: str, day: date) -> ParsedStandup:
    """
    Parse a daily entry into its sections.

    A section runs from its ``## `` heading to the next heading, the
    ``<details>`` git block, or a ``---`` rule. Unknown sections are ignored.
    """
    sections: Dict[str, List[str]] = {}
    current: Optional[str] = None

    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("## "):
            current = _section_key(line[3:])
            if current:
                sections.setdefault(current, [])
            continue
        if line.startswith("# ") or line.startswith("<details>") or line == "---":
            current = None
            continue
        if current and line:
            sections[current].append(line)

    mood = sections.get("mood", [])
    git_summary = sections.get("git_summary", [])
    return ParsedStandup(
        day=day,
        mood=mood[0] if mood else "Unknown",
        accomplishments=_bullets(sections.get("accomplishments", [])),
        blockers=tuple(b for b in _bullets(sections.get("blockers", [])) if b != "None"),
        todays_plan=_bullets(sections.get("todays_plan", [])),
        git_summary=git_summary[0] if git_summary else None,
    )


def retro_filename(week_start: date) -> str:
    iso_year, iso_week, _ = week_start.isocalendar()
    return f"{iso_year}-W{iso_week:02d}.md"


class WeeklyRetro:
    """
    Service for weekly retrospectives.

    Provides methods for collecting a week's standups, rendering the retro
    and writing it next to the daily entries.
    """

    def __init__(self, config: StandupConfig, summarizer: Optional[StandupSummarizer] = None):
        """
        Initialize the retro service.

        Args:
            config: Configuration instance
            summarizer: Summarizer to use. If None, one is created from config.
        """
        self.config = config
        self.summarizer = summarizer or StandupSummarizer(config)

    def retro_path(self, week_start: date) -> Path:
        return self.config.get_retro_directory() / retro_filename(week_start)

    def exists(self, now: Optional[datetime] = None, week_offset: int = 0) -> bool:
        week_start, _ = week_bounds(now, week_offset)
        return self.retro_path(week_start).exists()

    def is_retro_day(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now().astimezone()
        return now.weekday() == self.config.journal.retro_day

    def week_standups(self, now: Optional[datetime] = None, week_offset: int = 0) -> List[ParsedStandup]:
        """
        Read the Monday to Friday entries of a week, in date order.

        Files whose name is not a ``YYYY-MM-DD`` date are skipped.
        """
        standup_dir = self.config.get_standup_directory()
        if not standup_dir.is_dir():
            logger.debug(f"Standup directory {standup_dir} does not exist")
            return []

        week_start, week_end = week_bounds(now, week_offset)
        standups: List[ParsedStandup] = []

        for path in sorted(standup_dir.glob("*.md")):
            try:
                day = date.fromisoformat(path.stem)
            except ValueError:
                logger.debug(f"Skipping {path.name}: not a dated entry")
                continue
            if not (week_start <= day <= week_end) or day.weekday() >= WORKDAYS:
                continue
            standups.append(parse_standup_markdown(path.read_text(encoding="utf-8"), day))

        logger.info(f"Found {len(standups)} standups for week of {week_start.isoformat()}")
        return standups

    def render(
        self,
        standups: Sequence[ParsedStandup],
        summary: RetroSummary,
        week_start: date,
        now: Optional[datetime] = None,
    ) -> str:
        now = now or datetime.now()
        week_end = week_start + timedelta(days=6)
        iso_year, iso_week, _ = week_start.isocalendar()
        start_label = f"{week_start.strftime('%B')} {ordinal(week_start.day)}"
        end_label = f"{week_end.strftime('%B')} {ordinal(week_end.day)}, {week_end.year}"

        lines: List[str] = [
            f"# Weekly Retrospective - Week {iso_week}, {iso_year}",
            "",
            f"📅 **{start_label} - {end_label}**",
            "",
            "---",
            "",
            "## 📊 Week Overview",
            "",
            f"- **Days with standups:** {summary.total_days}/{WORKDAYS}",
            f"- **Moods:** {' → '.join(summary.moods) or 'None'}",
            "",
        ]
        if summary.mood_analysis:
            lines.extend(["## 🧭 Mood Trend", "", summary.mood_analysis, ""])

        for title, items in (
            ("## 🎯 Key Themes", summary.themes),
            ("## 🌟 Highlights", summary.highlights),
            ("## 🚧 Challenges", summary.challenges),
            ("## 💡 Lessons Learned", summary.lessons_learned),
            ("## 🔮 Next Week Focus", summary.next_week_focus),
        ):
            lines.extend([title, "", format_list(items), ""])

        lines.extend(["---", "", "## 📝 Daily Breakdown", ""])
        for s in standups:
            lines.extend([
                f"### {s.day_name} ({s.day.isoformat()})",
                "",
                f"**Mood:** {s.mood}",
                "",
                "**Accomplished:**",
                format_list(list(s.accomplishments)) if s.accomplishments else "None listed",
                "",
                f"**Blockers:** {', '.join(s.blockers) or 'None'}",
                "",
            ])

        stamp = f"{now.strftime('%H:%M:%S')} on {now.strftime('%A, %B')} {ordinal(now.day)}, {now.year}"
        source = "AI retro" if summary.used_ai else "simple retro"
        lines.extend(["---", "", f"*Generated automatically at {stamp} ({source})*", ""])
        return "\n".join(lines)

    def write(self, markdown: str, week_start: date, overwrite: bool = False) -> Path:
        """
        Write the retro for the week starting at week_start.

        Raises:
            FileExistsError: If a retro exists and overwrite is False
        """
        path = self.retro_path(week_start)
        if path.exists() and not overwrite:
            raise FileExistsError(f"Retro already exists: {path}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(markdown, encoding="utf-8")
        logger.info(f"Weekly retro saved to {path}")
        return path

    def generate(
        self,
        now: Optional[datetime] = None,
        week_offset: int = 0,
        use_ai: bool = True,
    ) -> Optional[Tuple[str, RetroSummary]]:
        """
        Build the retro markdown for a week.

        Returns:
            (markdown, summary), or None when the week has no standups
        """
        now = now or datetime.now().astimezone()
        standups = self.week_standups(now, week_offset)
        if not standups:
            return None

        summary = self.summarizer.summarize_week(standups, use_ai=use_ai)
        week_start, _ = week_bounds(now, week_offset)
        return self.render(standups, summary, week_start, now=now), summary

    def run_auto(self, now: Optional[datetime] = None, use_ai: bool = True) -> Tuple[Optional[Path], str]:
        """
        Write this week's retro if today is the retro day and none exists yet.

        Returns:
            (path or None, status message)
        """
        now = now or datetime.now().astimezone()
        if not self.is_retro_day(now):
            return None, "Not retro day"
        if self.exists(now):
            return None, "Retro already exists for this week"

        generated = self.generate(now, use_ai=use_ai)
        if generated is None:
            return None, "No standups found for this week"

        markdown, summary = generated
        week_start, _ = week_bounds(now)
        path = self.write(markdown, week_start)
        kind = " (AI-powered)" if summary.used_ai else ""
        return path, f"Weekly retrospective generated{kind}"
