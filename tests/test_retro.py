from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from journal.summarize import SummarizationError, generate_ai_retro, generate_simple_retro
from standup.config import StandupConfig
from standup.exporter import StandupExporter
from standup.retro import WeeklyRetro, parse_standup_markdown, retro_filename
from standup.summarizer import StandupSummarizer
from standup.types import ParsedStandup, StandupSummary

WEDNESDAY = datetime(2026, 10, 21, 17, 0, tzinfo=timezone.utc)
FRIDAY = datetime(2026, 10, 23, 17, 0, tzinfo=timezone.utc)

QUESTION_STYLE_ENTRY = """# Standup - Tuesday, October 20th, 2026

## Mood

😴 Tired

## What did you accomplish?

- Paired on the release

## Any blockers or help needed?

- Waiting on review
- CI is flaky

## What will you focus on today?

- Ship it
---
"""


class FakeClient:
    def __init__(self, response=None, error=None, models=("qwen2.5:7b",)):
        self.response = response
        self.error = error
        self.models = list(models)
        self.calls = []

    def generate(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return {"response": self.response}

    def list(self):
        return {"models": [{"name": m} for m in self.models]}


def _config(tmp_path: Path, **ollama) -> StandupConfig:
    return StandupConfig.from_dict({
        "journal": {"standup_dir": str(tmp_path / "standups")},
        "ollama": ollama,
    })


def _write_entry(config: StandupConfig, day: date, accomplishments, blockers=("None",), mood="🚀 Productive") -> None:
    exporter = StandupExporter(config)
    summary = StandupSummary(
        mood=mood,
        accomplishments=list(accomplishments),
        blockers=list(blockers),
        todays_plan=["Keep going"],
        git_summary=f"{len(accomplishments)} commits in api",
    )
    markdown = exporter.render(summary, None, now=datetime(day.year, day.month, day.day, 9, 0))
    exporter.write(markdown, day)


def _standup(day: int, *accomplishments: str, blockers=()) -> ParsedStandup:
    return ParsedStandup(
        day=date(2026, 10, day),
        mood=f"mood {day}",
        accomplishments=tuple(accomplishments),
        blockers=tuple(blockers),
    )


def test_parse_reads_back_an_exported_entry(tmp_path: Path) -> None:
    config = _config(tmp_path)
    _write_entry(config, date(2026, 10, 19), ["Add login", "Fix bug"])
    path = config.get_standup_directory() / "2026-10-19.md"

    parsed = parse_standup_markdown(path.read_text(encoding="utf-8"), date(2026, 10, 19))

    assert parsed.day_name == "Monday"
    assert parsed.mood == "🚀 Productive"
    assert parsed.accomplishments == ("Add login", "Fix bug")
    assert parsed.blockers == ()
    assert parsed.todays_plan == ("Keep going",)
    assert parsed.git_summary == "2 commits in api"


def test_parse_accepts_question_style_headings() -> None:
    parsed = parse_standup_markdown(QUESTION_STYLE_ENTRY, date(2026, 10, 20))

    assert parsed.mood == "😴 Tired"
    assert parsed.accomplishments == ("Paired on the release",)
    assert parsed.blockers == ("Waiting on review", "CI is flaky")
    assert parsed.todays_plan == ("Ship it",)
    assert parsed.git_summary is None


def test_parse_missing_sections() -> None:
    parsed = parse_standup_markdown("# Standup\n\nfree text\n", date(2026, 10, 20))

    assert parsed.mood == "Unknown"
    assert parsed.accomplishments == ()


def test_week_standups_selects_weekdays_of_the_week(tmp_path: Path) -> None:
    config = _config(tmp_path)
    for day in (date(2026, 10, 16), date(2026, 10, 19), date(2026, 10, 21), date(2026, 10, 24)):
        _write_entry(config, day, [f"Work on {day.isoformat()}"])
    (config.get_standup_directory() / "notes.md").write_text("# not an entry\n", encoding="utf-8")
    service = WeeklyRetro(config)

    this_week = service.week_standups(WEDNESDAY)
    last_week = service.week_standups(WEDNESDAY, week_offset=1)

    assert [s.day for s in this_week] == [date(2026, 10, 19), date(2026, 10, 21)]
    assert [s.day for s in last_week] == [date(2026, 10, 16)]


def test_week_standups_without_directory(tmp_path: Path) -> None:
    assert WeeklyRetro(_config(tmp_path)).week_standups(WEDNESDAY) == []


def test_simple_retro() -> None:
    standups = [
        _standup(19, "a", "b", "c"),
        _standup(20, "d", "e", "f", blockers=["Flaky CI"]),
    ]

    retro = generate_simple_retro(standups)

    assert retro.total_days == 2
    assert retro.moods == ["mood 19", "mood 20"]
    assert retro.highlights == ["a", "b", "c", "d", "e"]
    assert retro.all_accomplishments == ["a", "b", "c", "d", "e", "f"]
    assert retro.challenges == ["Flaky CI"]
    assert retro.used_ai is False
    assert generate_simple_retro([_standup(19, "a")]).challenges == ["None reported this week"]


def test_ai_retro_maps_fields() -> None:
    client = FakeClient(response=json.dumps({
        "themes": ["Auth"],
        "highlights": ["Shipped login"],
        "challenges": "Flaky CI",
        "lessonsLearned": ["Test earlier"],
        "nextWeekFocus": ["Billing"],
        "moodAnalysis": "Upbeat all week",
    }))

    retro = generate_ai_retro(client, "qwen2.5:7b", [_standup(19, "Add login")], options={"num_predict": 1024})

    assert retro.used_ai is True
    assert retro.themes == ["Auth"]
    assert retro.challenges == ["Flaky CI"]
    assert retro.mood_analysis == "Upbeat all week"
    assert retro.all_accomplishments == ["Add login"]
    assert "Monday (2026-10-19)" in client.calls[0]["prompt"]


def test_ai_retro_errors() -> None:
    with pytest.raises(SummarizationError):
        generate_ai_retro(FakeClient(response="{}"), "m", [])
    with pytest.raises(SummarizationError):
        generate_ai_retro(FakeClient(response="no json"), "m", [_standup(19, "x")])
    with pytest.raises(SummarizationError):
        generate_ai_retro(FakeClient(error=ConnectionError("refused")), "m", [_standup(19, "x")])


def test_generate_and_write(tmp_path: Path) -> None:
    config = _config(tmp_path)
    _write_entry(config, date(2026, 10, 19), ["Add login"], mood="🚀 Productive")
    _write_entry(config, date(2026, 10, 21), ["Fix bug"], blockers=["Flaky CI"], mood="🔧 Fixing")
    service = WeeklyRetro(config)

    markdown, summary = service.generate(FRIDAY, use_ai=False)

    assert summary.total_days == 2
    assert markdown.startswith("# Weekly Retrospective - Week 43, 2026\n")
    assert "📅 **October 19th - October 25th, 2026**" in markdown
    assert "- **Days with standups:** 2/5" in markdown
    assert "- **Moods:** 🚀 Productive → 🔧 Fixing" in markdown
    assert "## 🚧 Challenges\n\n- Flaky CI\n" in markdown
    assert "### Wednesday (2026-10-21)" in markdown
    assert "**Blockers:** Flaky CI" in markdown
    assert "(simple retro)" in markdown

    path = service.write(markdown, date(2026, 10, 19))
    assert path == tmp_path / "retros" / "2026-W43.md"
    with pytest.raises(FileExistsError):
        service.write(markdown, date(2026, 10, 19))


def test_retro_dir_can_be_configured(tmp_path: Path) -> None:
    config = StandupConfig.from_dict({"journal": {"retro_dir": str(tmp_path / "elsewhere")}})

    assert WeeklyRetro(config).retro_path(date(2026, 10, 19)) == tmp_path / "elsewhere" / "2026-W43.md"


def test_retro_filename_uses_iso_year() -> None:
    assert retro_filename(date(2025, 12, 29)) == "2026-W01.md"
    assert retro_filename(date(2026, 1, 5)) == "2026-W02.md"


def test_generate_without_standups(tmp_path: Path) -> None:
    assert WeeklyRetro(_config(tmp_path)).generate(FRIDAY, use_ai=False) is None


def test_summarizer_uses_ai_for_the_week(tmp_path: Path) -> None:
    config = _config(tmp_path, enabled=True)
    _write_entry(config, date(2026, 10, 19), ["Add login"])
    client = FakeClient(response='{"themes": ["Auth"], "moodAnalysis": "Steady"}')
    service = WeeklyRetro(config, StandupSummarizer(config, client=client))

    markdown, summary = service.generate(FRIDAY)

    assert summary.used_ai is True
    assert "## 🧭 Mood Trend\n\nSteady\n" in markdown
    assert "- Auth" in markdown
    assert client.calls[0]["options"]["num_predict"] == 1024


def test_summarizer_falls_back_to_simple_retro(tmp_path: Path) -> None:
    config = _config(tmp_path, enabled=True)
    _write_entry(config, date(2026, 10, 19), ["Add login"])
    service = WeeklyRetro(config, StandupSummarizer(config, client=FakeClient(response="garbage")))

    _, summary = service.generate(FRIDAY)

    assert summary.used_ai is False
    assert summary.highlights == ["Add login"]


def test_run_auto_only_on_retro_day(tmp_path: Path) -> None:
    config = _config(tmp_path)
    service = WeeklyRetro(config)

    assert service.run_auto(FRIDAY, use_ai=False) == (None, "No standups found for this week")

    _write_entry(config, date(2026, 10, 19), ["Add login"])
    assert service.run_auto(WEDNESDAY, use_ai=False) == (None, "Not retro day")

    path, message = service.run_auto(FRIDAY, use_ai=False)
    assert path == tmp_path / "retros" / "2026-W43.md"
    assert message == "Weekly retrospective generated"

    assert service.run_auto(FRIDAY, use_ai=False) == (None, "Retro already exists for this week")
