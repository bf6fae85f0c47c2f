# journal/summarize.py
from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ollama import Client

from standup.formatter import strip_conventional_prefix
from standup.types import CommitGroup, ParsedStandup, RetroSummary, StandupSummary

logger = logging.getLogger(__name__)


class SummarizationError(Exception):
    """Raised when the LLM cannot produce a usable standup summary."""
    pass


def get_ollama_client(endpoint: str, timeout: Optional[float] = None) -> Client:
    return Client(host=endpoint, timeout=timeout)


def list_models(client: Client) -> List[str]:
    models_response = client.list()
    if hasattr(models_response, "models"):
        return [model.model for model in models_response.models]
    if isinstance(models_response, dict) and "models" in models_response:
        return [m.get("name", m.get("model", "")) for m in models_response["models"]]
    return []


# -------------------------
# Commit classification
# -------------------------
_FIX_RE = re.compile(r"^(fix|bugfix|hotfix):")
_FEATURE_RE = re.compile(r"^(feat|feature):")
_REFACTOR_RE = re.compile(r"^(refactor|chore|style):")
_WIP_RE = re.compile(r"wip|work in progress", re.IGNORECASE)
_DOCS_RE = re.compile(r"^(docs|doc):")
_TEST_RE = re.compile(r"^(test|tests):")


def analyze_commits(groups: Sequence[CommitGroup]) -> Dict[str, int]:
    """Count commits per category; each commit lands in at most one."""
    counts = {"fixes": 0, "features": 0, "refactors": 0, "wip": 0, "docs": 0, "tests": 0, "general": 0}

    for group in groups:
        for commit in group.commits:
            msg = commit.message.lower()
            if _FIX_RE.match(msg):
                counts["fixes"] += 1
            elif _FEATURE_RE.match(msg):
                counts["features"] += 1
            elif _REFACTOR_RE.match(msg):
                counts["refactors"] += 1
            elif _WIP_RE.search(msg):
                counts["wip"] += 1
            elif _DOCS_RE.match(msg):
                counts["docs"] += 1
            elif _TEST_RE.match(msg):
                counts["tests"] += 1
            else:
                counts["general"] += 1

    counts["total"] = sum(v for k, v in counts.items() if k != "general")
    return counts


def commit_types(counts: Dict[str, int]) -> List[str]:
    labels = [
        ("fixes", "fixes"),
        ("features", "features"),
        ("refactors", "refactoring"),
        ("wip", "WIP"),
        ("docs", "documentation"),
        ("tests", "testing"),
        ("general", "general"),
    ]
    return [label for key, label in labels if counts.get(key)]


# -------------------------
# Heuristic summary (no AI)
# -------------------------
def generate_mood(counts: Dict[str, int], now: datetime) -> str:
    fixes, features, refactors, wip = counts["fixes"], counts["features"], counts["refactors"], counts["wip"]

    if now.weekday() >= 5:
        return "💪 Weekend warrior - pushing forward"
    if features > fixes and features > refactors:
        return "🚀 Productive - shipping features"
    if fixes > features and fixes > 2:
        return "🔧 Bug squashing mode"
    if refactors > 2:
        return "🎨 Refactoring day - improving code quality"
    if wip > 1:
        return "🔍 Exploration mode - trying things out"
    if counts["total"] > 5:
        return "⚡ High velocity - lots of progress"
    return "✨ Steady progress"


def generate_accomplishments(groups: Sequence[CommitGroup]) -> List[str]:
    """
    Commit messages as accomplishments: prefix stripped, capitalised,
    case-insensitive duplicates dropped (first one wins).
    """
    accomplishments: List[str] = []
    seen: set = set()
    multi_repo = len(groups) > 1

    for group in groups:
        for commit in group.commits:
            message = strip_conventional_prefix(commit.message)
            message = message[:1].upper() + message[1:]

            normalized = message.lower().strip()
            if normalized in seen:
                continue
            seen.add(normalized)

            prefix = f"[{group.repo_name}] " if multi_repo else ""
            accomplishments.append(f"{prefix}{message}")

    return accomplishments or ["Worked on various tasks"]


def generate_blockers(counts: Dict[str, int]) -> List[str]:
    if counts["wip"] > 2:
        return ["Multiple WIP commits - may need to consolidate work"]
    if counts["fixes"] > 5:
        return ["High number of fixes - possible technical debt to address"]
    return ["None"]


def generate_todays_plan(counts: Dict[str, int]) -> List[str]:
    plan: List[str] = []
    if counts["features"] > 0:
        plan.append("Continue feature development and testing")
    if counts["fixes"] > 0:
        plan.append("Monitor for any related issues")
    if counts["refactors"] > 0:
        plan.append("Complete refactoring and update documentation")
    if counts["wip"] > 0:
        plan.append("Finalize work in progress and clean up branches")
    return plan[:2] or ["Continue current work"]


def generate_git_summary(groups: Sequence[CommitGroup], total_commits: int) -> str:
    if not groups:
        return "No commits"
    if len(groups) == 1:
        return f"{total_commits} commits in {groups[0].repo_name}"

    ranked = sorted(groups, key=lambda g: g.commit_count, reverse=True)
    top, others = ranked[0], ranked[1:]
    other_names = ", ".join(g.repo_name for g in others)
    return f"Most active in {top.repo_name} ({top.commit_count} commits), also worked on {other_names}"


def generate_simple_summary(
    groups: Sequence[CommitGroup],
    total_commits: int,
    now: Optional[datetime] = None,
) -> StandupSummary:
    now = now or datetime.now().astimezone()
    counts = analyze_commits(groups)
    return StandupSummary(
        mood=generate_mood(counts, now),
        accomplishments=generate_accomplishments(groups),
        blockers=generate_blockers(counts),
        todays_plan=generate_todays_plan(counts),
        git_summary=generate_git_summary(groups, total_commits),
        used_ai=False,
    )


# -------------------------
# Robust JSON parsing helpers
# -------------------------
_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)

def _strip_code_fences(text: str) -> str:
    text = re.sub(r"^```(?:json)?\s*", "", text.strip(), flags=re.IGNORECASE)
    text = re.sub(r"\s*```$", "", text.strip())
    return text.strip()

def _normalize_quotes(text: str) -> str:
    return (
        text.replace("“", "\"").replace("”", "\"")
            .replace("‘", "'").replace("’", "'")
    )

def _extract_json_block(text: str) -> Optional[str]:
    text = _strip_code_fences(_normalize_quotes(text))
    m = _JSON_OBJECT_RE.search(text)
    if not m:
        return None
    return text[m.start():m.end()]

def try_parse_json(text: str) -> Optional[Dict[str, Any]]:
    # 1) direct
    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except ValueError:
        pass

    # 2) find a {...} block inside noise
    block = _extract_json_block(text)
    if not block:
        return None
    for candidate in (block, re.sub(r",\s*([}\]])", r"\1", block)):
        # 3) second candidate has trailing commas removed
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None


# -------------------------
# AI summary
# -------------------------
def _time_of_day(hour: int) -> str:
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    return "evening"


def format_commits_for_prompt(groups: Sequence[CommitGroup]) -> str:
    lines: List[str] = []
    for group in groups:
        lines.append(f"\n**{group.repo_name}** ({group.commit_count} commits):")
        for commit in group.commits:
            unpushed_mark = " [unpushed]" if commit.is_unpushed else ""
            branch_tag = f"[{commit.branch}] " if commit.branch else ""
            lines.append(f"  - {branch_tag}{commit.message}{unpushed_mark}")
    return "\n".join(lines)


def build_standup_prompt(groups: Sequence[CommitGroup], total_commits: int, now: datetime) -> str:
    counts = analyze_commits(groups)
    weekend = " (weekend)" if now.weekday() >= 5 else ""

    return f"""
        You are helping generate a daily standup message. Analyze the git commits and create a natural,
        personalized standup summary.

        Context:
        - Day: {now.strftime('%A')}{weekend}
        - Time: {_time_of_day(now.hour)}
        - Total commits: {total_commits}
        - Commit types: {', '.join(commit_types(counts))}
        - Repositories: {', '.join(g.repo_name for g in groups)}

        Git commits:
        {format_commits_for_prompt(groups)}

        Generate a standup with these sections:
        1. mood: one emoji plus a short phrase inferred from the commits
           (e.g. "🚀 Productive - shipping features", "🔧 Bug squashing mode").
        2. accomplishments: commits rewritten as natural, past-tense accomplishments.
           Combine related commits and say what changed and why.
        3. blockers: potential issues (many fixes, WIP commits, reverts) or ["None"].
        4. todaysPlan: specific, actionable next steps based on the patterns.
        5. gitSummary: one line, e.g. "Most active in api (4 commits), also worked on web".

        Respond with ONLY this JSON object, no prose, no code fences:
        {{
          "mood": "emoji + short phrase",
          "accomplishments": ["item1", "item2"],
          "blockers": ["None"],
          "todaysPlan": ["item1"],
          "gitSummary": "one-line summary"
        }}
        """.strip()


def _as_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v) for v in value if str(v).strip()]
    return []


def generate_ai_summary(
    client: Client,
    model: str,
    groups: Sequence[CommitGroup],
    total_commits: int,
    now: Optional[datetime] = None,
    options: Optional[Dict[str, Any]] = None,
) -> StandupSummary:
    """
    Ask the local LLM for a standup summary.

    Raises:
        SummarizationError: If the server call fails or no JSON object can be
            recovered from the response
    """
    now = now or datetime.now().astimezone()
    prompt = build_standup_prompt(groups, total_commits, now)
    logger.debug(f"Requesting standup summary from {model} ({total_commits} commits)")

    try:
        resp = client.generate(model=model, prompt=prompt, format="json", options=options or {})
    except Exception as e:
        logger.warning(f"Ollama request failed: {type(e).__name__}: {e}")
        raise SummarizationError(f"Failed to generate AI summary: {e}") from e

    content = resp["response"] or ""
    logger.debug(f"Received response from Ollama ({len(content)} chars)")

    data = try_parse_json(content)
    if not data:
        logger.warning("LLM response did not contain a JSON object")
        raise SummarizationError("LLM response did not contain a JSON object")

    return StandupSummary(
        mood=str(data.get("mood") or "Generated automatically"),
        accomplishments=_as_list(data.get("accomplishments")),
        blockers=_as_list(data.get("blockers")) or ["None"],
        todays_plan=_as_list(data.get("todaysPlan")),
        git_summary=str(data.get("gitSummary") or f"{total_commits} commits across {len(groups)} repositories"),
        used_ai=True,
    )


# -------------------------
# Weekly retrospective
# -------------------------
RETRO_NUM_PREDICT = 1024


def _week_totals(standups: Sequence[ParsedStandup]) -> Dict[str, List[str]]:
    return {
        "moods": [s.mood for s in standups],
        "accomplishments": [a for s in standups for a in s.accomplishments],
        "blockers": [b for s in standups for b in s.blockers if b != "None"],
    }


def generate_simple_retro(standups: Sequence[ParsedStandup]) -> RetroSummary:
    totals = _week_totals(standups)
    return RetroSummary(
        total_days=len(standups),
        moods=totals["moods"],
        all_accomplishments=totals["accomplishments"],
        all_blockers=totals["blockers"],
        themes=["See accomplishments for details"],
        highlights=totals["accomplishments"][:5],
        challenges=totals["blockers"] or ["None reported this week"],
        lessons_learned=["Review standups for insights"],
        next_week_focus=["Continue momentum from this week"],
        used_ai=False,
    )


def format_standups_for_prompt(standups: Sequence[ParsedStandup]) -> str:
    blocks: List[str] = []
    for s in standups:
        lines = [
            f"**{s.day_name} ({s.day.isoformat()})**",
            f"- Mood: {s.mood}",
            f"- Accomplishments: {'; '.join(s.accomplishments) or 'None listed'}",
            f"- Blockers: {'; '.join(s.blockers) or 'None'}",
        ]
        if s.git_summary:
            lines.append(f"- Git Activity: {s.git_summary}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def build_retro_prompt(standups: Sequence[ParsedStandup]) -> str:
    return f"""
        You are helping a developer write a weekly retrospective. Analyze the week's standups
        and write a thoughtful, concise reflection.

        Week's standups:
        {format_standups_for_prompt(standups)}

        Produce:
        1. themes: 2-3 main areas of work this week.
        2. highlights: 3-5 specific wins, with their impact.
        3. challenges: blockers or difficult areas, or ["None - smooth week"].
        4. lessonsLearned: 1-3 takeaways.
        5. nextWeekFocus: 2-3 focus areas based on unfinished work and recurring blockers.
        6. moodAnalysis: one or two sentences on how the mood moved through the week.

        Respond with ONLY this JSON object, no prose, no code fences:
        {{
          "themes": ["theme1"],
          "highlights": ["highlight1"],
          "challenges": ["challenge1"],
          "lessonsLearned": ["lesson1"],
          "nextWeekFocus": ["focus1"],
          "moodAnalysis": "short analysis"
        }}
        """.strip()


def generate_ai_retro(
    client: Client,
    model: str,
    standups: Sequence[ParsedStandup],
    options: Optional[Dict[str, Any]] = None,
) -> RetroSummary:
    """
    Ask the local LLM for a weekly retrospective.

    Raises:
        SummarizationError: If there are no standups, the server call fails,
            or no JSON object can be recovered from the response
    """
    if not standups:
        raise SummarizationError("No standups to summarize")

    prompt = build_retro_prompt(standups)
    logger.debug(f"Requesting weekly retro from {model} ({len(standups)} standups)")

    try:
        resp = client.generate(model=model, prompt=prompt, format="json", options=options or {})
    except Exception as e:
        logger.warning(f"Ollama request failed: {type(e).__name__}: {e}")
        raise SummarizationError(f"Failed to generate AI retro: {e}") from e

    data = try_parse_json(resp["response"] or "")
    if not data:
        logger.warning("LLM retro response did not contain a JSON object")
        raise SummarizationError("LLM response did not contain a JSON object")

    totals = _week_totals(standups)
    return RetroSummary(
        total_days=len(standups),
        moods=totals["moods"],
        all_accomplishments=totals["accomplishments"],
        all_blockers=totals["blockers"],
        themes=_as_list(data.get("themes")),
        highlights=_as_list(data.get("highlights")),
        challenges=_as_list(data.get("challenges")),
        lessons_learned=_as_list(data.get("lessonsLearned")),
        next_week_focus=_as_list(data.get("nextWeekFocus")),
        mood_analysis=str(data.get("moodAnalysis") or ""),
        used_ai=True,
    )
