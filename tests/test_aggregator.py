from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Set

import pytest

from journal import multi_repo_git_utils
from standup.aggregator import CommitAggregator, aggregate
from standup.config import StandupConfig
from standup.types import Commit, ScanProgress

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
CUTOFF = NOW - timedelta(hours=24)


def _commit(hash_: str, message: str, repo: str) -> Commit:
    return Commit(hash=hash_, author="Jane", timestamp=NOW - timedelta(hours=1), message=message, repo_name=repo)


def _install(
    monkeypatch: pytest.MonkeyPatch,
    commits: Dict[str, List[Commit]],
    unpushed: Dict[str, Set[str]],
) -> None:
    def fake_fetch(repo_path, cutoff, **kwargs):
        return list(commits.get(Path(repo_path).name, []))

    def fake_detect(repo_path, **kwargs):
        return set(unpushed.get(Path(repo_path).name, set()))

    monkeypatch.setattr(multi_repo_git_utils, "fetch_commits_since", fake_fetch)
    monkeypatch.setattr(multi_repo_git_utils, "detect_unpushed", fake_detect)


def test_groups_commits_and_marks_push_status(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _install(
        monkeypatch,
        commits={"A": [_commit("h1", "feat: add login", "A"), _commit("h2", "fix: bug", "A")]},
        unpushed={"A": {"h1"}},
    )

    result = aggregate([tmp_path / "A", tmp_path / "B"], CUTOFF, now=NOW)

    assert [g.repo_name for g in result.groups] == ["A"]
    group = result.groups[0]
    assert [c.hash for c in group.commits] == ["h1", "h2"]
    assert [c.is_unpushed for c in group.commits] == [True, False]
    assert group.pushed_count == 1
    assert group.unpushed_count == 1
    assert result.total_commits == 2
    assert result.time_range.since == CUTOFF
    assert result.time_range.until == NOW


def test_groups_are_sorted_and_counts_are_consistent(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _install(
        monkeypatch,
        commits={
            "zeta": [_commit("z1", "one", "zeta")],
            "alpha": [_commit("a1", "one", "alpha"), _commit("a2", "two", "alpha")],
            "Beta": [_commit("b1", "one", "Beta")],
            "empty": [],
        },
        unpushed={"alpha": {"a2", "not-fetched"}, "zeta": {"z1"}},
    )

    result = aggregate([tmp_path / n for n in ("zeta", "empty", "Beta", "alpha")], CUTOFF, now=NOW)

    assert [g.repo_name for g in result.groups] == ["alpha", "Beta", "zeta"]
    assert result.total_commits == sum(len(g.commits) for g in result.groups)
    for group in result.groups:
        assert group.pushed_count + group.unpushed_count == len(group.commits)
    assert result.total_unpushed == 2


def test_same_named_repositories_share_one_group(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _install(
        monkeypatch,
        commits={"api": [_commit("h1", "one", "api"), _commit("h2", "two", "api")]},
        unpushed={},
    )

    result = aggregate([tmp_path / "work" / "api", tmp_path / "oss" / "api"], CUTOFF, now=NOW)

    assert len(result.groups) == 1
    assert [c.hash for c in result.groups[0].commits] == ["h1", "h2"]


def test_fetch_and_detection_run_concurrently(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    barrier = threading.Barrier(2, timeout=5)

    def fake_fetch(repo_path, cutoff, **kwargs):
        barrier.wait()
        return [_commit("h1", "feat: x", "solo")]

    def fake_detect(repo_path, **kwargs):
        barrier.wait()
        return {"h1"}

    monkeypatch.setattr(multi_repo_git_utils, "fetch_commits_since", fake_fetch)
    monkeypatch.setattr(multi_repo_git_utils, "detect_unpushed", fake_detect)

    result = aggregate([tmp_path / "solo"], CUTOFF, max_workers=2, now=NOW)

    assert result.groups[0].commits[0].is_unpushed is True


def test_no_repositories_gives_empty_result() -> None:
    result = aggregate([], CUTOFF, now=NOW)

    assert result.groups == ()
    assert result.total_commits == 0


def test_progress_callback_reports_each_repository(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _install(monkeypatch, commits={"a": [_commit("h1", "x", "a")]}, unpushed={})
    seen: List[ScanProgress] = []

    aggregate([tmp_path / "a", tmp_path / "b"], CUTOFF, progress_callback=seen.append, now=NOW)

    assert [p.phase for p in seen] == ["scanning", "scanning", "complete"]
    assert seen[-1].is_complete
    assert seen[-1].percentage == 100.0


def test_invalid_arguments_raise(tmp_path: Path) -> None:
    with pytest.raises(TypeError):
        aggregate([tmp_path], "yesterday")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        aggregate([tmp_path], CUTOFF, max_workers=0)


def test_commit_aggregator_uses_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = []

    def fake_fetch(repo_path, cutoff, **kwargs):
        calls.append(kwargs)
        return [_commit("h1", "x", Path(repo_path).name)]

    monkeypatch.setattr(multi_repo_git_utils, "fetch_commits_since", fake_fetch)
    monkeypatch.setattr(multi_repo_git_utils, "detect_unpushed", lambda repo_path, **kwargs: set())
    for name in ("keep", "drop"):
        (tmp_path / name / ".git").mkdir(parents=True)

    config = StandupConfig.from_dict({
        "scanning": {
            "root_path": str(tmp_path),
            "exclude_repos": ["drop"],
            "author_filter": "Jane",
            "skip_merge_commits": True,
            "fetch_timeout": 2.5,
        }
    })

    result = CommitAggregator(config).scan(CUTOFF)

    assert result.repo_names == ["keep"]
    assert calls == [{"author_filter": "Jane", "skip_merges": True, "timeout": 2.5, "now": calls[0]["now"]}]


def test_end_to_end_with_real_repositories(tmp_path: Path) -> None:
    from conftest import commit, init_repo, run

    origin = tmp_path / "remotes" / "lib.git"
    origin.mkdir(parents=True)
    run(["git", "init", "-q", "--bare"], cwd=origin)

    lib = init_repo(tmp_path / "code" / "lib")
    run(["git", "remote", "add", "origin", str(origin)], cwd=lib)
    pushed = commit(lib, "fix: handle empty input")
    run(["git", "push", "-q", "origin", "main"], cwd=lib)
    local = commit(lib, "feat: add parser")

    app = init_repo(tmp_path / "code" / "app")
    commit(app, "ancient", date="2020-01-01T00:00:00Z")

    repos = multi_repo_git_utils.discover_repositories(tmp_path / "code")
    result = aggregate(repos, datetime.now(timezone.utc) - timedelta(hours=24))

    assert result.repo_names == ["lib"]
    status = {c.hash: c.is_unpushed for c in result.groups[0].commits}
    assert status == {local: True, pushed: False}


def test_group_order_follows_locale_collation(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    import locale
    import unicodedata

    def accent_folding(value: str) -> str:
        return "".join(c for c in unicodedata.normalize("NFD", value) if not unicodedata.combining(c))

    monkeypatch.setattr(locale, "strxfrm", accent_folding)
    names = ("zeta", "Émile", "alpha")
    _install(monkeypatch, commits={n: [_commit(f"{n}-1", "x", n)] for n in names}, unpushed={})

    result = aggregate([tmp_path / n for n in names], CUTOFF, now=NOW)

    assert result.repo_names == ["alpha", "Émile", "zeta"]
