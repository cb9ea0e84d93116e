from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from git import Repo
from typer.testing import CliRunner

from fzgit.commands.ui import FzfSelection, parse_fzf_output
from fzgit.core.config import PickerConfig
from fzgit.core.console import Severity
from fzgit.core.result import Err, Ok
from fzgit.git.client import AsyncRepo
from fzgit.main import app
from fzgit.picker import (
    BranchPicker,
    Candidate,
    CherryPickPicker,
    FixupPicker,
    LogPicker,
    ResetMode,
    StashPicker,
    row_key,
    run_picker,
)


class FakeSelect:
    """Stands in for fzf: picks rows by candidate key, in order."""

    def __init__(self, *choices: tuple[str, str] | None) -> None:
        self.choices = list(choices)
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, rows: list[str], prompt: str, **options: Any) -> FzfSelection | None:
        self.calls.append({"rows": rows, "prompt": prompt, **options})
        choice = self.choices.pop(0)
        if choice is None:
            return None
        key, wanted = choice
        line = next(row for row in rows if row_key(row) == wanted)
        return FzfSelection(key=key, line=line)


class RecordingPager:
    def __init__(self) -> None:
        self.pages: list[str] = []

    def __call__(self, text: str) -> None:
        self.pages.append(text)


def _repo(repo: Repo) -> AsyncRepo:
    return AsyncRepo(Path(repo.working_tree_dir).resolve())


@pytest.fixture
def topic_repo(git_repo: Repo, commit_file: Callable[..., str]) -> Repo:
    git_repo.git.switch("-c", "topic")
    commit_file(git_repo, "a.txt", "a\n", "add a")
    commit_file(git_repo, "b.txt", "b\n", "add b")
    return git_repo


def test_format_row_pads_keys_and_colors_them() -> None:
    picker = StashPicker()
    row = picker.format_row(Candidate("abc", "subject", Severity.WARNING), width=7)
    assert row == "\x1b[33mabc    \x1b[0m | subject"
    assert row_key(row) == "abc"
    assert row_key("plain1 | label | with bars") == "plain1"


def test_parse_fzf_output() -> None:
    assert parse_fzf_output("\nabc | x\n", expecting=True) == FzfSelection("", "abc | x")
    assert parse_fzf_output("ctrl-x\nabc | x\n", expecting=True) == FzfSelection("ctrl-x", "abc | x")
    assert parse_fzf_output("ctrl-x\n", expecting=True) is None
    assert parse_fzf_output("abc | x\n", expecting=False) == FzfSelection("", "abc | x")
    assert parse_fzf_output("", expecting=False) is None


@pytest.mark.asyncio
async def test_empty_candidates_never_open_fzf(git_repo: Repo) -> None:
    select = FakeSelect()
    result = await run_picker(StashPicker(), _repo(git_repo), select=select)
    match result:
        case Err(err):
            assert err.message == "No stash entries."
        case Ok(_):
            raise AssertionError("expected an error for an empty stash list")
    assert select.calls == []


@pytest.mark.asyncio
async def test_fzf_receives_actions_and_settings(topic_repo: Repo) -> None:
    select = FakeSelect(None)
    settings = PickerConfig(toggle_preview_key="ctrl-t", height="50%", fzf_args=["--cycle"])
    result = await run_picker(LogPicker("HEAD", 10), _repo(topic_repo), settings, select=select)
    assert result.unwrap().selected is False

    call = select.calls[0]
    assert call["prompt"] == "log> "
    assert list(call["expect"]) == ["ctrl-r", "ctrl-y"]
    assert call["bind"] == ["ctrl-t:toggle-preview"]
    assert call["height"] == "50%"
    assert call["extra_args"] == ["--cycle"]
    assert "{1}" in call["preview"]
    assert "ctrl-r: reset --mixed" in call["header"]
    assert len(call["rows"]) == 3


@pytest.mark.asyncio
async def test_fixup_lists_only_branch_commits_without_fixups(
    topic_repo: Repo, commit_file: Callable[..., str]
) -> None:
    commit_file(topic_repo, "a.txt", "a2\n", "fixup! add a")
    picker = FixupPicker("main")
    candidates = (await picker.list_candidates(_repo(topic_repo))).unwrap()
    assert [c.label for c in candidates] == ["add b", "add a"]


@pytest.mark.asyncio
async def test_fixup_commits_staged_changes(topic_repo: Repo) -> None:
    target = topic_repo.git.rev_parse("--short", "HEAD~1")
    (Path(topic_repo.working_tree_dir) / "a.txt").write_text("a fixed\n", encoding="utf-8")
    topic_repo.git.add("a.txt")

    select = FakeSelect(("", target))
    outcome = (await run_picker(FixupPicker("main"), _repo(topic_repo), select=select)).unwrap()
    assert outcome.selected
    assert outcome.message.startswith("Created fixup! commit")
    assert topic_repo.head.commit.summary == "fixup! add a"


@pytest.mark.asyncio
async def test_fixup_with_rebase_autosquashes(topic_repo: Repo) -> None:
    target = topic_repo.git.rev_parse("--short", "HEAD~1")
    (Path(topic_repo.working_tree_dir) / "a.txt").write_text("a fixed\n", encoding="utf-8")
    topic_repo.git.add("a.txt")

    select = FakeSelect(("", target))
    outcome = (await run_picker(FixupPicker("main", rebase=True), _repo(topic_repo), select=select)).unwrap()
    assert outcome.message.startswith("Squashed fixup")
    subjects = topic_repo.git.log("--format=%s", "main..HEAD").splitlines()
    assert subjects == ["add b", "add a"]
    assert topic_repo.git.show("HEAD~1:a.txt") == "a fixed"


@pytest.mark.asyncio
async def test_detail_action_pages_and_reopens(topic_repo: Repo) -> None:
    head = topic_repo.git.rev_parse("--short", "HEAD")
    select = FakeSelect(("", head), None)
    pager = RecordingPager()
    outcome = (await run_picker(LogPicker("HEAD", 10), _repo(topic_repo), select=select, pager=pager)).unwrap()
    assert len(select.calls) == 2
    assert len(pager.pages) == 1
    assert "add b" in pager.pages[0]
    assert outcome.selected is False


@pytest.mark.asyncio
async def test_log_reset_uses_configured_mode(topic_repo: Repo) -> None:
    target = topic_repo.git.rev_parse("--short", "HEAD~1")
    select = FakeSelect(("ctrl-r", target))
    picker = LogPicker("HEAD", 10, reset_mode=ResetMode.HARD)
    outcome = (await run_picker(picker, _repo(topic_repo), select=select)).unwrap()
    assert outcome.message == f"Reset to {target} (--hard)"
    assert topic_repo.head.commit.summary == "add a"
    assert not (Path(topic_repo.working_tree_dir) / "b.txt").exists()


@pytest.mark.asyncio
async def test_stash_actions(git_repo: Repo) -> None:
    readme = Path(git_repo.working_tree_dir) / "README.md"
    for text in ("one\n", "two\n"):
        readme.write_text(text, encoding="utf-8")
        git_repo.git.stash("push", "-m", f"wip {text.strip()}")
    repo = _repo(git_repo)

    outcome = (await run_picker(StashPicker(), repo, select=FakeSelect(("ctrl-x", "stash@{1}")))).unwrap()
    assert outcome.message == "Dropped stash@{1}"
    outcome = (await run_picker(StashPicker(), repo, select=FakeSelect(("ctrl-p", "stash@{0}")))).unwrap()
    assert outcome.message == "Popped stash@{0}"
    assert readme.read_text() == "two\n"
    assert git_repo.git.stash("list") == ""


@pytest.mark.asyncio
async def test_branch_candidates(cloned_repo: Repo, commit_file: Callable[..., str]) -> None:
    cloned_repo.git.switch("-c", "other")
    commit_file(cloned_repo, "o.txt", "o\n", "other work")
    cloned_repo.git.push("origin", "other")
    cloned_repo.git.switch("main")
    cloned_repo.git.branch("-D", "other")
    cloned_repo.git.branch("merged-already")

    picker = BranchPicker("origin/main", include_merged=True)
    candidates = (await picker.list_candidates(_repo(cloned_repo))).unwrap()
    by_key = {c.key: c for c in candidates}
    assert set(by_key) == {"main", "merged-already", "origin/other"}
    assert by_key["main"].severity is Severity.SUCCESS
    assert by_key["main"].label.startswith("[origin/main] ")
    assert by_key["origin/other"].severity is Severity.WARNING
    assert by_key["merged-already"].severity is Severity.INFO

    unmerged = (await BranchPicker("origin/main").list_candidates(_repo(cloned_repo))).unwrap()
    assert [c.key for c in unmerged] == ["origin/other"]


@pytest.mark.asyncio
async def test_branch_actions(cloned_repo: Repo, commit_file: Callable[..., str]) -> None:
    cloned_repo.git.switch("-c", "other")
    commit_file(cloned_repo, "o.txt", "o\n", "other work")
    cloned_repo.git.push("origin", "other")
    cloned_repo.git.switch("main")
    cloned_repo.git.branch("-D", "other")
    repo = _repo(cloned_repo)

    result = await run_picker(BranchPicker("origin/main"), repo, select=FakeSelect(("ctrl-x", "origin/other")))
    match result:
        case Err(err):
            assert "Refusing to delete remote branch" in err.message
        case Ok(_):
            raise AssertionError("remote branches must not be deleted")

    outcome = (
        await run_picker(BranchPicker("origin/main"), repo, select=FakeSelect(("", "origin/other")))
    ).unwrap()
    assert outcome.message == "Switched to origin/other"
    assert cloned_repo.active_branch.name == "other"
    assert cloned_repo.git.rev_parse("--abbrev-ref", "other@{upstream}") == "origin/other"

    cloned_repo.git.switch("main")
    picker = BranchPicker("origin/main", force_delete=True)
    outcome = (await run_picker(picker, repo, select=FakeSelect(("ctrl-x", "other")))).unwrap()
    assert outcome.message == "Deleted other"
    assert "other" not in [head.name for head in cloned_repo.heads]


@pytest.mark.asyncio
async def test_cherry_pick_skips_equivalent_commits(topic_repo: Repo) -> None:
    add_b = topic_repo.git.rev_parse("HEAD")
    topic_repo.git.switch("main")
    topic_repo.git.cherry_pick(add_b)
    repo = _repo(topic_repo)

    picker = CherryPickPicker("topic")
    candidates = (await picker.list_candidates(repo)).unwrap()
    assert [c.label for c in candidates] == ["add a"]

    outcome = (await run_picker(picker, repo, select=FakeSelect(("", candidates[0].key)))).unwrap()
    assert outcome.message.startswith("Cherry-picked")
    assert (await picker.list_candidates(repo)).unwrap() == []


def test_cli_lists_candidates_without_fzf(runner: CliRunner, topic_repo: Repo) -> None:
    result = runner.invoke(app, ["log", "--repo", topic_repo.working_tree_dir, "--no-fzf"])
    assert result.exit_code == 0, result.output
    assert "add b" in result.output


def test_cli_reports_empty_picker(runner: CliRunner, git_repo: Repo) -> None:
    result = runner.invoke(app, ["stashes", "--repo", git_repo.working_tree_dir, "--no-fzf"])
    assert result.exit_code == 1
    assert "No stash entries." in result.output


def test_cli_fixup_without_branch_commits(runner: CliRunner, git_repo: Repo) -> None:
    result = runner.invoke(app, ["fixup", "--repo", git_repo.working_tree_dir, "--no-fzf"])
    assert result.exit_code == 1
    assert "No commits to fix up on this branch since main." in result.output
