"""Concrete pickers: fix-up targets, stashes, commit log, branches, cherry-picks."""

from __future__ import annotations

import shlex
from enum import Enum

from fzgit.core.console import Severity
from fzgit.core.result import Err, GitError, Ok, Result
from fzgit.git import ops as git_ops
from fzgit.git.client import AsyncRepo, GitCommit

from .base import Candidate, Picker, PickerAction

SHOW_PREVIEW = "git show --stat --color=always {1}"
AUTOSQUASH_ENV = {"GIT_SEQUENCE_EDITOR": "true"}


class ResetMode(str, Enum):
    SOFT = "soft"
    MIXED = "mixed"
    HARD = "hard"


def _commit_candidates(commits: list[GitCommit]) -> list[Candidate]:
    candidates: list[Candidate] = []
    for commit in commits:
        severity = Severity.WARNING if git_ops.is_fixup_subject(commit.summary) else Severity.INFO
        candidates.append(Candidate(commit.short_sha, commit.summary, severity, "commit"))
    return candidates


async def _show_commit(repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
    return await repo.show(candidate.key)


async def _cherry_pick(repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
    match await repo.cherry_pick(candidate.key):
        case Err(err):
            return Err(err)
        case Ok(_):
            return Ok(f"Cherry-picked {candidate.key} {candidate.label}")


class FixupPicker(Picker):
    """Pick the commit a staged change should be squashed into."""

    name = "fixup"
    prompt = "fixup> "

    def __init__(self, base: str, rebase: bool = False) -> None:
        self.base = base
        self.rebase = rebase
        self.empty_message = f"No commits to fix up on this branch since {base}."

    async def list_candidates(self, repo: AsyncRepo) -> Result[list[Candidate], GitError]:
        match await repo.get_commits(f"{self.base}..HEAD"):
            case Err(err):
                return Err(err)
            case Ok(commits):
                return Ok(_commit_candidates(git_ops.without_fixups(commits)))

    async def _fixup(self, repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
        match await repo.commit_fixup(candidate.key):
            case Err(err):
                return Err(err)
            case Ok(_):
                pass
        if not self.rebase:
            return Ok(f"Created fixup! commit for {candidate.key} {candidate.label}")

        match await repo.run_git(
            "rebase",
            "--interactive",
            "--autosquash",
            "--autostash",
            f"{candidate.key}~",
            env=AUTOSQUASH_ENV,
        ):
            case Err(err):
                return Err(err)
            case Ok(_):
                return Ok(f"Squashed fixup into {candidate.key} {candidate.label}")

    def actions(self) -> list[PickerAction]:
        return [
            PickerAction("enter", "fixup", self._fixup),
            PickerAction("ctrl-v", "show", _show_commit, detail=True),
        ]

    def preview_command(self) -> str | None:
        return SHOW_PREVIEW


class StashPicker(Picker):
    name = "stash"
    prompt = "stash> "
    empty_message = "No stash entries."

    async def list_candidates(self, repo: AsyncRepo) -> Result[list[Candidate], GitError]:
        match await repo.stash_list():
            case Err(err):
                return Err(err)
            case Ok(entries):
                return Ok([Candidate(entry.ref, entry.summary, Severity.INFO, "stash") for entry in entries])

    @staticmethod
    async def _apply(repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
        result = await repo.stash_apply(candidate.key)
        return result.map(lambda _: f"Applied {candidate.key}")

    @staticmethod
    async def _pop(repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
        result = await repo.stash_pop(candidate.key)
        return result.map(lambda _: f"Popped {candidate.key}")

    @staticmethod
    async def _drop(repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
        result = await repo.stash_drop(candidate.key)
        return result.map(lambda _: f"Dropped {candidate.key}")

    @staticmethod
    async def _show(repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
        return await repo.stash_show(candidate.key)

    def actions(self) -> list[PickerAction]:
        return [
            PickerAction("enter", "apply", self._apply),
            PickerAction("ctrl-p", "pop", self._pop),
            PickerAction("ctrl-x", "drop", self._drop),
            PickerAction("ctrl-v", "show", self._show, detail=True),
        ]

    def preview_command(self) -> str | None:
        return "git stash show --stat --patch --color=always {1}"


class LogPicker(Picker):
    name = "log"
    prompt = "log> "

    def __init__(self, ref: str = "HEAD", limit: int = 200, reset_mode: ResetMode = ResetMode.MIXED) -> None:
        self.ref = ref
        self.limit = limit
        self.reset_mode = ResetMode(reset_mode)
        self.empty_message = f"No commits reachable from {ref}."

    async def list_candidates(self, repo: AsyncRepo) -> Result[list[Candidate], GitError]:
        match await repo.get_commits(self.ref, self.limit):
            case Err(err):
                return Err(err)
            case Ok(commits):
                return Ok(_commit_candidates(commits))

    async def _reset(self, repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
        mode = f"--{self.reset_mode.value}"
        result = await repo.reset(mode, candidate.key)
        return result.map(lambda _: f"Reset to {candidate.key} ({mode})")

    def actions(self) -> list[PickerAction]:
        return [
            PickerAction("enter", "show", _show_commit, detail=True),
            PickerAction("ctrl-r", f"reset --{self.reset_mode.value}", self._reset),
            PickerAction("ctrl-y", "cherry-pick", _cherry_pick),
        ]

    def preview_command(self) -> str | None:
        return SHOW_PREVIEW


class BranchPicker(Picker):
    """Browse local and remote branches not yet merged into the base."""

    name = "branch"
    prompt = "branch> "

    def __init__(self, base: str | None, include_merged: bool = False, force_delete: bool = False) -> None:
        self.base = base
        self.include_merged = include_merged
        self.force_delete = force_delete
        self.empty_message = (
            "No branches found." if include_merged or not base else f"No branches left unmerged into {base}."
        )

    async def list_candidates(self, repo: AsyncRepo) -> Result[list[Candidate], GitError]:
        no_merged = None if self.include_merged else self.base
        match await repo.branch_refs(no_merged=no_merged):
            case Err(err):
                return Err(err)
            case Ok(refs):
                pass

        candidates: list[Candidate] = []
        for ref in git_ops.visible_branches(refs):
            if ref.is_head:
                severity = Severity.SUCCESS
            elif ref.is_remote:
                severity = Severity.WARNING
            else:
                severity = Severity.INFO
            label = ref.subject
            if ref.upstream:
                label = f"[{ref.upstream}] {label}"
            candidates.append(Candidate(ref.name, label, severity, "remote" if ref.is_remote else "local"))
        return Ok(candidates)

    @staticmethod
    async def _switch(repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
        result = await repo.switch(candidate.key, track=candidate.kind == "remote")
        return result.map(lambda _: f"Switched to {candidate.key}")

    async def _delete(self, repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
        if candidate.kind == "remote":
            return Err(GitError(f"Refusing to delete remote branch {candidate.key}."))
        result = await repo.delete_branch(candidate.key, force=self.force_delete)
        return result.map(lambda _: f"Deleted {candidate.key}")

    async def _log(self, repo: AsyncRepo, candidate: Candidate) -> Result[str, GitError]:
        rev_range = f"{self.base}..{candidate.key}" if self.base else candidate.key
        return await repo.log_text(rev_range)

    def actions(self) -> list[PickerAction]:
        return [
            PickerAction("enter", "switch", self._switch),
            PickerAction("ctrl-x", "delete" if not self.force_delete else "delete (force)", self._delete),
            PickerAction("ctrl-v", "log", self._log, detail=True),
        ]

    def preview_command(self) -> str | None:
        if self.base:
            return f"git log --oneline --graph --color=always {shlex.quote(self.base)}..{{1}}"
        return "git log --oneline --graph --color=always {1}"


class CherryPickPicker(Picker):
    """Pick a commit from another branch that HEAD does not have yet."""

    name = "cherry-pick"
    prompt = "cherry-pick> "

    def __init__(self, source: str) -> None:
        self.source = source
        self.empty_message = f"Nothing to cherry-pick from {source}."

    async def list_candidates(self, repo: AsyncRepo) -> Result[list[Candidate], GitError]:
        match await repo.get_commits(
            f"HEAD...{self.source}",
            extra_args=["--cherry-pick", "--right-only", "--no-merges"],
        ):
            case Err(err):
                return Err(err)
            case Ok(commits):
                return Ok(_commit_candidates(commits))

    def actions(self) -> list[PickerAction]:
        return [
            PickerAction("enter", "cherry-pick", _cherry_pick),
            PickerAction("ctrl-v", "show", _show_commit, detail=True),
        ]

    def preview_command(self) -> str | None:
        return SHOW_PREVIEW
