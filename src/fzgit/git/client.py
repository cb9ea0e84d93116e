from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from fzgit.core.result import Err, GitError, Ok, Result

logger = logging.getLogger(__name__)

_FIELD_SEP = "\x00"
_RECORD_SEP = "\x1e"


@dataclass
class GitCommit:
    hexsha: str
    short_sha: str
    summary: str
    author_name: str
    author_email: str
    committed_date: int

    @property
    def committed_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.committed_date)


@dataclass
class StashEntry:
    ref: str
    summary: str


@dataclass
class BranchRef:
    """A local or remote-tracking branch as reported by for-each-ref."""

    refname: str
    name: str
    subject: str
    is_head: bool = False
    upstream: str | None = None
    symref: str | None = None

    @property
    def is_remote(self) -> bool:
        return self.refname.startswith("refs/remotes/")

    @property
    def remote(self) -> str | None:
        if not self.is_remote:
            return None
        return self.refname.split("/", 3)[2]

    @property
    def local_name(self) -> str:
        """Branch name without the remote prefix."""
        if not self.is_remote:
            return self.name
        return self.refname.split("/", 3)[3]


def _git_env(env: Mapping[str, str] | None) -> dict[str, str] | None:
    if not env:
        return None
    return {**os.environ, **env}


async def _run_git(
    cwd: Path, *args: str, env: Mapping[str, str] | None = None
) -> Result[str, GitError]:
    """Run git with asyncio and return stdout as text, wrapping failures."""
    if not cwd.exists():
        return Err(GitError("Repository path does not exist", context={"cwd": str(cwd)}))

    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        process = await asyncio.create_subprocess_exec(
            "git",
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
            cwd=cwd,
            env=_git_env(env),
        )
    except FileNotFoundError:
        return Err(GitError("git executable not found on PATH", context={"cwd": str(cwd)}))
    except Exception as exc:
        return Err(
            GitError(
                "Failed to start git",
                context={"cwd": str(cwd), "args": list(args), "error": str(exc)},
            )
        )

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        stdout_text = stdout.decode("utf-8", errors="replace").strip()
        detail = message or stdout_text or f"git {' '.join(args)} failed"
        return Err(
            GitError(
                detail,
                context={"cwd": str(cwd), "args": list(args), "returncode": process.returncode},
            )
        )

    return Ok(stdout.decode("utf-8", errors="replace"))


async def _run_git_attached(
    cwd: Path, *args: str, env: Mapping[str, str] | None = None
) -> Result[None, GitError]:
    """Run git attached to the terminal so editors and conflict hints reach the user."""
    logger.debug("git %s (cwd=%s, attached)", " ".join(args), cwd)
    try:
        process = await asyncio.create_subprocess_exec("git", *args, cwd=cwd, env=_git_env(env))
    except FileNotFoundError:
        return Err(GitError("git executable not found on PATH", context={"cwd": str(cwd)}))

    returncode = await process.wait()
    if returncode != 0:
        return Err(
            GitError(
                f"git {' '.join(args)} failed",
                context={"cwd": str(cwd), "args": list(args), "returncode": returncode},
            )
        )
    return Ok(None)


def _parse_commits(raw: str) -> list[GitCommit]:
    commits: list[GitCommit] = []
    records = [rec for rec in raw.split(_RECORD_SEP) if rec.strip()]
    for record in records:
        fields = record.strip().split(_FIELD_SEP)
        if len(fields) < 6:
            continue
        sha, short_sha, author_name, author_email, ts, summary = fields[:6]
        commits.append(
            GitCommit(
                hexsha=sha,
                short_sha=short_sha,
                summary=summary,
                author_name=author_name,
                author_email=author_email,
                committed_date=_safe_int(ts),
            )
        )
    return commits


def _parse_stashes(raw: str) -> list[StashEntry]:
    entries: list[StashEntry] = []
    for line in raw.splitlines():
        if not line.strip():
            continue
        ref, _, summary = line.partition(_FIELD_SEP)
        entries.append(StashEntry(ref=ref, summary=summary))
    return entries


def _parse_branch_refs(raw: str) -> list[BranchRef]:
    refs: list[BranchRef] = []
    for line in raw.splitlines():
        fields = line.split(_FIELD_SEP)
        if len(fields) < 6:
            continue
        refname, name, head, upstream, symref, subject = fields[:6]
        refs.append(
            BranchRef(
                refname=refname,
                name=name,
                subject=subject,
                is_head=head.strip() == "*",
                upstream=upstream or None,
                symref=symref or None,
            )
        )
    return refs


def _safe_int(value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


async def _resolve_worktree(path: Path) -> Result[Path, GitError]:
    match await _run_git(path, "rev-parse", "--show-toplevel"):
        case Ok(raw):
            resolved = Path(raw.strip()).resolve()
            return Ok(resolved)
        case Err(err):
            return Err(err)


class AsyncRepo:
    """Async git wrapper built on subprocess plumbing."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def path(self) -> Path:
        return self._root

    @classmethod
    async def open(cls, path: Path | str = ".") -> Result["AsyncRepo", GitError]:
        root = Path(path).expanduser()
        match await _resolve_worktree(root):
            case Ok(resolved_root):
                return Ok(cls(resolved_root))
            case Err(err):
                return Err(err)

    async def run_git(self, *args: str, env: Mapping[str, str] | None = None) -> Result[str, GitError]:
        return await _run_git(self._root, *args, env=env)

    async def run_attached(
        self, *args: str, env: Mapping[str, str] | None = None
    ) -> Result[None, GitError]:
        return await _run_git_attached(self._root, *args, env=env)

    async def current_branch(self) -> Result[str, GitError]:
        match await self.run_git("symbolic-ref", "--quiet", "--short", "HEAD"):
            case Ok(output):
                return Ok(output.strip())
            case Err(err):
                return Err(GitError("HEAD is detached; check out a branch first.", context=err.context))

    async def ref_exists(self, ref: str) -> bool:
        result = await self.run_git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        return result.is_ok()

    async def git_path(self, name: str) -> Result[Path, GitError]:
        """Resolve a path inside the git dir (works for worktrees too)."""
        match await self.run_git("rev-parse", "--git-path", name):
            case Ok(output):
                candidate = Path(output.strip())
                return Ok(candidate if candidate.is_absolute() else self._root / candidate)
            case Err(err):
                return Err(err)

    async def rebase_in_progress(self) -> Result[bool, GitError]:
        for name in ("rebase-merge", "rebase-apply"):
            match await self.git_path(name):
                case Err(err):
                    return Err(err)
                case Ok(path):
                    if path.exists():
                        return Ok(True)
        return Ok(False)

    async def upstream(self, branch: str) -> str | None:
        """Return the upstream ref of a branch, or None when none is configured."""
        result = await self.run_git(
            "rev-parse", "--abbrev-ref", "--symbolic-full-name", f"{branch}@{{upstream}}"
        )
        match result:
            case Ok(output):
                return output.strip() or None
            case Err(_):
                return None

    async def set_upstream(self, branch: str, upstream: str) -> Result[None, GitError]:
        result = await self.run_git("branch", f"--set-upstream-to={upstream}", branch)
        return result.map(lambda _: None)

    async def remotes(self) -> Result[list[str], GitError]:
        match await self.run_git("remote"):
            case Ok(output):
                return Ok([line.strip() for line in output.splitlines() if line.strip()])
            case Err(err):
                return Err(err)

    async def remote_head(self, remote: str = "origin") -> str | None:
        """Return e.g. 'origin/main' from refs/remotes/<remote>/HEAD, if set."""
        match await self.run_git("symbolic-ref", "--quiet", "--short", f"refs/remotes/{remote}/HEAD"):
            case Ok(output):
                return output.strip() or None
            case Err(_):
                return None

    async def count_commits(self, rev_range: str) -> Result[int, GitError]:
        match await self.run_git("rev-list", "--count", rev_range):
            case Ok(output):
                return Ok(_safe_int(output.strip()))
            case Err(err):
                return Err(err)

    async def get_commits(
        self,
        ref_range: str,
        limit: int | None = None,
        *,
        extra_args: Sequence[str] = (),
    ) -> Result[list[GitCommit], GitError]:
        format_str = "%H%x00%h%x00%an%x00%ae%x00%at%x00%s%x1e"
        args = ["log", "--date=unix", f"--format={format_str}", *extra_args]
        if limit is not None:
            args.append(f"--max-count={limit}")
        args.extend([ref_range, "--"])
        match await self.run_git(*args):
            case Ok(output):
                return Ok(_parse_commits(output))
            case Err(err):
                return Err(err)

    async def show(self, ref: str, *, stat: bool = False, color: bool = True) -> Result[str, GitError]:
        args = ["show"]
        if color:
            args.append("--color=always")
        if stat:
            args.append("--stat")
        args.append(ref)
        return await self.run_git(*args)

    async def log_text(self, ref_range: str, *, color: bool = True) -> Result[str, GitError]:
        args = ["log", "--oneline", "--graph", "--decorate"]
        if color:
            args.append("--color=always")
        args.append(ref_range)
        return await self.run_git(*args)

    async def stash_list(self) -> Result[list[StashEntry], GitError]:
        match await self.run_git("stash", "list", "--format=%gd%x00%s"):
            case Ok(output):
                return Ok(_parse_stashes(output))
            case Err(err):
                return Err(err)

    async def stash_apply(self, ref: str) -> Result[None, GitError]:
        result = await self.run_git("stash", "apply", ref)
        return result.map(lambda _: None)

    async def stash_pop(self, ref: str) -> Result[None, GitError]:
        result = await self.run_git("stash", "pop", ref)
        return result.map(lambda _: None)

    async def stash_drop(self, ref: str) -> Result[None, GitError]:
        result = await self.run_git("stash", "drop", ref)
        return result.map(lambda _: None)

    async def stash_show(self, ref: str, *, color: bool = True) -> Result[str, GitError]:
        args = ["stash", "show", "--patch", "--stat"]
        if color:
            args.append("--color=always")
        args.append(ref)
        return await self.run_git(*args)

    async def branch_refs(self, *, no_merged: str | None = None) -> Result[list[BranchRef], GitError]:
        fields = [
            "%(refname)",
            "%(refname:short)",
            "%(HEAD)",
            "%(upstream:short)",
            "%(symref)",
            "%(contents:subject)",
        ]
        args = ["for-each-ref", "--sort=-committerdate", f"--format={'%00'.join(fields)}"]
        if no_merged:
            args.append(f"--no-merged={no_merged}")
        args.extend(["refs/heads", "refs/remotes"])
        match await self.run_git(*args):
            case Ok(output):
                return Ok(_parse_branch_refs(output))
            case Err(err):
                return Err(err)

    async def switch(self, branch: str, *, track: bool = False) -> Result[None, GitError]:
        args = ["switch"]
        if track:
            args.append("--track")
        args.append(branch)
        result = await self.run_git(*args)
        return result.map(lambda _: None)

    async def delete_branch(self, branch: str, *, force: bool = False) -> Result[None, GitError]:
        result = await self.run_git("branch", "-D" if force else "-d", branch)
        return result.map(lambda _: None)

    async def reset(self, mode: str, ref: str) -> Result[None, GitError]:
        result = await self.run_git("reset", mode, ref)
        return result.map(lambda _: None)

    async def cherry_pick(self, ref: str) -> Result[None, GitError]:
        result = await self.run_git("cherry-pick", ref)
        return result.map(lambda _: None)

    async def commit_fixup(self, ref: str) -> Result[None, GitError]:
        result = await self.run_git("commit", f"--fixup={ref}")
        return result.map(lambda _: None)

    async def fetch(self, remote: str = "origin") -> Result[None, GitError]:
        result = await self.run_git("fetch", "--prune", remote)
        return result.map(lambda _: None)

    async def push(
        self, remote: str, refspec: str, *, force_with_lease: bool = False
    ) -> Result[None, GitError]:
        args = ["push"]
        if force_with_lease:
            args.append("--force-with-lease")
        args.extend([remote, refspec])
        result = await self.run_git(*args)
        return result.map(lambda _: None)

    async def merge(
        self,
        ref: str,
        *,
        ff_only: bool = False,
        no_ff: bool = False,
        messages: Sequence[str] = (),
    ) -> Result[None, GitError]:
        args = ["merge", "--no-edit"]
        if ff_only:
            args.append("--ff-only")
        if no_ff:
            args.append("--no-ff")
        for message in messages:
            args.extend(["-m", message])
        args.append(ref)
        result = await self.run_git(*args)
        return result.map(lambda _: None)


async def set_global_config(key: str, value: str, cwd: Path | None = None) -> Result[None, GitError]:
    """Write one key to git's global configuration."""
    result = await _run_git(cwd or Path.home(), "config", "--global", key, value)
    return result.map(lambda _: None)


async def get_global_config(key: str, cwd: Path | None = None) -> str | None:
    match await _run_git(cwd or Path.home(), "config", "--global", "--get", key):
        case Ok(output):
            return output.strip()
        case Err(_):
            return None
