from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich import box
from rich.markup import escape
from rich.table import Table

from fzgit.commands._common import app_config, open_repo, unwrap_or_exit
from fzgit.commands.ui import fzf_available
from fzgit.core.config import AppConfig
from fzgit.core.console import console, success
from fzgit.core.decorators import handle_exceptions
from fzgit.core.result import Err, GitError, Ok, Result
from fzgit.git import ops as git_ops
from fzgit.git.client import AsyncRepo
from fzgit.picker import (
    BranchPicker,
    Candidate,
    CherryPickPicker,
    FixupPicker,
    LogPicker,
    Picker,
    ResetMode,
    StashPicker,
    run_picker,
)


def _resolve_base(repo: AsyncRepo, config: AppConfig, base: str | None) -> str:
    if base:
        return base
    return unwrap_or_exit(
        asyncio.run(git_ops.base_ref(repo, config.sync.remote, config.sync.default_branch))
    )


async def _candidates_or_error(picker: Picker, repo: AsyncRepo) -> Result[list[Candidate], GitError]:
    match await picker.list_candidates(repo):
        case Err(err):
            return Err(err)
        case Ok(candidates):
            if not candidates:
                return Err(GitError(picker.empty_message))
            return Ok(candidates)


def _render_candidates(picker: Picker, candidates: list[Candidate]) -> None:
    table = Table(title=picker.name.capitalize(), box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Key", no_wrap=True)
    table.add_column("Description", style="white")
    for candidate in candidates:
        style = candidate.severity.color
        table.add_row(f"[{style}]{escape(candidate.key)}[/]", escape(candidate.label))
    console.print(table)
    console.print("[dim]Install fzf (or drop --no-fzf) to act on an entry.[/dim]")


def _pick(ctx: typer.Context, picker: Picker, repo: AsyncRepo, no_fzf: bool) -> None:
    config = app_config(ctx)
    if no_fzf or not fzf_available():
        candidates = unwrap_or_exit(asyncio.run(_candidates_or_error(picker, repo)))
        _render_candidates(picker, candidates)
        return

    outcome = unwrap_or_exit(asyncio.run(run_picker(picker, repo, config.picker)))
    if outcome.selected and outcome.message:
        success(outcome.message)


@handle_exceptions
def fixup(
    ctx: typer.Context,
    repo_path: Path = typer.Option(Path("."), "--repo", "-r", help="Repository path."),
    base: str | None = typer.Option(None, "--base", "-b", help="Only offer commits after this ref."),
    rebase: bool = typer.Option(False, "--rebase", help="Autosquash right after committing."),
    no_fzf: bool = typer.Option(False, "--no-fzf", help="List candidates instead of opening fzf."),
) -> None:
    """Commit staged changes as a fixup! of a commit picked from this branch."""
    repo = open_repo(repo_path)
    base_ref = _resolve_base(repo, app_config(ctx), base)
    _pick(ctx, FixupPicker(base_ref, rebase=rebase), repo, no_fzf)


@handle_exceptions
def stashes(
    ctx: typer.Context,
    repo_path: Path = typer.Option(Path("."), "--repo", "-r", help="Repository path."),
    no_fzf: bool = typer.Option(False, "--no-fzf", help="List stashes instead of opening fzf."),
) -> None:
    """Browse stash entries and apply, pop, drop or show one."""
    repo = open_repo(repo_path)
    _pick(ctx, StashPicker(), repo, no_fzf)


@handle_exceptions
def log(
    ctx: typer.Context,
    repo_path: Path = typer.Option(Path("."), "--repo", "-r", help="Repository path."),
    ref: str = typer.Option("HEAD", "--ref", help="Ref or range to browse."),
    limit: int | None = typer.Option(None, "--limit", "-n", help="Max commits to list."),
    mode: ResetMode = typer.Option(ResetMode.MIXED, "--mode", help="Reset mode bound to ctrl-r."),
    no_fzf: bool = typer.Option(False, "--no-fzf", help="List commits instead of opening fzf."),
) -> None:
    """Browse the commit log; show, reset to, or cherry-pick a commit."""
    repo = open_repo(repo_path)
    picker = LogPicker(ref, limit or app_config(ctx).picker.log_limit, reset_mode=mode)
    _pick(ctx, picker, repo, no_fzf)


@handle_exceptions
def branches(
    ctx: typer.Context,
    repo_path: Path = typer.Option(Path("."), "--repo", "-r", help="Repository path."),
    base: str | None = typer.Option(None, "--base", "-b", help="Hide branches merged into this ref."),
    all_branches: bool = typer.Option(False, "--all", "-a", help="Include merged branches."),
    force: bool = typer.Option(False, "--force", "-f", help="Delete with -D instead of -d."),
    no_fzf: bool = typer.Option(False, "--no-fzf", help="List branches instead of opening fzf."),
) -> None:
    """Browse unmerged local and remote branches; switch to, delete or inspect one."""
    repo = open_repo(repo_path)
    base_ref = _resolve_base(repo, app_config(ctx), base)
    _pick(ctx, BranchPicker(base_ref, include_merged=all_branches, force_delete=force), repo, no_fzf)


@handle_exceptions
def cherry_pick(
    ctx: typer.Context,
    source: str | None = typer.Argument(None, help="Branch to pick from (default: base branch)."),
    repo_path: Path = typer.Option(Path("."), "--repo", "-r", help="Repository path."),
    no_fzf: bool = typer.Option(False, "--no-fzf", help="List commits instead of opening fzf."),
) -> None:
    """Cherry-pick a commit from another branch that HEAD does not have yet."""
    repo = open_repo(repo_path)
    source_ref = _resolve_base(repo, app_config(ctx), source)
    _pick(ctx, CherryPickPicker(source_ref), repo, no_fzf)
