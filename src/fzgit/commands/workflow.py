from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich import box
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from fzgit.commands._common import app_config, open_repo, unwrap_or_exit
from fzgit.core.console import console, error, info, success
from fzgit.core.decorators import handle_exceptions
from fzgit.core.result import Err, Ok
from fzgit.git.client import GitCommit, set_global_config
from fzgit.git.sync import SyncOptions, is_yes, sync_branch as run_sync


@handle_exceptions
def setup(
    ctx: typer.Context,
    name: str | None = typer.Option(None, "--name", help="Override user.name."),
    email: str | None = typer.Option(None, "--email", help="Override user.email."),
) -> None:
    """Apply the configured settings to git's global configuration."""
    config = app_config(ctx)
    updates = {key: value for key, value in (("user_name", name), ("user_email", email)) if value}
    git_settings = config.git.model_copy(update=updates)

    async def _apply() -> int:
        applied = 0
        for key, value in git_settings.settings():
            if config.dry_run:
                info(f"git config --global {key} {value}")
                continue
            match await set_global_config(key, value):
                case Err(err):
                    error(f"Failed to set {key}: {err.message}")
                    raise typer.Exit(code=1)
                case Ok(_):
                    success(f"{key} = {value}")
                    applied += 1
        return applied

    applied = asyncio.run(_apply())
    if not config.dry_run:
        console.print(f"Applied {applied} global git settings.")


def _ask_upstream(branch: str, suggestion: str) -> str:
    return Prompt.ask(f"No base configured for [cyan]{branch}[/cyan]. Upstream branch", default=suggestion)


def _show_outgoing(base: str, commits: list[GitCommit]) -> None:
    table = Table(title=f"Commits to push on {base}", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("SHA", style="cyan", no_wrap=True)
    table.add_column("Summary", style="white")
    table.add_column("Author", style="white", no_wrap=True)
    table.add_column("Date", style="white", no_wrap=True)
    for commit in commits:
        table.add_row(
            commit.short_sha,
            escape(commit.summary),
            commit.author_name,
            commit.committed_datetime.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@handle_exceptions
def sync_branch(
    ctx: typer.Context,
    branch: str | None = typer.Argument(None, help="Branch to sync (default: current branch)."),
    repo_path: Path = typer.Option(Path("."), "--repo", "-r", help="Repository path."),
    remote: str | None = typer.Option(None, "--remote", help="Remote to fetch from and push to."),
    no_fetch: bool = typer.Option(False, "--no-fetch", help="Skip fetching before the rebase."),
    no_interactive: bool = typer.Option(
        False, "--no-interactive", help="Rebase without opening the todo list."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Push the base branch without asking."),
) -> None:
    """Rebase a branch onto its base, merge it there and push after confirmation."""
    config = app_config(ctx)
    repo = open_repo(repo_path)
    options = SyncOptions(
        branch=branch,
        remote=remote or config.sync.remote,
        fetch=config.sync.fetch and not no_fetch,
        interactive=config.sync.interactive and not no_interactive,
        default_branch=config.sync.default_branch,
    )

    def _confirm(question: str) -> bool:
        if yes:
            return True
        return is_yes(Prompt.ask(f"{question} (y/N)", default="", show_default=False))

    report = unwrap_or_exit(
        asyncio.run(
            run_sync(
                repo,
                options,
                ask_upstream=_ask_upstream,
                confirm=_confirm,
                report_outgoing=_show_outgoing,
            )
        )
    )
    if report.pushed:
        success(f"{report.branch} is on {report.base} and pushed to {options.remote}.")
