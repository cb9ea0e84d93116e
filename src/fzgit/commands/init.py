"""Interactive configuration setup.

Writes the fzgit config file from Rich prompts, seeded with the active values.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import BaseModel
from rich.prompt import Confirm, Prompt

from fzgit.core.config import AppConfig, GitConfig, PickerConfig, SyncConfig
from fzgit.core.console import console, success


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    return json.dumps(str(value))


def _section(model: BaseModel, *, exclude: set[str] | None = None) -> str:
    return "\n".join(
        f"{key} = {_toml_value(value)}"
        for key, value in model.model_dump(exclude=exclude).items()
        if value is not None
    )


def _write_config(
    path: Path, git: GitConfig, picker: PickerConfig, sync: SyncConfig, log_level: str
) -> None:
    fzf_args_literal = ", ".join(json.dumps(item) for item in picker.fzf_args)
    parts = [
        "# fzgit configuration (TOML)",
        f"log_level = {_toml_value(log_level)}",
        "",
        "[git]",
        _section(git, exclude={"extra"}),
        "",
        "[picker]",
        _section(picker, exclude={"fzf_args"}),
        f"fzf_args = [{fzf_args_literal}]",
        "",
        "[sync]",
        _section(sync),
    ]
    if git.extra:
        parts += ["", "[git.extra]"]
        parts += [f"{json.dumps(key)} = {json.dumps(value)}" for key, value in sorted(git.extra.items())]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(parts) + "\n", encoding="utf-8")


def init(
    ctx: typer.Context,
    config_path: Path | None = typer.Option(None, help="Where to write config."),
) -> None:
    """Interactive initializer that writes the active config file."""
    state = ctx.obj
    defaults: AppConfig = state.config
    target_path = (config_path or state.config_meta.path).expanduser()

    user_name = Prompt.ask("Git user.name (optional)", default=defaults.git.user_name or "").strip()
    user_email = Prompt.ask("Git user.email (optional)", default=defaults.git.user_email or "").strip()
    conflict_style = Prompt.ask(
        "merge.conflictStyle",
        choices=["merge", "diff3", "zdiff3"],
        default=defaults.git.conflict_style,
    )
    push_default = Prompt.ask("push.default", default=defaults.git.push_default)
    remote = Prompt.ask("Remote for sync-branch", default=defaults.sync.remote)
    default_branch = Prompt.ask(
        "Default branch when the remote HEAD is unknown (optional)",
        default=defaults.sync.default_branch or "",
    ).strip()
    interactive = Confirm.ask("Open the rebase todo list during sync-branch?", default=defaults.sync.interactive)
    log_level = Prompt.ask("Log level", default=defaults.log_level)

    git = GitConfig(
        user_name=user_name or None,
        user_email=user_email or None,
        pull_rebase=defaults.git.pull_rebase,
        rebase_autostash=defaults.git.rebase_autostash,
        conflict_style=conflict_style,
        push_default=push_default,
        extra=defaults.git.extra,
    )
    sync = SyncConfig(
        remote=remote,
        default_branch=default_branch or None,
        fetch=defaults.sync.fetch,
        interactive=interactive,
    )

    _write_config(target_path, git, defaults.picker, sync, log_level)
    success(f"Wrote config to {target_path}")
    console.print("Run `fzgit setup` to apply the git settings globally.")
