from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from types import FrameType

import click
import typer
from rich import box
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree
from typer.main import get_command

from . import __version__
from .core.config import AppConfig, ConfigLoadResult, load_config
from .core.console import console, setup_logging
from .core.diagnostics import run_diagnostics_suite
from .core.registry import discover_commands

app = typer.Typer(help="fzgit: fzf pickers and branch workflows for git.")
logger = logging.getLogger(__name__)


def handle_interrupt(signum: int, frame: FrameType | None) -> None:
    """Exit on Ctrl-C, pointing at the commands that undo a half-finished rebase."""
    console.print("\n[yellow]Interrupted.[/yellow]")
    console.print("[dim]If a rebase was left in progress, run:[/dim]\n  git rebase --abort")
    raise SystemExit(128 + signum)


@dataclass
class AppState:
    config: AppConfig
    config_meta: ConfigLoadResult
    logger: logging.Logger


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to an fzgit config file (TOML or JSON)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print git config changes instead of applying them."),
) -> None:
    loaded_config, meta = load_config(config_path=config)
    if dry_run:
        loaded_config = loaded_config.model_copy(update={"dry_run": True})

    logger = setup_logging(level=loaded_config.log_level, verbose=verbose)
    signal.signal(signal.SIGINT, handle_interrupt)

    ctx.obj = AppState(config=loaded_config, config_meta=meta, logger=logger)

    if meta.error:
        console.print(
            Panel(
                f"[bold red]Configuration Error - Safe Mode Active[/bold red]\n\n"
                f"Failed to load {meta.path}:\n{escape(meta.error)}\n\n"
                f"[yellow]Using default settings. Run `fzgit init` to rewrite it.[/yellow]",
                border_style="red",
            )
        )
    else:
        logger.debug(
            "Loaded configuration from %s (env overrides: %s)",
            meta.path,
            sorted(meta.env_overrides),
        )


@app.command("com")
def command_catalog() -> None:
    """Display the available fzgit commands and their descriptions."""
    click_app = get_command(app)
    table = Table(title="fzgit commands", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Command", style="cyan", no_wrap=True)
    table.add_column("Summary", style="white")

    commands: Mapping[str, click.Command] = {}
    if isinstance(click_app, click.Group):
        commands = click_app.commands
    for name, command in sorted(commands.items()):
        if name == "help":
            continue
        summary = (command.help or command.short_help or "").strip()
        table.add_row(name, summary.splitlines()[0] if summary else "-")

    console.print(table)


@app.command("doctor")
def doctor(
    ctx: typer.Context,
    tool: list[str] | None = typer.Option(
        None, "--tool", "-t", help="Check only specific tools (name or binary)."
    ),
) -> None:
    """Check git, fzf and the config file."""
    state: AppState = ctx.obj
    state.logger.debug("Running doctor for tools: %s", tool or "all")

    diag_results, tool_results = asyncio.run(
        run_diagnostics_suite(
            config=state.config,
            config_path=state.config_meta.path,
            tool_names=tool,
        )
    )

    tree = Tree("System Health")
    style_map = {"ok": "green", "warn": "yellow", "error": "red", "missing": "red"}
    diag_branch = tree.add("Deep Checks")
    for name, status, message in diag_results:
        style = style_map.get(status, "white")
        diag_branch.add(f"[{style}]{status}[/{style}] {name}: {message}")

    tools_branch = tree.add("Binaries")
    for result in tool_results:
        style = style_map.get(result.status, "white")
        message = result.version or result.message or result.tool.install_hint or ""
        tools_branch.add(
            f"[{style}]{result.status}[/{style}] {result.tool.name} ({result.tool.binary}) {message}".strip()
        )

    console.print(tree)

    if any(result.status == "missing" for result in tool_results):
        raise typer.Exit(code=1)


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """Show the active configuration and where it came from."""
    state: AppState = ctx.obj
    meta = state.config_meta

    table = Table(title="Config", box=box.SIMPLE, expand=True)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    for section, value in state.config.model_dump().items():
        if isinstance(value, dict):
            for key, item in value.items():
                table.add_row(f"{section}.{key}", escape(str(item)))
        else:
            table.add_row(section, escape(str(value)))

    console.print(table)

    meta_lines = [
        f"Path: {meta.path}",
        "File loaded: yes" if meta.file_loaded else "File loaded: no (using defaults + env)",
    ]
    if meta.env_overrides:
        meta_lines.append("Env overrides: " + ", ".join(sorted(meta.env_overrides)))

    console.print(Panel("\n".join(meta_lines), title="Config source", box=box.SIMPLE))


@app.command("version")
def show_version() -> None:
    """Print the fzgit version."""
    console.print(__version__)


def _register_commands() -> None:
    commands_path = Path(__file__).resolve().parent / "commands"
    typer_modules, function_commands = discover_commands(commands_path)

    for name, module in typer_modules:
        app.add_typer(module.app, name=name)

    for spec in function_commands:
        app.command(spec.name)(spec.handler)


def _register_commands_with_timing() -> None:
    start = perf_counter()
    _register_commands()
    logger.debug("Command registry initialized in %.3f seconds", perf_counter() - start)


_register_commands_with_timing()


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
