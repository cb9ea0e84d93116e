"""Helpers shared by the command modules."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TypeVar

import typer

from fzgit.core.config import AppConfig
from fzgit.core.console import error
from fzgit.core.result import Err, GitError, Ok, Result
from fzgit.git.client import AsyncRepo

T = TypeVar("T")


def app_config(ctx: typer.Context) -> AppConfig:
    state = ctx.obj
    return state.config if state is not None else AppConfig()


def unwrap_or_exit(result: Result[T, GitError]) -> T:
    match result:
        case Ok(value):
            return value
        case Err(err):
            error(err.message)
            raise typer.Exit(code=1)


def open_repo(path: Path) -> AsyncRepo:
    return unwrap_or_exit(asyncio.run(AsyncRepo.open(path.expanduser())))
