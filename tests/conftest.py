from __future__ import annotations

import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from git import Repo
from typer.testing import CliRunner

# Detect CI environment (GitHub Actions sets CI=true)
IS_CI = os.environ.get("CI", "").lower() == "true"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "local_only: marks tests that require local environment (skip in CI)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip local_only tests when running in CI."""
    if not IS_CI:
        return
    skip_ci = pytest.mark.skip(reason="Skipped in CI (requires local environment)")
    for item in items:
        if "local_only" in item.keywords:
            item.add_marker(skip_ci)


ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_config(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point config to a temp path so tests don't touch user state."""
    cfg_path = tmp_path / "fzgit.toml"
    monkeypatch.setenv("FZGIT_CONFIG", str(cfg_path))
    for key in list(os.environ):
        if key.startswith("FZGIT_") and key != "FZGIT_CONFIG":
            monkeypatch.delenv(key, raising=False)
    return cfg_path


@pytest.fixture(autouse=True)
def isolate_git(tmp_path: Path, monkeypatch: Any) -> Path:
    """Give git a throwaway global config and a fixed identity."""
    global_config = tmp_path / "gitconfig"
    global_config.write_text("", encoding="utf-8")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Author")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_EDITOR", "true")
    return global_config


CommitFn = Callable[..., str]


@pytest.fixture
def commit_file() -> CommitFn:
    """Write a file, commit it and return the new commit's short sha."""

    def _commit(repo: Repo, name: str, content: str, message: str) -> str:
        path = Path(repo.working_tree_dir) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        repo.git.add(name)
        repo.git.commit("-m", message)
        return repo.git.rev_parse("--short", "HEAD")

    return _commit


@pytest.fixture
def git_repo(tmp_path: Path, commit_file: CommitFn) -> Repo:
    """A repository on `main` with one commit."""
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    repo = Repo.init(repo_dir, initial_branch="main")
    commit_file(repo, "README.md", "hello\n", "initial commit")
    return repo


@pytest.fixture
def cloned_repo(tmp_path: Path, git_repo: Repo) -> Repo:
    """`git_repo` pushed to a bare `origin`, with origin/HEAD set."""
    remote_dir = tmp_path / "origin.git"
    Repo.init(remote_dir, bare=True, initial_branch="main")
    git_repo.git.remote("add", "origin", str(remote_dir))
    git_repo.git.push("-u", "origin", "main")
    git_repo.git.remote("set-head", "origin", "main")
    return git_repo
