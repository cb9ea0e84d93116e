from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from fzgit.core.config import AppConfig, GitConfig, load_config


def test_defaults_without_file(tmp_path: Path) -> None:
    config, meta = load_config(config_path=tmp_path / "missing.toml")
    assert meta.file_loaded is False
    assert meta.error is None
    assert config.sync.remote == "origin"
    assert config.picker.preview_window == "right:60%:wrap"
    assert config.git.conflict_style == "diff3"


def test_toml_file_is_loaded(tmp_path: Path) -> None:
    path = tmp_path / "fzgit.toml"
    path.write_text(
        '[git]\nuser_name = "Ada"\n\n[sync]\nremote = "upstream"\ndefault_branch = "trunk"\n',
        encoding="utf-8",
    )
    config, meta = load_config(config_path=path)
    assert meta.file_loaded is True
    assert config.git.user_name == "Ada"
    assert config.sync.remote == "upstream"
    assert config.sync.default_branch == "trunk"


def test_json_file_is_loaded(tmp_path: Path) -> None:
    path = tmp_path / "fzgit.json"
    path.write_text(json.dumps({"picker": {"log_limit": 50}}), encoding="utf-8")
    config, _ = load_config(config_path=path)
    assert config.picker.log_limit == 50


def test_env_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "fzgit.toml"
    path.write_text('[sync]\nremote = "upstream"\n', encoding="utf-8")
    config, meta = load_config(
        config_path=path, env={"FZGIT_SYNC__REMOTE": "fork", "FZGIT_LOG_LEVEL": "DEBUG"}
    )
    assert config.sync.remote == "fork"
    assert config.log_level == "DEBUG"
    assert {"sync.remote", "log_level"} <= meta.env_overrides


def test_config_path_from_env(tmp_path: Path) -> None:
    path = tmp_path / "elsewhere.toml"
    path.write_text('log_level = "WARNING"\n', encoding="utf-8")
    config, meta = load_config(env={"FZGIT_CONFIG": str(path)})
    assert meta.path == path
    assert config.log_level == "WARNING"


def test_syntax_error_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "fzgit.toml"
    path.write_text("[sync\nremote = ", encoding="utf-8")
    config, meta = load_config(config_path=path)
    assert meta.error is not None
    assert "Syntax error" in meta.error
    assert config.sync.remote == "origin"


def test_invalid_value_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "fzgit.toml"
    path.write_text('[git]\nconflict_style = "fancy"\n', encoding="utf-8")
    config, meta = load_config(config_path=path)
    assert meta.error is not None
    assert config.git.conflict_style == "diff3"


def test_git_settings_order_and_extra() -> None:
    git = GitConfig(user_name="Ada", user_email="ada@example.com", extra={"core.editor": "vim"})
    assert git.settings() == [
        ("user.name", "Ada"),
        ("user.email", "ada@example.com"),
        ("pull.rebase", "true"),
        ("rebase.autoStash", "true"),
        ("merge.conflictStyle", "diff3"),
        ("push.default", "current"),
        ("core.editor", "vim"),
    ]


def test_git_settings_skip_unset_identity() -> None:
    keys = [key for key, _ in GitConfig().settings()]
    assert "user.name" not in keys
    assert "user.email" not in keys


def test_conflict_style_is_validated() -> None:
    with pytest.raises(ValidationError):
        GitConfig(conflict_style="fancy")


def test_dry_run_copy() -> None:
    config = AppConfig().model_copy(update={"dry_run": True})
    assert config.dry_run is True
