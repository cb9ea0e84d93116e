"""Application configuration management.

Handles loading and validating configuration from multiple sources:
    - TOML/JSON config files
    - Environment variables (FZGIT_* prefix)
    - Default values

Key components:
    - AppConfig: Main configuration model
    - load_config(): Safe config loading with fallback
    - ConfigLoadResult: Metadata about config source
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from unittest.mock import patch

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

CONFIG_ENV_VAR = "FZGIT_CONFIG"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or validated."""


# -----------------------------------------------------------------------------
# Sub-configuration Models
# -----------------------------------------------------------------------------


class GitConfig(BaseModel):
    """Global git settings applied by `fzgit setup`."""

    user_name: str | None = Field(default=None, description="Value for user.name.")
    user_email: str | None = Field(default=None, description="Value for user.email.")
    pull_rebase: bool = Field(default=True, description="Rebase instead of merge on pull.")
    rebase_autostash: bool = Field(
        default=True, description="Stash and restore local changes around a rebase."
    )
    conflict_style: str = Field(default="diff3", description="Value for merge.conflictStyle.")
    push_default: str = Field(default="current", description="Value for push.default.")
    extra: dict[str, str] = Field(
        default_factory=dict, description="Additional global git settings, key to value."
    )

    @field_validator("conflict_style")
    @classmethod
    def check_conflict_style(cls, v: str) -> str:
        if v not in {"merge", "diff3", "zdiff3"}:
            raise ValueError(f"Unsupported conflict style: {v}")
        return v

    def settings(self) -> list[tuple[str, str]]:
        """Return (key, value) pairs in the order they are applied."""
        pairs: list[tuple[str, str]] = []
        if self.user_name:
            pairs.append(("user.name", self.user_name))
        if self.user_email:
            pairs.append(("user.email", self.user_email))
        pairs.extend(
            [
                ("pull.rebase", str(self.pull_rebase).lower()),
                ("rebase.autoStash", str(self.rebase_autostash).lower()),
                ("merge.conflictStyle", self.conflict_style),
                ("push.default", self.push_default),
            ]
        )
        pairs.extend(sorted(self.extra.items()))
        return pairs


class PickerConfig(BaseModel):
    """fzf presentation settings shared by every picker."""

    preview_window: str = Field(default="right:60%:wrap", description="fzf --preview-window.")
    toggle_preview_key: str = Field(default="ctrl-/", description="Key that toggles the preview.")
    height: str = Field(default="80%", description="fzf --height.")
    log_limit: int = Field(default=200, ge=1, description="Commits listed by the log picker.")
    fzf_args: list[str] = Field(
        default_factory=list, description="Extra arguments appended to every fzf call."
    )


class SyncConfig(BaseModel):
    """Defaults for the branch synchronization workflow."""

    remote: str = Field(default="origin", description="Remote used for fetch and push.")
    default_branch: str | None = Field(
        default=None, description="Base branch when the remote HEAD cannot be resolved."
    )
    fetch: bool = Field(default=True, description="Fetch the remote before rebasing.")
    interactive: bool = Field(default=True, description="Use an interactive rebase.")


@dataclass
class ConfigLoadResult:
    path: Path
    file_loaded: bool
    env_overrides: set[str]
    error: str | None = None


class AppConfig(BaseSettings):
    """Application-wide configuration with nested sub-configs."""

    model_config = SettingsConfigDict(
        env_prefix="FZGIT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    git: GitConfig = Field(default_factory=GitConfig)
    picker: PickerConfig = Field(default_factory=PickerConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    log_level: str = Field(default="INFO", description="Log level for fzgit output.")
    dry_run: bool = Field(
        default=False, description="If true, print git commands instead of running them."
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        # Ensure environment variables override config file entries.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


def _resolve_config_path(config_path: Path | None, env_vars: Mapping[str, str]) -> Path:
    candidate = config_path or env_vars.get(CONFIG_ENV_VAR) or (Path.home() / ".fzgit.toml")
    return Path(candidate).expanduser()


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    raw = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    parser = json.loads if suffix == ".json" else tomllib.loads

    try:
        data = parser(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Syntax error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config root in {path} must be a mapping.")

    return data


def _detect_env_overrides(env_vars: Mapping[str, str]) -> set[str]:
    """Detect which fields are overridden by environment variables.

    For nested models, detects vars like FZGIT_SYNC__REMOTE, FZGIT_GIT__USER_NAME.
    """
    prefix = AppConfig.model_config.get("env_prefix", "")
    delimiter = AppConfig.model_config.get("env_nested_delimiter", "__")
    overrides: set[str] = set()

    nested_models: dict[str, type[BaseModel]] = {
        "git": GitConfig,
        "picker": PickerConfig,
        "sync": SyncConfig,
    }

    for group_name, model_cls in nested_models.items():
        for field in model_cls.model_fields:
            env_key = f"{prefix}{group_name}{delimiter}{field}".upper()
            if env_key in env_vars:
                overrides.add(f"{group_name}.{field}")

    for field in ("log_level", "dry_run"):
        if f"{prefix}{field}".upper() in env_vars:
            overrides.add(field)

    return overrides


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[AppConfig, ConfigLoadResult]:
    """
    Load configuration with Safe Mode fallback.
    If the file is invalid, returns default config + error message.
    """
    env_vars: Mapping[str, str] = os.environ if env is None else {**os.environ, **env}
    resolved_path = _resolve_config_path(config_path, env_vars)
    env_overrides = _detect_env_overrides(env_vars)

    error: str | None = None
    file_loaded = False
    file_data: dict[str, Any] = {}

    try:
        file_data = _read_config_file(resolved_path)
        file_loaded = resolved_path.exists()
    except ConfigError as exc:
        error = str(exc)

    context_manager = (
        patch.dict(os.environ, env_vars, clear=False) if env is not None else nullcontext()
    )

    try:
        with context_manager:
            config = AppConfig(**file_data)
    except ValidationError as exc:
        error = str(exc)
        config = AppConfig()

    load_result = ConfigLoadResult(
        path=resolved_path,
        file_loaded=file_loaded,
        env_overrides=env_overrides,
        error=error,
    )

    return config, load_result
