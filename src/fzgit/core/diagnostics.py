"""System diagnostics and health checks.

Provides diagnostic checks for fzgit's dependencies:
    - External tool availability (git, fzf, less)
    - Configuration file validity
    - Drift between the configured and the actual global git settings
"""

from __future__ import annotations

import asyncio
import json
import shutil
import tomllib
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field

from fzgit.core.config import AppConfig
from fzgit.git.client import get_global_config


class ExternalTool(BaseModel):
    name: str
    binary: str
    version_args: list[str] = Field(default_factory=lambda: ["--version"])
    required: bool = True
    install_hint: str | None = None


@dataclass
class ToolCheck:
    tool: ExternalTool
    status: str
    version: str | None
    message: str | None = None


class DiagnosticCheck(ABC):
    name: str

    @abstractmethod
    async def run(self) -> tuple[str, str]:
        """Run the diagnostic and return (status, message)."""


class ConfigCheck(DiagnosticCheck):
    def __init__(self, config_path: Path | None) -> None:
        self.config_path = config_path
        self.name = "Config"

    async def run(self) -> tuple[str, str]:
        if not self.config_path or not self.config_path.exists():
            return "warn", f"Config file missing: {self.config_path} (defaults in use)"
        raw = self.config_path.read_text(encoding="utf-8")
        try:
            if self.config_path.suffix.lower() == ".json":
                json.loads(raw)
            else:
                tomllib.loads(raw)
        except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
            return "error", f"Invalid config: {exc}"
        return "ok", "Configuration valid."


class GitSettingsCheck(DiagnosticCheck):
    """Compare git's global config with the values `fzgit setup` would write."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.name = "Git settings"

    async def run(self) -> tuple[str, str]:
        drift: list[str] = []
        for key, expected in self.config.git.settings():
            actual = await get_global_config(key)
            if actual is None or actual.lower() != expected.lower():
                drift.append(f"{key}={actual or 'unset'} (want {expected})")
        if drift:
            return "warn", "Run `fzgit setup`: " + ", ".join(drift)
        return "ok", "Global git settings match the configuration."


DEFAULT_TOOLS: list[ExternalTool] = [
    ExternalTool(
        name="Git", binary="git", install_hint="Install via your package manager (brew, apt, etc.)"
    ),
    ExternalTool(
        name="fzf", binary="fzf", install_hint="Install via your package manager (brew, apt, etc.)"
    ),
    ExternalTool(
        name="less",
        binary="less",
        install_hint="Used to page detail views; falls back to plain output.",
        required=False,
    ),
]


def _select_tools(names: Iterable[str] | None) -> list[ExternalTool]:
    if not names:
        return DEFAULT_TOOLS

    requested = {name.lower() for name in names}
    selected = [
        tool
        for tool in DEFAULT_TOOLS
        if tool.name.lower() in requested or tool.binary.lower() in requested
    ]
    return selected or DEFAULT_TOOLS


async def _check_tool(tool: ExternalTool) -> ToolCheck:
    resolved = shutil.which(tool.binary)
    if not resolved:
        status = "missing" if tool.required else "warn"
        return ToolCheck(tool=tool, status=status, version=None, message=tool.install_hint)

    try:
        process = await asyncio.create_subprocess_exec(
            resolved,
            *tool.version_args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
        )
    except FileNotFoundError:
        return ToolCheck(tool=tool, status="missing", version=None, message=tool.install_hint)

    stdout, stderr = await process.communicate()
    output = (stdout or b"").decode().strip() or (stderr or b"").decode().strip()
    version = output.splitlines()[0] if output else None

    if process.returncode != 0:
        return ToolCheck(
            tool=tool, status="error", version=version, message=output or "version command failed"
        )

    return ToolCheck(tool=tool, status="ok", version=version, message=None)


async def _run_doctor(tools: list[ExternalTool]) -> list[ToolCheck]:
    tasks = [asyncio.create_task(_check_tool(tool)) for tool in tools]
    return await asyncio.gather(*tasks)


async def _run_deep_checks(
    config: AppConfig, config_path: Path | None
) -> list[tuple[str, str, str]]:
    diag_checks: list[DiagnosticCheck] = [
        ConfigCheck(config_path),
        GitSettingsCheck(config),
    ]
    results = [await check.run() for check in diag_checks]
    return [
        (check.name, status, message)
        for check, (status, message) in zip(diag_checks, results, strict=True)
    ]


async def run_diagnostics_suite(
    config: AppConfig,
    config_path: Path | None,
    tool_names: list[str] | None,
) -> tuple[list[tuple[str, str, str]], list[ToolCheck]]:
    """Run deep checks, then the binary checks."""
    diag_results = await _run_deep_checks(config, config_path)
    tool_results = await _run_doctor(_select_tools(tool_names))
    return diag_results, tool_results
