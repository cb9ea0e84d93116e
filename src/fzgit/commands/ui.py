from __future__ import annotations

import asyncio
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

from fzgit.core.console import warning

# fzf exit codes: 1 = no match, 130 = aborted with Esc/Ctrl-C.
_FZF_NO_SELECTION = {1, 130}


@dataclass(frozen=True)
class FzfSelection:
    """The row chosen in fzf and the key that accepted it ("" for Enter)."""

    key: str
    line: str


def fzf_available() -> bool:
    return shutil.which("fzf") is not None


def fzf_select(
    lines: Sequence[str],
    prompt: str = "> ",
    *,
    expect: Sequence[str] = (),
    header: str | None = None,
    preview: str | None = None,
    preview_window: str | None = None,
    bind: Sequence[str] = (),
    height: str | None = None,
    ansi: bool = True,
    extra_args: Sequence[str] = (),
) -> FzfSelection | None:
    """
    Run fzf interactively. Returns the selection or None if cancelled.
    """
    if not fzf_available():
        warning("fzf not found. Please install it for interactive selection.")
        return None

    cmd = ["fzf", "--prompt", prompt, "--no-multi"]
    if ansi:
        cmd.append("--ansi")
    if height:
        cmd.extend(["--height", height])
    if expect:
        cmd.append(f"--expect={','.join(expect)}")
    if header:
        cmd.extend(["--header", header])
    if preview:
        cmd.extend(["--preview", preview])
        if preview_window:
            cmd.extend(["--preview-window", preview_window])
    for binding in bind:
        cmd.extend(["--bind", binding])
    cmd.extend(extra_args)

    proc = subprocess.run(
        cmd,
        input="\n".join(lines),
        text=True,
        stdout=subprocess.PIPE,
    )

    if proc.returncode in _FZF_NO_SELECTION:
        return None
    if proc.returncode != 0:
        warning(f"fzf exited with status {proc.returncode}.")
        return None

    return parse_fzf_output(proc.stdout, expecting=bool(expect))


def parse_fzf_output(output: str, expecting: bool) -> FzfSelection | None:
    """Split fzf stdout into (key, line). With --expect the first line is the key."""
    rows = output.rstrip("\n").split("\n")
    if expecting:
        if len(rows) < 2 or not rows[1].strip():
            return None
        return FzfSelection(key=rows[0].strip(), line=rows[1])
    if not rows[0].strip():
        return None
    return FzfSelection(key="", line=rows[0])


async def fzf_select_async(
    lines: Sequence[str],
    prompt: str = "> ",
    **options: object,
) -> FzfSelection | None:
    """Async wrapper for fzf_select to keep blocking IO off the event loop."""
    return await asyncio.to_thread(fzf_select, list(lines), prompt, **options)  # type: ignore[arg-type]
