"""fzgit - git and fzf, wired together as a Python CLI.

This package provides the `fzgit` command-line tool: fuzzy pickers for
commits, stashes and branches, a global git config loader, and a branch
synchronization workflow.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
