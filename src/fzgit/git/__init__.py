"""Git operations and repository management.

This package provides async git operations:
    - AsyncRepo: Non-blocking git commands
    - Commit, stash and branch listings
    - Base branch resolution and candidate filters
    - The branch synchronization workflow
"""

from __future__ import annotations

from .client import (
    AsyncRepo,
    BranchRef,
    GitCommit,
    StashEntry,
    get_global_config,
    set_global_config,
)
from .ops import (
    base_ref,
    default_branch,
    is_fixup_subject,
    split_upstream,
    visible_branches,
    without_fixups,
)

__all__ = [
    "AsyncRepo",
    "BranchRef",
    "GitCommit",
    "StashEntry",
    "base_ref",
    "default_branch",
    "get_global_config",
    "is_fixup_subject",
    "set_global_config",
    "split_upstream",
    "visible_branches",
    "without_fixups",
]
