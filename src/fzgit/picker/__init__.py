"""Interactive fzf pickers over git data.

    - base: Candidate, PickerAction, Picker and run_picker
    - variants: fixup, stash, log, branch and cherry-pick pickers
"""

from __future__ import annotations

from .base import Candidate, Picker, PickerAction, PickerOutcome, row_key, run_picker
from .variants import (
    BranchPicker,
    CherryPickPicker,
    FixupPicker,
    LogPicker,
    ResetMode,
    StashPicker,
)

__all__ = [
    "BranchPicker",
    "Candidate",
    "CherryPickPicker",
    "FixupPicker",
    "LogPicker",
    "Picker",
    "PickerAction",
    "PickerOutcome",
    "ResetMode",
    "StashPicker",
    "row_key",
    "run_picker",
]
