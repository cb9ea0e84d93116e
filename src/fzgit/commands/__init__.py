"""CLI command modules for the fzgit toolkit.

This package contains all user-facing CLI commands organized by domain:
    - pickers: fzf pickers (fixup, stashes, log, branches, cherry-pick)
    - workflow: global git setup and the branch sync workflow
    - init: interactive config file writer
    - ui: fzf invocation helpers
"""
