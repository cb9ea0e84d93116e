"""The interactive picker pattern.

Every picker follows the same contract:
    1. Query git for candidates (commits, stashes, branches)
    2. Fail visibly when there are none, without launching fzf
    3. Format each candidate as a fixed-width, colored `key | label` row
    4. Hand the rows to fzf with one bound key per action
    5. Run the chosen action on the selected key

Detail actions (show a diff, a log) page their output and reopen fzf;
every other action runs once and ends the picker.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from rich.text import Text

from fzgit.commands.ui import FzfSelection, fzf_select_async
from fzgit.core.config import PickerConfig
from fzgit.core.console import Severity, ansi, console
from fzgit.core.result import Err, GitError, Ok, Result
from fzgit.git.client import AsyncRepo

logger = logging.getLogger(__name__)

ROW_SEPARATOR = " | "
PRIMARY_KEY = "enter"


@dataclass(frozen=True)
class Candidate:
    key: str
    label: str
    severity: Severity = Severity.INFO
    kind: str = "commit"


ActionRunner = Callable[[AsyncRepo, Candidate], Awaitable[Result[str, GitError]]]
Selector = Callable[..., Awaitable[FzfSelection | None]]
Pager = Callable[[str], None]


@dataclass(frozen=True)
class PickerAction:
    key: str
    description: str
    run: ActionRunner
    detail: bool = False


@dataclass(frozen=True)
class PickerOutcome:
    action: PickerAction | None = None
    candidate: Candidate | None = None
    message: str | None = None

    @property
    def selected(self) -> bool:
        return self.candidate is not None


class Picker(ABC):
    """A list-producing git query plus the actions bound to its rows."""

    name: str = "picker"
    prompt: str = "> "
    empty_message: str = "Nothing to pick from."

    @abstractmethod
    async def list_candidates(self, repo: AsyncRepo) -> Result[list[Candidate], GitError]:
        """Return the rows to show, already filtered."""

    @abstractmethod
    def actions(self) -> list[PickerAction]:
        """Return the bound actions; the one keyed `enter` is primary."""

    def preview_command(self) -> str | None:
        """Shell command fzf runs for the preview pane; `{1}` is the row key."""
        return None

    def format_row(self, candidate: Candidate, width: int) -> str:
        return f"{ansi(candidate.key.ljust(width), candidate.severity)}{ROW_SEPARATOR}{candidate.label}"

    def header(self) -> str:
        return "  ".join(f"{action.key}: {action.description}" for action in self.actions())


def row_key(line: str) -> str:
    """Recover the candidate key from an fzf row, with or without ANSI codes."""
    plain = Text.from_ansi(line).plain
    return plain.split(ROW_SEPARATOR, 1)[0].strip()


def page_output(text: str) -> None:
    with console.pager(styles=True):
        console.print(Text.from_ansi(text))


async def run_picker(
    picker: Picker,
    repo: AsyncRepo,
    settings: PickerConfig | None = None,
    *,
    select: Selector = fzf_select_async,
    pager: Pager = page_output,
) -> Result[PickerOutcome, GitError]:
    settings = settings or PickerConfig()

    match await picker.list_candidates(repo):
        case Err(err):
            return Err(err)
        case Ok(candidates):
            pass

    if not candidates:
        return Err(GitError(picker.empty_message, context={"repo": str(repo.path)}))

    width = max(len(candidate.key) for candidate in candidates)
    rows = [picker.format_row(candidate, width) for candidate in candidates]
    by_key = {candidate.key: candidate for candidate in candidates}
    actions = {action.key: action for action in picker.actions()}
    expect: Sequence[str] = [key for key in actions if key != PRIMARY_KEY]

    while True:
        selection = await select(
            rows,
            picker.prompt,
            expect=expect,
            header=picker.header(),
            preview=picker.preview_command(),
            preview_window=settings.preview_window,
            bind=[f"{settings.toggle_preview_key}:toggle-preview"],
            height=settings.height,
            extra_args=settings.fzf_args,
        )
        if selection is None:
            logger.debug("%s picker aborted", picker.name)
            return Ok(PickerOutcome())

        key = row_key(selection.line)
        candidate = by_key.get(key)
        if candidate is None:
            return Err(GitError(f"Unrecognized selection: {key}"))

        action = actions.get(selection.key or PRIMARY_KEY)
        if action is None:
            return Err(GitError(f"No action bound to {selection.key}"))

        logger.debug("%s: %s on %s", picker.name, action.description, candidate.key)
        match await action.run(repo, candidate):
            case Err(err):
                return Err(err)
            case Ok(text):
                pass

        if action.detail:
            pager(text)
            continue

        return Ok(PickerOutcome(action=action, candidate=candidate, message=text))
