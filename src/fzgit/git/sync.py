"""Branch synchronization workflow.

Rebase a feature branch onto its base, force-push it, merge it into the
base and push the base after confirmation:

    1. refuse while a rebase is in progress
    2. optionally switch to the named branch
    3. resolve the branch's upstream (the base), prompting when unset
    4. fetch, then rebase onto the base (interactive by default)
    5. push --force-with-lease
    6. fast-forward the local base to its remote
    7. merge: --no-ff with a two-line message for several commits, else --ff-only
    8. show outgoing commits, confirm, push
    9. on decline, an unanswered prompt or push failure: reset the base one step
       and return to the branch

Every step before the final push is fatal; only the push triggers a rollback.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from fzgit.core.console import error, info, success, warning
from fzgit.core.result import Err, GitError, Ok, Result

from . import ops as git_ops
from .client import AsyncRepo, GitCommit

logger = logging.getLogger(__name__)

UpstreamPrompt = Callable[[str, str], str]
Confirm = Callable[[str], bool]
OutgoingReporter = Callable[[str, list[GitCommit]], None]


def is_yes(answer: str) -> bool:
    """Only a literal y or Y confirms."""
    return answer.strip() in {"y", "Y"}


@dataclass
class SyncOptions:
    branch: str | None = None
    remote: str = "origin"
    fetch: bool = True
    interactive: bool = True
    default_branch: str | None = None


@dataclass
class SyncReport:
    branch: str
    base: str
    upstream: str
    merged_commits: int = 0
    pushed: bool = False
    outgoing: list[GitCommit] = field(default_factory=list)


async def _resolve_upstream(
    repo: AsyncRepo, branch: str, options: SyncOptions, ask_upstream: UpstreamPrompt
) -> Result[str, GitError]:
    upstream = await repo.upstream(branch)
    if upstream and git_ops.split_upstream(upstream, [options.remote])[1] != branch:
        return Ok(upstream)

    match await git_ops.default_branch(repo, options.remote, options.default_branch):
        case Ok(name):
            suggestion = f"{options.remote}/{name}"
        case Err(_):
            suggestion = f"{options.remote}/main"

    answer = ask_upstream(branch, suggestion).strip() or suggestion
    if git_ops.split_upstream(answer, [options.remote])[1] == branch:
        return Err(GitError(f"{answer} cannot be the base of {branch}."))

    match await repo.set_upstream(branch, answer):
        case Err(err):
            return Err(err)
        case Ok(_):
            info(f"Upstream of {branch} set to {answer}")
    return Ok(answer)


async def _rebase(repo: AsyncRepo, upstream: str, interactive: bool) -> Result[None, GitError]:
    if interactive:
        return await repo.run_attached("rebase", "--interactive", upstream)
    result = await repo.run_git("rebase", upstream)
    return result.map(lambda _: None)


async def _return_to(repo: AsyncRepo, branch: str) -> None:
    match await repo.switch(branch):
        case Err(err):
            error(f"Could not switch back to {branch}: {err.message}")
        case Ok(_):
            pass


async def _rollback(repo: AsyncRepo, base: str, branch: str) -> None:
    warning(f"Rolling back {base} by one commit")
    match await repo.reset("--hard", "HEAD~1"):
        case Err(err):
            error(f"Rollback of {base} failed: {err.message}")
        case Ok(_):
            pass
    await _return_to(repo, branch)


async def sync_branch(
    repo: AsyncRepo,
    options: SyncOptions,
    *,
    ask_upstream: UpstreamPrompt,
    confirm: Confirm,
    report_outgoing: OutgoingReporter | None = None,
) -> Result[SyncReport, GitError]:
    match await repo.rebase_in_progress():
        case Err(err):
            return Err(err)
        case Ok(True):
            return Err(
                GitError(
                    "A rebase is already in progress. Finish it with `git rebase --continue` "
                    "or `git rebase --abort` first.",
                    context={"repo": str(repo.path)},
                )
            )
        case Ok(False):
            pass

    if options.branch:
        match await repo.switch(options.branch):
            case Err(err):
                return Err(err)
            case Ok(_):
                pass

    match await repo.current_branch():
        case Err(err):
            return Err(err)
        case Ok(branch):
            pass

    match await _resolve_upstream(repo, branch, options, ask_upstream):
        case Err(err):
            return Err(err)
        case Ok(upstream):
            pass

    match await repo.remotes():
        case Err(err):
            return Err(err)
        case Ok(remote_names):
            pass

    # longest remote name wins
    upstream_remote, base = git_ops.split_upstream(upstream, sorted(remote_names, key=len, reverse=True))
    pushed_base = f"{options.remote}/{base}"
    if not (
        await repo.ref_exists(f"refs/heads/{base}") or await repo.ref_exists(f"refs/remotes/{pushed_base}")
    ):
        return Err(
            GitError(
                f"Base {base!r} of {upstream} has no local branch and no {pushed_base} to create one from.",
                context={"repo": str(repo.path), "upstream": upstream, "remote": options.remote},
            )
        )
    report = SyncReport(branch=branch, base=base, upstream=upstream)

    if options.fetch:
        for remote in dict.fromkeys(name for name in (options.remote, upstream_remote) if name):
            info(f"Fetching {remote}")
            match await repo.fetch(remote):
                case Err(err):
                    return Err(err)
                case Ok(_):
                    pass

    info(f"Rebasing {branch} onto {upstream}")
    match await _rebase(repo, upstream, options.interactive):
        case Err(err):
            return Err(
                GitError(
                    f"Rebase of {branch} onto {upstream} failed. Resolve it, then "
                    "`git rebase --continue` or `git rebase --abort`.",
                    context=err.context,
                )
            )
        case Ok(_):
            pass

    info(f"Pushing {branch} to {options.remote} (force-with-lease)")
    match await repo.push(options.remote, branch, force_with_lease=True):
        case Err(err):
            return Err(err)
        case Ok(_):
            pass

    match await repo.switch(base):
        case Err(err):
            return Err(err)
        case Ok(_):
            pass

    tracked_base = upstream if upstream_remote else pushed_base
    if await repo.ref_exists(f"refs/remotes/{tracked_base}"):
        match await repo.merge(tracked_base, ff_only=True):
            case Err(err):
                await _return_to(repo, branch)
                return Err(err)
            case Ok(_):
                pass

    match await repo.count_commits(f"{base}..{branch}"):
        case Err(err):
            await _return_to(repo, branch)
            return Err(err)
        case Ok(count):
            report.merged_commits = count

    if count == 0:
        warning(f"{base} already contains {branch}; nothing to merge")
        await _return_to(repo, branch)
        return Ok(report)

    if count > 1:
        messages = [f"Merge branch '{branch}' into {base}", f"Brings in {count} commits from {branch}."]
        merge_result = await repo.merge(branch, no_ff=True, messages=messages)
    else:
        merge_result = await repo.merge(branch, ff_only=True)
    match merge_result:
        case Err(err):
            await _return_to(repo, branch)
            return Err(err)
        case Ok(_):
            success(f"Merged {branch} into {base} ({count} commit{'s' if count != 1 else ''})")

    if await repo.ref_exists(f"refs/remotes/{pushed_base}"):
        outgoing_range = f"{pushed_base}..{base}"
    else:
        outgoing_range = base
    match await repo.get_commits(outgoing_range):
        case Err(err):
            await _rollback(repo, base, branch)
            return Err(err)
        case Ok(outgoing):
            report.outgoing = outgoing
    if report_outgoing is not None:
        report_outgoing(base, outgoing)

    try:
        confirmed = confirm(f"Push {base} to {options.remote}?")
    except (EOFError, KeyboardInterrupt):
        confirmed = False
    except SystemExit:
        await _rollback(repo, base, branch)
        raise
    if not confirmed:
        await _rollback(repo, base, branch)
        return Err(GitError(f"Push of {base} declined; rolled back and returned to {branch}."))

    match await repo.push(options.remote, base):
        case Err(err):
            await _rollback(repo, base, branch)
            return Err(GitError(f"Push of {base} failed: {err.message}", context=err.context))
        case Ok(_):
            report.pushed = True
            success(f"Pushed {base} to {options.remote}")

    await _return_to(repo, branch)
    logger.debug("sync finished: %s", report)
    return Ok(report)
