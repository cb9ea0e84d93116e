"""High-level git queries shared by pickers and workflows.

Provides:
    - Base/default branch resolution
    - Candidate filters (fix-up markers, shadowed and symbolic remote refs)
"""

from __future__ import annotations

from collections.abc import Iterable

from fzgit.core.result import Err, GitError, Ok, Result

from . import client as git_core

FIXUP_MARKERS = ("fixup! ", "squash! ", "amend! ")
_FALLBACK_BRANCHES = ("main", "master", "trunk", "develop")


async def default_branch(
    repo: git_core.AsyncRepo, remote: str = "origin", configured: str | None = None
) -> Result[str, GitError]:
    """
    Return the repository's base branch name (without remote prefix).

    Resolution order: the remote's symbolic HEAD, the configured default,
    then the first of main/master/trunk/develop that exists locally or on the remote.
    """
    remote_head = await repo.remote_head(remote)
    if remote_head:
        prefix = f"{remote}/"
        return Ok(remote_head[len(prefix):] if remote_head.startswith(prefix) else remote_head)

    if configured:
        return Ok(configured)

    for name in _FALLBACK_BRANCHES:
        if await repo.ref_exists(f"refs/heads/{name}") or await repo.ref_exists(
            f"refs/remotes/{remote}/{name}"
        ):
            return Ok(name)

    return Err(
        GitError(
            "Could not determine the default branch. Set sync.default_branch or run "
            f"`git remote set-head {remote} --auto`.",
            context={"repo": str(repo.path), "remote": remote},
        )
    )


async def base_ref(
    repo: git_core.AsyncRepo, remote: str = "origin", configured: str | None = None
) -> Result[str, GitError]:
    """Return the ref to compare against: `<remote>/<default>` if it exists, else the local branch."""
    match await default_branch(repo, remote, configured):
        case Err(err):
            return Err(err)
        case Ok(name):
            pass
    remote_ref = f"{remote}/{name}"
    if await repo.ref_exists(f"refs/remotes/{remote_ref}"):
        return Ok(remote_ref)
    return Ok(name)


def is_fixup_subject(subject: str) -> bool:
    return subject.startswith(FIXUP_MARKERS)


def without_fixups(commits: Iterable[git_core.GitCommit]) -> list[git_core.GitCommit]:
    """Drop commits that are themselves fix-ups; they are never fix-up targets."""
    return [commit for commit in commits if not is_fixup_subject(commit.summary)]


def visible_branches(refs: Iterable[git_core.BranchRef]) -> list[git_core.BranchRef]:
    """
    Drop symbolic refs (origin/HEAD) and remote branches shadowed by a local
    branch of the same name.
    """
    ref_list = [ref for ref in refs if not ref.symref and not ref.refname.endswith("/HEAD")]
    local_names = {ref.name for ref in ref_list if not ref.is_remote}
    return [ref for ref in ref_list if not (ref.is_remote and ref.local_name in local_names)]


def split_upstream(upstream: str, remotes: Iterable[str] = ("origin",)) -> tuple[str | None, str]:
    """Split 'origin/main' into ('origin', 'main'); a local upstream has no remote."""
    for remote in remotes:
        prefix = f"{remote}/"
        if upstream.startswith(prefix):
            return remote, upstream[len(prefix):]
    return None, upstream
