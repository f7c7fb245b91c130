"""
Batch "last commit that touched this path" resolution.

A single walk of the history, newest commit first, serves every candidate
path at once: each commit's changed paths are matched against the set of
paths still waiting for an answer, and the walk stops as soon as that set
is empty. A directory counts as changed when any path below it changed.
"""

from __future__ import annotations
import logging
import os
from typing import Dict, Iterable, Iterator, List, Set, Tuple

from . import git
from .models import CommitInfo

logger = logging.getLogger(__name__)


def ancestor_dirs(path: str) -> Iterator[str]:
    """``a/b/c.txt`` -> ``a``, ``a/b``; the root is not included."""
    idx = path.find("/")
    while idx != -1:
        yield path[:idx]
        idx = path.find("/", idx + 1)


def normalize_candidates(paths: Iterable[str]) -> Set[str]:
    pending: Set[str] = set()
    for p in paths:
        if p != p.strip("/") or "//" in p:
            raise ValueError(f"Candidate paths must be normalized: {p!r}")
        pending.add(p)
    return pending


def attribute_paths(history: Iterable[Tuple[str, Iterable[str]]],
                    paths: Iterable[str]) -> Dict[str, str]:
    """Map each candidate path to the first commit in ``history`` that touches it.

    ``history`` yields ``(commit_id, changed_paths)`` newest first and is
    consumed lazily: nothing is pulled from it once every candidate has an
    answer. ``""`` stands for the repository root and is touched by any
    non-empty change. Paths never touched are absent from the result.
    """
    pending = normalize_candidates(paths)
    found: Dict[str, str] = {}
    if not pending:
        return found

    inspected = 0
    it = iter(history)
    try:
        for commit_id, changed in it:
            inspected += 1
            touched: Set[str] = set()
            for path in changed:
                touched.add(path)
                touched.update(ancestor_dirs(path))
            if touched and "" in pending:
                touched.add("")
            hits = pending & touched
            for path in hits:
                found[path] = commit_id
            pending -= hits
            if not pending:
                break
    finally:
        close = getattr(it, "close", None)
        if close is not None:
            close()

    logger.debug("Attributed %d path(s) after inspecting %d commit(s); %d unresolved",
                 len(found), inspected, len(pending))
    return found


def get_last_commits_batch(repo: str | os.PathLike, ref: str | None,
                           paths: Iterable[str], first_parent: bool = True) -> Dict[str, CommitInfo]:
    """Last commit touching each path, reachable from ``ref``.

    Fails as a whole (``ResolutionError`` / ``RepositoryError``); a partial
    mapping is never returned. Paths that no commit touched are absent.
    Callers should pass every path of a page (or of a whole branch) in one
    call, since the cost is one history walk per call.
    """
    candidates: List[str] = list(normalize_candidates(paths))
    if not candidates:
        return {}
    commit = git.resolve_commit(repo, ref)
    found = attribute_paths(git.iter_changed_paths(repo, commit, first_parent=first_parent), candidates)
    infos = git.get_commits(repo, sorted(set(found.values())))
    # paths attributed to the same commit share one CommitInfo
    return {path: infos[oid] for path, oid in found.items()}
