"""
Repository access through the ``git`` command line.

Every function takes the repository path first and shells out to ``git``;
failures are translated into ``ResolutionError`` (unknown reference or
path) or ``RepositoryError`` (anything else).
"""

from __future__ import annotations
import logging
import os
import pathlib
import re
import subprocess
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .errors import RepositoryError, ResolutionError
from .models import CommitInfo, FileEntry, PaginatedCommits, RepoInfo, TagInfo

logger = logging.getLogger(__name__)

FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"
COMMIT_FORMAT = "%x1f".join(["%H", "%h", "%an", "%ae", "%cn", "%at", "%B"]) + "%x1e"
TAG_FORMAT = "%1f".join([
    "%(refname:strip=2)",
    "%(objecttype)",
    "%(objectname)",
    "%(objectname:short)",
    "%(*objectname)",
    "%(*objectname:short)",
    "%(taggername)",
    "%(taggerdate:unix)",
    "%(contents)",
]) + "%1e"
METADATA_CHUNK = 256
REMOTE_PREFIXES = ("http://", "https://", "ssh://", "git://", "git@", "file://")

_CO_AUTHOR_RE = re.compile(r"^\s*co-authored-by:\s*(.+?)\s*<([^>]*)>\s*$", re.IGNORECASE | re.MULTILINE)
_C_ESCAPES = {"a": 7, "b": 8, "t": 9, "n": 10, "v": 11, "f": 12, "r": 13, '"': 34, "\\": 92}


def run(cmd: List[str], cwd: str | os.PathLike | None = None, check: bool = True,
        text: bool = True) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, cwd=cwd, check=check, text=text, capture_output=True)


def git(repo: str | os.PathLike, *args: str, text: bool = True,
        check: bool = True) -> subprocess.CompletedProcess:
    """Run ``git args...`` inside ``repo``; raises ``RepositoryError`` on failure.

    With ``check=False`` a non-zero exit is returned to the caller instead.
    """
    try:
        return run(["git", "-c", "core.quotePath=false", *args], cwd=repo, text=text, check=check)
    except OSError as e:
        raise RepositoryError(f"Cannot run git in {repo}: {e}") from e
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode("utf-8", "replace") if isinstance(e.stderr, bytes) else (e.stderr or "")
        raise RepositoryError(f"git {args[0]} failed in {repo}: {stderr.strip()}") from e


def is_remote_url(target: str) -> bool:
    return target.startswith(REMOTE_PREFIXES)


def clone_repository(url: str, dst: str | os.PathLike) -> None:
    # Full clone: attribution needs the whole history.
    try:
        run(["git", "clone", "--quiet", url, str(dst)])
    except subprocess.CalledProcessError as e:
        raise RepositoryError(f"Failed to clone {url}: {(e.stderr or '').strip()}") from e


def open_repository(repo: str | os.PathLike) -> pathlib.Path:
    """Return the repository path after checking that git recognises it."""
    path = pathlib.Path(repo)
    if not path.is_dir():
        raise RepositoryError(f"Repository path does not exist: {path}")
    git(path, "rev-parse", "--git-dir")
    return path


def resolve_commit(repo: str | os.PathLike, ref: str | None = None) -> str:
    """Full commit id for ``ref`` (HEAD when omitted)."""
    name = ref or "HEAD"
    if name.startswith("-"):
        raise ResolutionError(f"Invalid reference name: {name}")
    cp = git(repo, "rev-parse", "--verify", "--quiet", f"{name}^{{commit}}", check=False)
    if cp.returncode != 0 or not cp.stdout.strip():
        raise ResolutionError(f"Cannot resolve reference to a commit: {name}")
    return cp.stdout.strip()


def parse_co_authors(message: str) -> Tuple[Tuple[str, str], ...]:
    return tuple((m.group(1), m.group(2)) for m in _CO_AUTHOR_RE.finditer(message))


def parse_commit_records(output: str) -> List[CommitInfo]:
    commits: List[CommitInfo] = []
    for record in output.split(RECORD_SEP):
        record = record.lstrip("\n")
        if not record:
            continue
        fields = record.split(FIELD_SEP, 6)
        if len(fields) != 7:
            raise RepositoryError(f"Unexpected commit record from git log: {record[:80]!r}")
        oid, short, author, email, committer, date, body = fields
        message = body.strip()
        commits.append(CommitInfo(
            oid=oid,
            short_oid=short,
            author=author,
            author_email=email,
            committer=committer,
            summary=message.split("\n", 1)[0],
            message=message,
            date=int(date or 0),
            co_authors=parse_co_authors(message),
        ))
    return commits


def analyze_repository(repo: str | os.PathLike, owner: str | None = None) -> RepoInfo:
    path = open_repository(repo)
    name = path.resolve().name

    cp = git(path, "symbolic-ref", "--quiet", "--short", "HEAD", check=False)
    default_branch = cp.stdout.strip() if cp.returncode == 0 and cp.stdout.strip() else "main"

    refs = git(path, "for-each-ref", "--format=%(refname)", "refs/heads/").stdout.splitlines()
    branches = sorted(r[len("refs/heads/"):] for r in refs if r.startswith("refs/heads/"))

    # detached HEAD: the fallback name may not exist, count what HEAD sees instead
    commit_count = 0
    for ref in (f"refs/heads/{default_branch}", None):
        try:
            commit_count = count_commits(path, ref)
            break
        except ResolutionError:
            continue

    return RepoInfo(name=name, default_branch=default_branch, branches=branches,
                    commit_count=commit_count, owner=owner)


def _tree_depth(entry: FileEntry) -> int:
    return entry.path.count("/")


def list_files(repo: str | os.PathLike, ref: str | None = None) -> List[FileEntry]:
    """Blobs tracked at ``ref``, breadth-first.

    Symlinks and submodules are skipped, as are paths that are not valid
    UTF-8 (logged).
    """
    commit = resolve_commit(repo, ref)
    out = git(repo, "ls-tree", "-r", "-z", "--full-tree", commit, text=False).stdout
    files: List[FileEntry] = []
    for raw in out.split(b"\0"):
        if not raw:
            continue
        meta, _, raw_path = raw.partition(b"\t")
        mode, otype, oid = meta.decode("ascii").split()
        if otype != "blob" or mode == "120000":
            continue
        try:
            path = raw_path.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Skipping file with non UTF-8 path: %r", raw_path)
            continue
        files.append(FileEntry(path=path, content_id=oid))
    # ls-tree -r is depth-first; a stable sort on depth keeps git order within a level
    files.sort(key=_tree_depth)
    return files


def read_blob(repo: str | os.PathLike, ref: str | None, path: str) -> bytes:
    commit = resolve_commit(repo, ref)
    obj = f"{commit}:{path}"
    cp = git(repo, "cat-file", "-t", obj, check=False)
    if cp.returncode != 0:
        raise ResolutionError(f"File not found in tree at {ref or 'HEAD'}: {path}")
    if cp.stdout.strip() != "blob":
        raise ResolutionError(f"Path is not a blob: {path}")
    return git(repo, "cat-file", "blob", obj, text=False).stdout


def read_object(repo: str | os.PathLike, content_id: str) -> bytes:
    """Blob bytes by object id, without re-resolving a path through history."""
    cp = git(repo, "cat-file", "blob", content_id, check=False, text=False)
    if cp.returncode != 0:
        raise ResolutionError(f"Blob not found: {content_id}")
    return cp.stdout


def count_commits(repo: str | os.PathLike, ref: str | None = None) -> int:
    commit = resolve_commit(repo, ref)
    return int(git(repo, "rev-list", "--count", commit).stdout.strip() or 0)


def list_commits(repo: str | os.PathLike, ref: str | None = None,
                 limit: int | None = None) -> List[CommitInfo]:
    commit = resolve_commit(repo, ref)
    args = ["log", f"--format={COMMIT_FORMAT}"]
    if limit is not None:
        args.append(f"--max-count={limit}")
    return parse_commit_records(git(repo, *args, commit, "--").stdout)


def list_commits_paginated(repo: str | os.PathLike, ref: str | None, page: int,
                           page_size: int) -> PaginatedCommits:
    if page < 1:
        raise ValueError("page is 1-indexed")
    if page_size < 1:
        raise ValueError("page_size must be positive")
    commit = resolve_commit(repo, ref)
    # one extra commit tells us whether another page exists
    out = git(repo, "log", f"--format={COMMIT_FORMAT}", f"--skip={(page - 1) * page_size}",
              f"--max-count={page_size + 1}", commit, "--").stdout
    commits = parse_commit_records(out)
    return PaginatedCommits(commits=commits[:page_size], page=page, has_more=len(commits) > page_size)


def get_commits(repo: str | os.PathLike, oids: Sequence[str]) -> Dict[str, CommitInfo]:
    """Metadata for specific commits, one ``git log --no-walk`` per chunk."""
    found: Dict[str, CommitInfo] = {}
    unique = list(dict.fromkeys(oids))
    for i in range(0, len(unique), METADATA_CHUNK):
        chunk = unique[i:i + METADATA_CHUNK]
        out = git(repo, "log", "--no-walk=unsorted", f"--format={COMMIT_FORMAT}", *chunk, "--").stdout
        for info in parse_commit_records(out):
            found[info.oid] = info
    missing = [oid for oid in unique if oid not in found]
    if missing:
        raise RepositoryError(f"Commit metadata unavailable for {len(missing)} commit(s), e.g. {missing[0]}")
    return found


def list_tags(repo: str | os.PathLike) -> List[TagInfo]:
    out = git(repo, "for-each-ref", "--sort=refname", f"--format={TAG_FORMAT}", "refs/tags").stdout
    tags: List[TagInfo] = []
    for record in out.split(RECORD_SEP):
        record = record.lstrip("\n")
        if not record:
            continue
        fields = record.split(FIELD_SEP, 8)
        if len(fields) != 9:
            raise RepositoryError(f"Unexpected tag record: {record[:80]!r}")
        name, otype, oid, short, peeled, peeled_short, tagger, tagger_date, contents = fields
        if otype == "tag":
            tags.append(TagInfo(
                name=name,
                target=peeled or oid,
                short_target=peeled_short or short,
                message=contents.strip() or None,
                tagger=tagger.strip() or None,
                tagger_date=int(tagger_date) if tagger_date.strip() else None,
            ))
        else:
            tags.append(TagInfo(name=name, target=oid, short_target=short))
    return tags


def unquote_path(name: str) -> str:
    """Undo git's C-style quoting of unusual file names."""
    if len(name) < 2 or not (name.startswith('"') and name.endswith('"')):
        return name
    body = name[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.extend(ch.encode("utf-8"))
            i += 1
            continue
        nxt = body[i + 1:i + 2]
        if nxt in _C_ESCAPES:
            out.append(_C_ESCAPES[nxt])
            i += 2
        elif re.match(r"[0-7]{3}", body[i + 1:i + 4]):
            out.append(int(body[i + 1:i + 4], 8))
            i += 4
        else:
            out.extend(b"\\")
            i += 1
    return out.decode("utf-8", "replace")


def iter_changed_paths(repo: str | os.PathLike, commit: str,
                       first_parent: bool = True) -> Iterator[Tuple[str, List[str]]]:
    """Stream ``(commit_id, changed_paths)`` from ``commit`` back to the root.

    Order is topological (children before parents), independent of
    timestamps. Each commit is diffed against its first parent; the root
    commit against the empty tree. Closing the generator early terminates
    the underlying ``git log``. A ``git`` failure during a full walk raises
    ``RepositoryError`` after the last commit has been yielded, so callers
    that collect results must not use them unless the walk completes.
    """
    cmd = ["git", "-c", "core.quotePath=false", "log", "--topo-order", "--no-renames", "--root",
           "--name-only", f"--format={RECORD_SEP}%H"]
    cmd += ["-m", "--first-parent"] if first_parent else ["--diff-merges=first-parent"]
    cmd += [commit, "--"]
    try:
        proc = subprocess.Popen(cmd, cwd=repo, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except OSError as e:
        raise RepositoryError(f"Cannot run git in {repo}: {e}") from e
    finished = False
    try:
        current: Optional[str] = None
        changed: List[str] = []
        assert proc.stdout is not None
        for raw in proc.stdout:
            line = raw.decode("utf-8", "replace").rstrip("\n")
            if line.startswith(RECORD_SEP):
                if current is not None:
                    yield current, changed
                current, changed = line[1:].strip(), []
            elif line and current is not None:
                changed.append(unquote_path(line))
        if current is not None:
            yield current, changed
        finished = True
    finally:
        if not finished and proc.poll() is None:
            proc.kill()
        _, stderr = proc.communicate()
    if proc.returncode != 0:
        raise RepositoryError(f"History walk from {commit} failed: {stderr.decode('utf-8', 'replace').strip()}")
