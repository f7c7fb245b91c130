"""
Value objects passed between the repository accessor, the path tree, the
attribution engine and the page renderers.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union


@dataclass(frozen=True)
class FileEntry:
    path: str        # slash-separated, relative to repo root
    content_id: str  # blob object id

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class CommitInfo:
    oid: str
    short_oid: str
    author: str
    author_email: str
    committer: str
    summary: str
    message: str
    date: int  # author timestamp, seconds since epoch
    co_authors: Tuple[Tuple[str, str], ...] = ()

    @property
    def authors(self) -> List[str]:
        """Author first, then co-authors, without duplicates."""
        names = [self.author]
        for name, _email in self.co_authors:
            if name not in names:
                names.append(name)
        return names


@dataclass(frozen=True)
class TagInfo:
    name: str
    target: str
    short_target: str
    message: Optional[str] = None
    tagger: Optional[str] = None
    tagger_date: Optional[int] = None

    @property
    def annotated(self) -> bool:
        return self.tagger is not None or self.message is not None


@dataclass
class RepoInfo:
    name: str
    default_branch: str
    branches: List[str] = field(default_factory=list)
    commit_count: int = 0
    owner: Optional[str] = None


@dataclass
class PaginatedCommits:
    commits: List[CommitInfo]
    page: int
    has_more: bool


@dataclass(frozen=True)
class FileItem:
    entry: FileEntry
    commit: CommitInfo

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def full_path(self) -> str:
        return self.entry.path


@dataclass(frozen=True)
class DirectoryItem:
    name: str
    full_path: str
    commit: CommitInfo


TreeItem = Union[DirectoryItem, FileItem]
