"""Render a git repository's tree and history into a static website."""

from .attribution import attribute_paths, get_last_commits_batch
from .assemble import build_tree_items
from .errors import GitsiteError, InvalidPathError, RepositoryError, ResolutionError
from .git import (
    analyze_repository,
    list_commits,
    list_commits_paginated,
    list_files,
    list_tags,
    read_blob,
)
from .models import (
    CommitInfo,
    DirectoryItem,
    FileEntry,
    FileItem,
    PaginatedCommits,
    RepoInfo,
    TagInfo,
    TreeItem,
)
from .tree import FileTree

__version__ = "0.1.0"
