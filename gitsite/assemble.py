from __future__ import annotations
import logging
from typing import List, Mapping

from .models import CommitInfo, DirectoryItem, FileItem, TreeItem
from .tree import FileTree

logger = logging.getLogger(__name__)


def join_path(dir_path: str, name: str) -> str:
    return f"{dir_path}/{name}" if dir_path else name


def level_paths(tree: FileTree, dir_path: str) -> List[str]:
    """Every path that needs attribution to render ``dir_path``: subdirectories, then files."""
    paths = [join_path(dir_path, name) for name in tree.subdirs_at(dir_path)]
    paths.extend(entry.path for entry in tree.files_at(dir_path))
    return paths


def build_tree_items(tree: FileTree, dir_path: str,
                     commit_map: Mapping[str, CommitInfo]) -> List[TreeItem]:
    """Directories (sorted) then files (listing order) at one level.

    Entries without an attributed commit are logged and left out of the
    listing instead of failing the page.
    """
    items: List[TreeItem] = []
    for name in tree.subdirs_at(dir_path):
        full_path = join_path(dir_path, name)
        commit = commit_map.get(full_path)
        if commit is None:
            logger.warning("No commit found for directory %s", full_path)
            continue
        items.append(DirectoryItem(name=name, full_path=full_path, commit=commit))

    for entry in tree.files_at(dir_path):
        commit = commit_map.get(entry.path)
        if commit is None:
            logger.warning("No commit found for file %s", entry.path)
            continue
        items.append(FileItem(entry=entry, commit=commit))
    return items
