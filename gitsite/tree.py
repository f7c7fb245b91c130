"""
In-memory directory tree built from a flat list of tracked files.

Answers "what is directly inside directory X" in time proportional to the
depth of X instead of scanning the whole file list for every page.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .models import FileEntry


@dataclass
class DirNode:
    files: List[FileEntry] = field(default_factory=list)
    subdirs: Dict[str, "DirNode"] = field(default_factory=dict)


class FileTree:
    """Directory hierarchy inferred from file paths.

    Built once per generation run and only read afterwards, so it can be
    shared between workers without locking.
    """

    def __init__(self, root: DirNode | None = None):
        self._root = root if root is not None else DirNode()

    @classmethod
    def from_files(cls, files: Iterable[FileEntry]) -> "FileTree":
        root = DirNode()
        for entry in files:
            parts = entry.path.split("/")
            if not all(parts):
                raise ValueError(f"Malformed file path in listing: {entry.path!r}")
            node = root
            for part in parts[:-1]:
                child = node.subdirs.get(part)
                if child is None:
                    child = node.subdirs[part] = DirNode()
                node = child
            node.files.append(entry)
        return cls(root)

    def _node(self, dir_path: str) -> Optional[DirNode]:
        if not dir_path:
            return self._root
        node = self._root
        for part in dir_path.split("/"):
            node = node.subdirs.get(part)
            if node is None:
                return None
        return node

    def files_at(self, dir_path: str) -> List[FileEntry]:
        """Files directly inside ``dir_path`` in listing order; empty if the directory is unknown."""
        node = self._node(dir_path)
        return list(node.files) if node is not None else []

    def subdirs_at(self, dir_path: str) -> List[str]:
        """Names (not paths) of the immediate subdirectories, sorted."""
        node = self._node(dir_path)
        return sorted(node.subdirs) if node is not None else []

    def all_dirs(self) -> List[str]:
        """Every directory path, root included as ``""``, sorted."""
        dirs: List[str] = []
        stack = [("", self._root)]
        while stack:
            path, node = stack.pop()
            dirs.append(path)
            for name, child in node.subdirs.items():
                stack.append((f"{path}/{name}" if path else name, child))
        dirs.sort()
        return dirs

    def all_files_under(self, dir_path: str) -> List[FileEntry]:
        node = self._node(dir_path)
        if node is None:
            return []
        out: List[FileEntry] = []

        def walk(n: DirNode) -> None:
            out.extend(n.files)
            for name in sorted(n.subdirs):
                walk(n.subdirs[name])

        walk(node)
        return out

    def has_dir(self, dir_path: str) -> bool:
        return self._node(dir_path) is not None
