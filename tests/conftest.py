"""Shared fixtures: throwaway git repositories built with the ``git`` binary."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Dict, Optional, Union

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

BASE_TIME = 1_700_000_000


class GitRepo:
    """A repository whose commits get increasing, reproducible timestamps."""

    def __init__(self, path: Path):
        self.path = path
        self.tick = BASE_TIME
        path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")
        self.git("config", "user.name", "Test User")
        self.git("config", "user.email", "test@example.com")
        self.git("config", "commit.gpgsign", "false")
        self.git("config", "tag.gpgsign", "false")

    def git(self, *args: str) -> str:
        env = dict(os.environ)
        env["GIT_AUTHOR_DATE"] = f"{self.tick} +0000"
        env["GIT_COMMITTER_DATE"] = f"{self.tick} +0000"
        cp = subprocess.run(["git", *args], cwd=self.path, env=env, check=True,
                            capture_output=True, text=True)
        return cp.stdout

    def write(self, files: Dict[str, Union[str, bytes, None]]) -> None:
        for rel, content in files.items():
            target = self.path / rel
            if content is None:
                target.unlink()
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content, encoding="utf-8")

    def commit(self, message: str, files: Optional[Dict[str, Union[str, bytes, None]]] = None,
               author: Optional[str] = None) -> str:
        """Write ``files`` (``None`` deletes), commit everything and return the new commit id."""
        self.tick += 60
        if files:
            self.write(files)
        self.git("add", "-A")
        args = ["commit", "-q", "--allow-empty", "-m", message]
        if author:
            args.append(f"--author={author}")
        self.git(*args)
        return self.head()

    def head(self) -> str:
        return self.git("rev-parse", "HEAD").strip()

    def checkout(self, branch: str, create: bool = False) -> None:
        self.git("checkout", "-q", *(["-b"] if create else []), branch)

    def merge(self, branch: str, message: str) -> str:
        self.tick += 60
        self.git("merge", "-q", "--no-ff", "-m", message, branch)
        return self.head()


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    if shutil.which("git") is None:
        pytest.skip("git is required for repository tests")
    return GitRepo(tmp_path / "repo")


@pytest.fixture
def sample_repo(git_repo: GitRepo) -> GitRepo:
    """main: three commits touching README, src/ and docs/; branch feature/x; tag v1."""
    git_repo.commit("Initial import", {
        "README.md": "# Sample\n\nA *sample* project.\n",
        "src/main.py": "print('hello')\n",
        "src/util/helpers.py": "def helper():\n    return 1\n",
        "docs/guide.md": "# Guide\n",
    })
    git_repo.git("tag", "v1")
    git_repo.commit("Update main", {"src/main.py": "print('hello, world')\n"})
    git_repo.commit("Add logo", {"logo.png": b"\x89PNG\r\n\x1a\n\x00\x00fake"})
    git_repo.checkout("feature/x", create=True)
    git_repo.commit("Feature work", {"src/feature.py": "FEATURE = True\n"})
    git_repo.checkout("main")
    return git_repo
