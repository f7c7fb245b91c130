"""
Command line entry point: ``gitsite [REPO] -o dist``.

REPO is a local repository path or a clone URL; URLs are cloned into a
temporary directory that is removed afterwards.
"""

from __future__ import annotations
import argparse
import logging
import pathlib
import shutil
import sys
import tempfile
import webbrowser
from typing import List, Optional

from . import git
from .config import DEFAULT_OUTPUT, DEFAULT_PAGE_SIZE, DEFAULT_THEME, MAX_DEFAULT_BYTES, SiteConfig
from .errors import GitsiteError
from .generate import generate_site
from .util import bytes_human


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="gitsite", description="Render a git repository into a static website")
    ap.add_argument("repo", nargs="?", default=".", help="Repository path or clone URL (default: .)")
    ap.add_argument("-o", "--output", default=DEFAULT_OUTPUT, help=f"Output directory (default: {DEFAULT_OUTPUT})")
    ap.add_argument("--name", help="Project name (default: repository directory name)")
    ap.add_argument("--owner", help="Owner label shown next to the project name")
    ap.add_argument("--theme", default=DEFAULT_THEME, help=f"Pygments style for highlighting (default: {DEFAULT_THEME})")
    ap.add_argument("--page-size", type=int, default=DEFAULT_PAGE_SIZE,
                    help=f"Commits per commit-log page (default: {DEFAULT_PAGE_SIZE})")
    ap.add_argument("--max-bytes", type=int, default=MAX_DEFAULT_BYTES,
                    help=f"Largest text file to render, in bytes (default: {MAX_DEFAULT_BYTES})")
    ap.add_argument("--full-history", action="store_true",
                    help="Walk every parent of merges when finding each path's last commit (default: first parent only)")
    ap.add_argument("--branch", action="append", default=[], dest="branches",
                    help="Only generate this branch (repeatable; default: all local branches)")
    ap.add_argument("--no-open", action="store_true", help="Don't open index.html in a browser afterwards")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def config_from_args(args: argparse.Namespace, repo_dir: pathlib.Path) -> SiteConfig:
    return SiteConfig(
        repo=repo_dir,
        output=pathlib.Path(args.output),
        name=args.name,
        owner=args.owner,
        theme=args.theme,
        page_size=args.page_size,
        max_bytes=args.max_bytes,
        first_parent=not args.full_history,
        branches=list(args.branches),
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    tmpdir: Optional[str] = None
    try:
        if git.is_remote_url(args.repo):
            tmpdir = tempfile.mkdtemp(prefix="gitsite_")
            repo_dir = pathlib.Path(tmpdir, "repo")
            print(f"📁 Cloning {args.repo} to temporary directory: {repo_dir}", file=sys.stderr)
            git.clone_repository(args.repo, repo_dir)
            if args.name is None:
                args.name = args.repo.rstrip("/").rsplit("/", 1)[-1].removesuffix(".git") or None
        else:
            repo_dir = pathlib.Path(args.repo)

        config = config_from_args(args, repo_dir)
        print(f"🔨 Generating site for {config.project_name()} into {config.output}", file=sys.stderr)
        stats = generate_site(config)

        for branch, s in stats.branches.items():
            print(f"→ {branch}: {s.tree_pages} trees, {s.total_blobs} blobs ({s.markdown_pages} md)",
                  file=sys.stderr)
        for branch in stats.failed_branches:
            print(f"✗ {branch}: generation failed, see log", file=sys.stderr)

        index = config.output / "index.html"
        size = sum(p.stat().st_size for p in config.output.rglob("*") if p.is_file())
        print(f"✓ Generated {stats.tree_pages} trees, {stats.blob_pages} blobs "
              f"({len(stats.branches)} branches, {stats.tags} tags), {bytes_human(size)} total", file=sys.stderr)

        if not args.no_open and index.exists():
            print(f"🌐 Opening {index} in browser...", file=sys.stderr)
            webbrowser.open(index.resolve().as_uri())
        return 1 if stats.failed_branches and not stats.branches else 0
    except GitsiteError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        if tmpdir is not None:
            shutil.rmtree(tmpdir, ignore_errors=True)


if __name__ == "__main__":
    raise SystemExit(main())
