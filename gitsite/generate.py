"""
Writes the static site for a repository.

Per branch: list the tracked files, build one FileTree, resolve the last
commit of every file and directory in a single attribution walk, then
emit tree, blob and commit-log pages. Tags get their own pages once.
"""

from __future__ import annotations
import logging
import pathlib
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from pygments.formatters import HtmlFormatter

from . import git, render
from .assemble import build_tree_items
from .attribution import get_last_commits_batch
from .config import SiteConfig
from .errors import GitsiteError
from .filetype import BINARY, IMAGE, detect_file_type, is_markdown, is_readme
from .links import LinkResolver
from .models import CommitInfo, FileEntry, FileItem, PaginatedCommits, RepoInfo, TagInfo, TreeItem
from .tree import FileTree
from .util import INDEX_PAGE, calculate_depth, has_reserved_component, tree_depth, validate_tree_path

logger = logging.getLogger(__name__)

README_PREFERENCE = ["README.md", "README", "readme.md", "Readme.md"]


@dataclass
class BranchStats:
    tree_pages: int = 0
    blob_pages: int = 0
    markdown_pages: int = 0
    skipped: int = 0

    @property
    def total_blobs(self) -> int:
        return self.blob_pages + self.markdown_pages


@dataclass
class SiteStats:
    branches: Dict[str, BranchStats] = field(default_factory=dict)
    failed_branches: List[str] = field(default_factory=list)
    tags: int = 0

    @property
    def tree_pages(self) -> int:
        return sum(s.tree_pages for s in self.branches.values())

    @property
    def blob_pages(self) -> int:
        return sum(s.total_blobs for s in self.branches.values())


@dataclass
class BranchContext:
    """What every page of one branch needs to know."""
    repo: RepoInfo
    name: str
    branch: str
    commit_count: int
    tag_count: int
    latest_commit: Optional[CommitInfo]
    directories: FrozenSet[str] = frozenset()

    def links(self, current_path: str, depth: int) -> LinkResolver:
        return LinkResolver(self.branch, current_path, depth, self.directories)


def write_page(path: pathlib.Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def setup_output_directories(output: pathlib.Path, formatter: HtmlFormatter) -> None:
    assets = output / "assets"
    assets.mkdir(parents=True, exist_ok=True)
    (assets / "site.css").write_text(render.SITE_CSS, encoding="utf-8")
    (assets / "highlight.css").write_text(render.highlight_css(formatter), encoding="utf-8")


def find_readme(items: List[TreeItem]) -> Optional[FileEntry]:
    readmes = [item.entry for item in items if isinstance(item, FileItem) and is_readme(item.entry.path)]
    for preferred in README_PREFERENCE:
        for entry in readmes:
            if entry.name == preferred:
                return entry
    return readmes[0] if readmes else None


def read_readme(repo: pathlib.Path, entry: FileEntry) -> Optional[str]:
    data = git.read_object(repo, entry.content_id)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("README %s is not valid UTF-8; not rendering it", entry.path)
        return None


def render_readme(entry: FileEntry, text: str, links: LinkResolver) -> str:
    if is_markdown(entry.path) or "." not in entry.name:
        return render.render_markdown_text(text, links)
    return f"<pre>{render.esc(text)}</pre>"


def collect_attribution_paths(tree: FileTree) -> List[str]:
    """Every file and every non-root directory of the tree."""
    paths = [d for d in tree.all_dirs() if d]
    paths.extend(entry.path for entry in tree.all_files_under(""))
    return paths


def generate_tree_pages(config: SiteConfig, ctx: BranchContext, tree: FileTree,
                        commit_map: Mapping[str, CommitInfo]) -> int:
    """Write ``tree/<branch>/<dir>/index.html`` for every directory, the root included."""
    count = 0
    for dir_path in tree.all_dirs():
        try:
            validate_tree_path(dir_path)
        except GitsiteError as e:
            logger.warning("Skipping tree page: %s", e)
            continue
        if has_reserved_component(dir_path):
            logger.warning("Skipping tree page for %s: %s is reserved for listing pages", dir_path, INDEX_PAGE)
            continue
        items = build_tree_items(tree, dir_path, commit_map)
        depth = tree_depth(ctx.branch, dir_path)
        target = config.output / "tree" / ctx.branch / dir_path / INDEX_PAGE
        if dir_path:
            write_page(target, render.tree_page(ctx.name, ctx.branch, dir_path, items, depth))
        else:
            readme = _readme_for(config, items)
            write_page(target, _index_page(ctx, items, readme, depth))
            if ctx.branch == ctx.repo.default_branch:
                write_page(config.output / INDEX_PAGE, _index_page(ctx, items, readme, 0))
        count += 1
    return count


def _readme_for(config: SiteConfig, items: List[TreeItem]) -> Optional[Tuple[FileEntry, str]]:
    entry = find_readme(items)
    if entry is None:
        return None
    try:
        text = read_readme(config.repo, entry)
    except GitsiteError as e:
        logger.warning("Failed to read README %s: %s", entry.path, e)
        return None
    return (entry, text) if text is not None else None


def _index_page(ctx: BranchContext, items: List[TreeItem], readme: Optional[Tuple[FileEntry, str]],
                depth: int) -> str:
    """The branch landing page; README links are resolved relative to ``depth``."""
    readme_html = None
    if readme is not None:
        entry, text = readme
        readme_html = render_readme(entry, text, ctx.links(entry.path, depth))
    return render.index_page(ctx.repo, ctx.name, ctx.branch, items, ctx.commit_count,
                             tag_count=ctx.tag_count, latest_commit=ctx.latest_commit,
                             readme_html=readme_html, depth=depth)


def generate_blob_page(config: SiteConfig, ctx: BranchContext, entry: FileEntry,
                       formatter: HtmlFormatter) -> bool:
    """Write one blob page; returns True when it was rendered as markdown."""
    data = git.read_object(config.repo, entry.content_id)
    depth = calculate_depth(ctx.branch, entry.path)
    target = config.output / "blob" / ctx.branch / f"{entry.path}.html"
    kind = detect_file_type(data, entry.path)
    as_markdown = False

    if kind == IMAGE:
        raw = config.output / "blob" / ctx.branch / entry.path
        raw.parent.mkdir(parents=True, exist_ok=True)
        raw.write_bytes(data)
        content = render.image_html(entry.path)
    elif kind == BINARY:
        content = render.binary_html(len(data))
    elif len(data) > config.max_bytes:
        content = f'<p class="empty-state">File too large to display ({len(data)} bytes).</p>'
    else:
        text = data.decode("utf-8")
        if is_markdown(entry.path):
            content = render.render_markdown_text(text, ctx.links(entry.path, depth))
            as_markdown = True
        else:
            content = render.highlight_code(text, entry.name, formatter)

    write_page(target, render.blob_page(ctx.name, ctx.branch, entry.path, content, depth,
                                        size=len(data), markdown_body=as_markdown))
    return as_markdown


def generate_blob_pages(config: SiteConfig, ctx: BranchContext, files: List[FileEntry],
                        formatter: HtmlFormatter, stats: BranchStats) -> None:
    for entry in files:
        try:
            validate_tree_path(entry.path)
            if generate_blob_page(config, ctx, entry, formatter):
                stats.markdown_pages += 1
            else:
                stats.blob_pages += 1
        except (GitsiteError, UnicodeDecodeError, OSError) as e:
            logger.warning("Skipping blob %s on %s: %s", entry.path, ctx.branch, e)
            stats.skipped += 1


def generate_commit_pages(config: SiteConfig, ctx: BranchContext) -> int:
    """One history read for the branch, split into ``page-<n>.html`` files."""
    commits_dir = config.output / "commits" / ctx.branch
    commits = git.list_commits(config.repo, ctx.branch)
    size = config.page_size
    pages = max(1, -(-len(commits) // size))
    for page in range(1, pages + 1):
        paginated = PaginatedCommits(commits=commits[(page - 1) * size:page * size], page=page,
                                     has_more=page < pages)
        write_page(commits_dir / f"page-{page}.html",
                   render.commits_page(paginated, ctx.branch, ctx.name, total=ctx.commit_count))
    return pages


def generate_branch(config: SiteConfig, repo_info: RepoInfo, name: str, branch: str,
                    formatter: HtmlFormatter, tag_count: int = 0) -> BranchStats:
    stats = BranchStats()
    files = git.list_files(config.repo, branch)
    tree = FileTree.from_files(files)
    latest = git.list_commits(config.repo, branch, limit=1)
    ctx = BranchContext(repo=repo_info, name=name, branch=branch,
                        commit_count=git.count_commits(config.repo, branch),
                        tag_count=tag_count, latest_commit=latest[0] if latest else None,
                        directories=frozenset(tree.all_dirs()))

    # one walk for the whole branch: every file and directory at once
    try:
        commit_map = get_last_commits_batch(config.repo, branch, collect_attribution_paths(tree),
                                            first_parent=config.first_parent)
    except GitsiteError as e:
        logger.error("Attribution failed for %s, skipping its tree pages: %s", branch, e)
    else:
        stats.tree_pages = generate_tree_pages(config, ctx, tree, commit_map)

    generate_blob_pages(config, ctx, files, formatter, stats)
    generate_commit_pages(config, ctx)
    return stats


def generate_tags_pages(config: SiteConfig, name: str, tags: List[TagInfo]) -> int:
    write_page(config.output / "tags" / INDEX_PAGE, render.tags_list_page(name, tags))
    for tag in tags:
        try:
            commits = git.list_commits(config.repo, tag.target, limit=1)
        except GitsiteError as e:
            logger.warning("Tag %s does not point at a commit: %s", tag.name, e)
            commits = []
        try:
            validate_tree_path(tag.name)
        except GitsiteError as e:
            logger.warning("Skipping tag page: %s", e)
            continue
        if has_reserved_component(tag.name):
            logger.warning("Skipping tag page for %s: %s is reserved for listing pages", tag.name, INDEX_PAGE)
            continue
        write_page(config.output / "tags" / tag.name / INDEX_PAGE,
                   render.tag_page(name, tag, commits[0] if commits else None))
    return len(tags)


def generate_site(config: SiteConfig) -> SiteStats:
    """Generate every page; a failing branch is logged and the others still render."""
    config.validate()
    repo_info = git.analyze_repository(config.repo, config.owner)
    name = config.project_name()
    formatter = render.make_formatter(config.theme)
    setup_output_directories(config.output, formatter)

    tags = git.list_tags(config.repo)
    stats = SiteStats(tags=generate_tags_pages(config, name, tags))

    if repo_info.commit_count == 0:
        logger.warning("Repository %s has no commits; only the tag index was written", config.repo)
        write_page(config.output / INDEX_PAGE,
                   render.index_page(repo_info, name, repo_info.default_branch, [], 0))
        return stats

    branches = config.branches or repo_info.branches or [repo_info.default_branch]
    if repo_info.default_branch in branches:
        # default branch first so index.html is written even if a later branch fails
        branches = [repo_info.default_branch] + [b for b in branches if b != repo_info.default_branch]

    for branch in branches:
        try:
            validate_tree_path(branch)
            branch_stats = generate_branch(config, repo_info, name, branch, formatter, tag_count=len(tags))
        except GitsiteError as e:
            logger.error("Failed to generate %s: %s", branch, e)
            stats.failed_branches.append(branch)
            continue
        stats.branches[branch] = branch_stats
        logger.info("%s: %d trees, %d blobs (%d md), %d skipped", branch, branch_stats.tree_pages,
                    branch_stats.total_blobs, branch_stats.markdown_pages, branch_stats.skipped)
    return stats
