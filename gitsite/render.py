"""
HTML for the generated site.

Pages are plain f-strings; every repository-derived string goes through
``html.escape``. Code is highlighted with Pygments and markdown rendered
with Python-Markdown.
"""

from __future__ import annotations
import html
from typing import List, Optional, Sequence
from urllib.parse import quote

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_for_filename, TextLexer
from pygments.util import ClassNotFound

import markdown  # Python-Markdown

from .links import LinkResolver, RepoLinkExtension
from .models import CommitInfo, DirectoryItem, PaginatedCommits, RepoInfo, TagInfo, TreeItem
from .util import INDEX_PAGE, bytes_human, format_date, format_timestamp, root_prefix

GENERATOR_NAME = "gitsite"

SITE_CSS = """
:root {
  --text-primary: #1f2328; --text-secondary: #59636e; --border: #d1d9e0;
  --bg-secondary: #f6f8fa; --accent: #0969da; --radius: 6px;
}
* { box-sizing: border-box; }
body { margin: 0; font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
       color: var(--text-primary); background: #fff; line-height: 1.5; }
a { color: var(--accent); text-decoration: none; }
a:hover { text-decoration: underline; }
.container { max-width: 1100px; margin: 0 auto; padding: 1.5rem; }
header { display: flex; justify-content: space-between; align-items: center; flex-wrap: wrap;
         gap: 0.5rem; margin-bottom: 1rem; }
.breadcrumb-separator { margin: 0 0.35rem; color: var(--text-secondary); }
.breadcrumb-current { font-weight: 600; }
.ref-badge { margin-left: 0.5rem; padding: 0.1rem 0.5rem; border: 1px solid var(--border);
             border-radius: 2em; font-size: 0.85rem; color: var(--text-secondary); }
.repo-meta { color: var(--text-secondary); margin-bottom: 1rem; }
.repo-meta span { margin-right: 1rem; }
.latest-commit { display: flex; justify-content: space-between; gap: 1rem; padding: 0.75rem 1rem;
                 background: var(--bg-secondary); border: 1px solid var(--border);
                 border-bottom: none; border-radius: var(--radius) var(--radius) 0 0; }
.file-table { border: 1px solid var(--border); border-radius: var(--radius); overflow: hidden; }
.latest-commit + .file-table { border-radius: 0 0 var(--radius) var(--radius); }
.file-row { display: grid; grid-template-columns: 1.5rem minmax(0, 1fr) minmax(0, 1.2fr) 8rem;
            gap: 0.75rem; padding: 0.5rem 1rem; border-top: 1px solid var(--border); }
.file-row:first-child { border-top: none; }
.file-row .commit-summary, .file-row .file-meta { color: var(--text-secondary); overflow: hidden;
                                                   text-overflow: ellipsis; white-space: nowrap; }
.file-row .file-meta { text-align: right; }
.empty-state { color: var(--text-secondary); font-style: italic; }
.readme { margin-top: 1.5rem; padding: 1.5rem; border: 1px solid var(--border); border-radius: var(--radius); }
.blob-header { padding: 0.5rem 1rem; background: var(--bg-secondary); border: 1px solid var(--border);
               border-bottom: none; border-radius: var(--radius) var(--radius) 0 0;
               color: var(--text-secondary); }
.blob-body { border: 1px solid var(--border); border-radius: 0 0 var(--radius) var(--radius);
             overflow-x: auto; }
.blob-body .highlight pre { margin: 0; padding: 0.75rem; }
.blob-body .linenos { color: var(--text-secondary); user-select: none; }
.blob-body img { display: block; max-width: 100%; margin: 1rem auto; }
.markdown-body { padding: 1.5rem; }
.commit-list { list-style: none; padding: 0; border: 1px solid var(--border); border-radius: var(--radius); }
.commit-entry { padding: 0.75rem 1rem; border-top: 1px solid var(--border); }
.commit-entry:first-child { border-top: none; }
.commit-meta { color: var(--text-secondary); font-size: 0.9rem; }
code.commit-hash { font-family: ui-monospace, SFMono-Regular, Menlo, monospace; }
.pagination { display: flex; justify-content: space-between; margin-top: 1rem; }
.tag-message { white-space: pre-wrap; background: var(--bg-secondary); padding: 1rem; border-radius: var(--radius); }
footer { margin-top: 2rem; color: var(--text-secondary); font-size: 0.85rem; text-align: center; }
"""


def esc(s: object) -> str:
    return html.escape(str(s), quote=True)


def url(*segments: str) -> str:
    return esc("/".join(quote(s) for s in segments if s))


def make_formatter(theme: str = "default") -> HtmlFormatter:
    return HtmlFormatter(style=theme, linenos="table", cssclass="highlight")


def highlight_css(formatter: HtmlFormatter) -> str:
    return formatter.get_style_defs(".highlight")


def render_markdown_text(md_text: str, links: Optional[LinkResolver] = None) -> str:
    """Markdown to HTML; with ``links``, repository-relative links point at generated pages."""
    extensions = ["fenced_code", "tables", "toc"]
    if links is not None:
        extensions.append(RepoLinkExtension(links))
    return markdown.markdown(md_text, extensions=extensions)


def highlight_code(text: str, filename: str, formatter: HtmlFormatter) -> str:
    try:
        lexer = get_lexer_for_filename(filename, stripall=False)
    except ClassNotFound:
        lexer = TextLexer(stripall=False)
    return highlight(text, lexer, formatter)


def tree_href(prefix: str, ref: str, dir_path: str = "") -> str:
    return f"{prefix}tree/{url(ref, dir_path)}/{INDEX_PAGE}"


def page(title: str, depth: int, body: str) -> str:
    prefix = root_prefix(depth)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{esc(title)} - {GENERATOR_NAME}</title>
<link rel="stylesheet" href="{prefix}assets/site.css">
<link rel="stylesheet" href="{prefix}assets/highlight.css">
</head>
<body>
<div class="container">
{body}
<footer><p>Generated by {GENERATOR_NAME}</p></footer>
</div>
</body>
</html>
"""


def breadcrumb(repo_name: str, depth: int, ref: str, path: str = "",
               extra: str | None = None) -> str:
    prefix = root_prefix(depth)
    parts = [f'<a href="{prefix}index.html" class="breadcrumb-link">{esc(repo_name)}</a>']
    components = path.split("/") if path else []
    for idx, component in enumerate(components):
        parts.append('<span class="breadcrumb-separator">/</span>')
        if idx == len(components) - 1:
            parts.append(f'<span class="breadcrumb-current">{esc(component)}</span>')
        else:
            partial = "/".join(components[: idx + 1])
            href = tree_href(prefix, ref, partial)
            parts.append(f'<a href="{href}" class="breadcrumb-link">{esc(component)}</a>')
    if extra:
        parts.append('<span class="breadcrumb-separator">/</span>')
        parts.append(f'<span class="breadcrumb-current">{esc(extra)}</span>')
    return (f'<header><div class="breadcrumb">{"".join(parts)}'
            f'<span class="ref-badge">{esc(ref)}</span></div></header>')


def commit_authors(commit: CommitInfo) -> str:
    names = commit.authors
    if len(names) == 1:
        return esc(names[0])
    return f"{esc(names[0])} and {len(names) - 1} other{'s' if len(names) > 2 else ''}"


def file_table(items: Sequence[TreeItem], ref: str, depth: int, parent_href: str | None = None,
               now: float | None = None) -> str:
    prefix = root_prefix(depth)
    rows: List[str] = []
    if parent_href is not None:
        rows.append(f'<div class="file-row"><span>⬆</span><a href="{parent_href}">..</a>'
                    f'<span class="commit-summary"></span><span class="file-meta"></span></div>')
    for item in items:
        if isinstance(item, DirectoryItem):
            icon, href = "📁", tree_href(prefix, ref, item.full_path)
        else:
            icon, href = "📄", f"{prefix}blob/{url(ref, item.full_path)}.html"
        rows.append(
            f'<div class="file-row"><span>{icon}</span>'
            f'<a href="{href}">{esc(item.name)}</a>'
            f'<span class="commit-summary" title="{esc(item.commit.summary)}">{esc(item.commit.summary)}</span>'
            f'<span class="file-meta" title="{esc(format_date(item.commit.date))}">'
            f'{esc(format_timestamp(item.commit.date, now))}</span></div>'
        )
    if not rows:
        return '<p class="empty-state">Empty directory</p>'
    return f'<div class="file-table">{"".join(rows)}</div>'


def latest_commit_bar(commit: CommitInfo, now: float | None = None) -> str:
    return (f'<div class="latest-commit"><span><strong>{commit_authors(commit)}</strong> '
            f'{esc(commit.summary)}</span><span><code class="commit-hash">{esc(commit.short_oid)}</code> · '
            f'{esc(format_timestamp(commit.date, now))}</span></div>')


def index_page(repo: RepoInfo, name: str, branch: str, items: Sequence[TreeItem], commit_count: int,
               tag_count: int = 0, latest_commit: Optional[CommitInfo] = None,
               readme_html: Optional[str] = None, depth: int = 0, now: float | None = None) -> str:
    """Repository landing page: metadata, root listing and README."""
    prefix = root_prefix(depth)
    title = f"{repo.owner}/{name}" if repo.owner else name
    branch_links = " ".join(
        f'<a href="{tree_href(prefix, b)}">{esc(b)}</a>' for b in repo.branches
    )
    meta = (f'<div class="repo-meta"><span>Branch <strong>{esc(branch)}</strong></span>'
            f'<span><a href="{prefix}commits/{url(branch)}/page-1.html">{commit_count} commits</a></span>'
            f'<span><a href="{prefix}tags/index.html">{tag_count} tags</a></span>'
            f'<span>{len(repo.branches)} branches: {branch_links}</span></div>')
    latest = latest_commit_bar(latest_commit, now) if latest_commit else ""
    readme = f'<article class="readme markdown-body">{readme_html}</article>' if readme_html else ""
    body = (f'<header><h1>{esc(title)}</h1></header>{meta}{latest}'
            f'{file_table(items, branch, depth, now=now)}{readme}')
    return page(title, depth, body)


def tree_page(repo_name: str, ref: str, dir_path: str, items: Sequence[TreeItem], depth: int,
              now: float | None = None) -> str:
    prefix = root_prefix(depth)
    parent = dir_path.rsplit("/", 1)[0] if "/" in dir_path else ""
    parent_href = tree_href(prefix, ref, parent)
    body = breadcrumb(repo_name, depth, ref, dir_path)
    body += file_table(items, ref, depth, parent_href=parent_href if dir_path else None, now=now)
    return page(f"{dir_path} - {repo_name}" if dir_path else repo_name, depth, body)


def blob_page(repo_name: str, ref: str, path: str, content_html: str, depth: int,
              size: int | None = None, markdown_body: bool = False) -> str:
    info = esc(bytes_human(size)) if size is not None else ""
    klass = "blob-body markdown-body" if markdown_body else "blob-body"
    body = (breadcrumb(repo_name, depth, ref, path)
            + f'<div class="blob-header">{info}</div><div class="{klass}">{content_html}</div>')
    return page(f"{path} - {repo_name}", depth, body)


def image_html(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    return f'<img src="{url(name)}" alt="{esc(name)}">'


def binary_html(size: int) -> str:
    return f'<p class="empty-state">Binary file not shown ({esc(bytes_human(size))}).</p>'


def commits_page(paginated: PaginatedCommits, ref: str, repo_name: str, total: int | None = None,
                 now: float | None = None) -> str:
    depth = 2 + ref.count("/")
    entries = []
    for c in paginated.commits:
        committed_by = (f" · committed by {esc(c.committer)}" if c.committer and c.committer != c.author else "")
        entries.append(
            f'<li class="commit-entry"><div><code class="commit-hash" title="{esc(c.oid)}">{esc(c.short_oid)}</code> '
            f'<span class="commit-message">{esc(c.summary)}</span></div>'
            f'<div class="commit-meta">{commit_authors(c)}{committed_by} · '
            f'<span title="{esc(format_date(c.date))}">{esc(format_timestamp(c.date, now))}</span></div></li>'
        )
    listing = (f'<ol class="commit-list">{"".join(entries)}</ol>' if entries
               else '<p class="empty-state">No commits found</p>')
    nav = []
    if paginated.page > 1:
        nav.append(f'<a href="page-{paginated.page - 1}.html">← Newer</a>')
    else:
        nav.append("<span></span>")
    if paginated.has_more:
        nav.append(f'<a href="page-{paginated.page + 1}.html">Older →</a>')
    count = f"{total} commits" if total is not None else f"Page {paginated.page}"
    body = (breadcrumb(repo_name, depth, ref, extra="Commits")
            + f'<h1>Commit History</h1><div class="repo-meta">{count} · page {paginated.page}</div>'
            + listing + f'<div class="pagination">{"".join(nav)}</div>')
    return page(f"Commits - {repo_name}", depth, body)


def tags_list_page(repo_name: str, tags: Sequence[TagInfo], now: float | None = None) -> str:
    depth = 1
    rows = []
    for t in tags:
        when = f" · {esc(format_timestamp(t.tagger_date, now))}" if t.tagger_date is not None else ""
        kind = "annotated" if t.annotated else "lightweight"
        rows.append(f'<li class="commit-entry"><a href="{url(t.name)}/{INDEX_PAGE}">{esc(t.name)}</a> '
                    f'<code class="commit-hash">{esc(t.short_target)}</code>'
                    f'<div class="commit-meta">{kind}{when}</div></li>')
    listing = f'<ol class="commit-list">{"".join(rows)}</ol>' if rows else '<p class="empty-state">No tags</p>'
    body = (f'<header><div class="breadcrumb"><a href="../index.html">{esc(repo_name)}</a>'
            f'<span class="breadcrumb-separator">/</span><span class="breadcrumb-current">Tags</span></div></header>'
            f"<h1>Tags</h1>{listing}")
    return page(f"Tags - {repo_name}", depth, body)


def tag_page(repo_name: str, tag: TagInfo, commit: Optional[CommitInfo], now: float | None = None) -> str:
    depth = 2 + tag.name.count("/")
    prefix = root_prefix(depth)
    details = [f'<div class="repo-meta">Target <code class="commit-hash">{esc(tag.short_target)}</code></div>']
    if tag.tagger:
        when = f" · {esc(format_date(tag.tagger_date))}" if tag.tagger_date is not None else ""
        details.append(f'<div class="repo-meta">Tagged by {esc(tag.tagger)}{when}</div>')
    if tag.message:
        details.append(f'<div class="tag-message">{esc(tag.message)}</div>')
    if commit is not None:
        details.append(f"<h2>Commit</h2>{latest_commit_bar(commit, now)}"
                       f'<div class="tag-message">{esc(commit.message)}</div>')
    body = (f'<header><div class="breadcrumb"><a href="{prefix}index.html">{esc(repo_name)}</a>'
            f'<span class="breadcrumb-separator">/</span><a href="{prefix}tags/index.html">Tags</a>'
            f'<span class="breadcrumb-separator">/</span><span class="breadcrumb-current">{esc(tag.name)}</span>'
            f"</div></header><h1>{esc(tag.name)}</h1>{''.join(details)}")
    return page(f"{tag.name} - {repo_name}", depth, body)
