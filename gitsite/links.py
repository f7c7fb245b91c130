"""
Rewrites repository-relative links in rendered markdown.

``[guide](docs/guide.md)`` in a README points at a file in the repository;
on the generated site it has to point at that file's blob page instead.
Images point at the raw copy next to the blob page, links ending in ``/``
(or naming a known directory) at the directory's tree page. External URLs
and in-page anchors are left alone.
"""

from __future__ import annotations
import logging
import posixpath
from typing import Iterable
from urllib.parse import quote, unquote, urlsplit

from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor
from markdown.util import AMP_SUBSTITUTE

from .errors import InvalidPathError
from .util import INDEX_PAGE, root_prefix

logger = logging.getLogger(__name__)


def normalize_link_path(base_dir: str, link_path: str) -> str:
    """Join ``link_path`` onto ``base_dir`` and collapse ``.`` and ``..``.

    A leading ``/`` means the repository root. Climbing above the root
    raises ``InvalidPathError``.
    """
    parts = [] if link_path.startswith("/") else [p for p in base_dir.split("/") if p]
    for component in link_path.split("/"):
        if component in ("", "."):
            continue
        if component == "..":
            if not parts:
                raise InvalidPathError(f"Link escapes the repository root: {link_path}")
            parts.pop()
        else:
            parts.append(component)
    return "/".join(parts)


class LinkResolver:
    """Maps links found in the markdown file ``current_path`` on ``branch`` to site URLs.

    ``depth`` is the depth of the page the markdown is embedded in, so the
    returned URLs are relative to that page.
    """

    def __init__(self, branch: str, current_path: str, depth: int = 0,
                 directories: Iterable[str] = ()):
        self.branch = branch
        self.current_path = current_path
        self.base_dir = posixpath.dirname(current_path)
        self.prefix = root_prefix(depth)
        self.directories = frozenset(directories)

    def resolve(self, link: str, image: bool = False) -> str:
        parts = urlsplit(link)
        if parts.scheme or parts.netloc or not parts.path:
            return link
        path = normalize_link_path(self.base_dir, unquote(parts.path))
        fragment = f"#{parts.fragment}" if parts.fragment else ""
        if not path:
            return f"{self.prefix}tree/{quote(self.branch)}/{INDEX_PAGE}{fragment}"
        target = quote(f"{self.branch}/{path}")
        if parts.path.endswith("/") or path in self.directories:
            return f"{self.prefix}tree/{target}/{INDEX_PAGE}{fragment}"
        if image:
            return f"{self.prefix}blob/{target}"
        return f"{self.prefix}blob/{target}.html{fragment}"


class LinkRewriter(Treeprocessor):
    def __init__(self, md, resolver: LinkResolver):
        super().__init__(md)
        self.resolver = resolver

    def run(self, root):
        for tag, attr, image in (("a", "href", False), ("img", "src", True)):
            for el in root.iter(tag):
                link = el.get(attr)
                # obfuscated mailto autolinks
                if not link or link.startswith(AMP_SUBSTITUTE):
                    continue
                try:
                    el.set(attr, self.resolver.resolve(link, image=image))
                except InvalidPathError as e:
                    logger.warning("Leaving link unchanged in %s: %s", self.resolver.current_path, e)


class RepoLinkExtension(Extension):
    """Python-Markdown extension running ``LinkRewriter`` after inline parsing."""

    def __init__(self, resolver: LinkResolver, **kwargs):
        self.resolver = resolver
        super().__init__(**kwargs)

    def extendMarkdown(self, md):
        # below "inline" (20) so links already exist as elements
        md.treeprocessors.register(LinkRewriter(md, self.resolver), "gitsite_links", 8)
