#!/usr/bin/env python3
"""
MCP server for gitsite: directory listings with last-commit attribution,
and site generation, for local repositories.
"""

import asyncio
import logging
import pathlib
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    TextContent,
    Tool,
)

from . import git
from .assemble import build_tree_items, level_paths
from .attribution import get_last_commits_batch
from .config import SiteConfig
from .generate import generate_site
from .models import DirectoryItem, TreeItem
from .tree import FileTree
from .util import format_timestamp, validate_tree_path

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

server = Server("gitsite-mcp")


def list_tree_items(repo_path: str, ref: Optional[str] = None, dir_path: str = "") -> List[TreeItem]:
    """One directory level with each entry's last commit."""
    dir_path = dir_path.strip("/")
    validate_tree_path(dir_path)
    tree = FileTree.from_files(git.list_files(repo_path, ref))
    if not tree.has_dir(dir_path):
        raise ValueError(f"No such directory at {ref or 'HEAD'}: {dir_path}")
    commit_map = get_last_commits_batch(repo_path, ref, level_paths(tree, dir_path))
    return build_tree_items(tree, dir_path, commit_map)


def format_listing(items: List[TreeItem], now: Optional[float] = None) -> str:
    lines = []
    for item in items:
        label = f"{item.name}/" if isinstance(item, DirectoryItem) else item.name
        c = item.commit
        lines.append(f"{label}\t{c.short_oid}\t{c.summary}\t{c.author}\t{format_timestamp(c.date, now)}")
    return "\n".join(lines) if lines else "(empty directory)"


@server.list_prompts()
async def list_prompts() -> List[Prompt]:
    return [
        Prompt(
            name="gitsite-tree-overview",
            description="Root listing of a local repository with the last commit of every entry",
            arguments=[
                PromptArgument(name="repo_path", description="Path to a local git repository", required=True),
            ],
        )
    ]


@server.get_prompt()
async def get_prompt(name: str, arguments: Dict[str, str] | None) -> GetPromptResult:
    if name != "gitsite-tree-overview":
        raise ValueError(f"Unknown prompt: {name}")
    if not arguments or "repo_path" not in arguments:
        raise ValueError("Missing required argument: repo_path")

    repo_path = arguments["repo_path"]
    logger.info(f"Building tree overview for {repo_path}")
    items = await asyncio.to_thread(list_tree_items, repo_path)
    return GetPromptResult(
        description=f"Tree overview of {repo_path}",
        messages=[
            PromptMessage(
                role="user",
                content=TextContent(
                    type="text",
                    text=f"Top-level entries of {repo_path} (name, commit, summary, author, age):\n\n"
                         f"{format_listing(items)}",
                ),
            )
        ],
    )


@server.list_tools()
async def list_tools() -> List[Tool]:
    return [
        Tool(
            name="list_tree",
            description="List one directory of a local git repository with the last commit touching each entry",
            inputSchema={
                "type": "object",
                "properties": {
                    "repo_path": {"type": "string", "description": "Path to a local git repository"},
                    "ref": {"type": "string", "description": "Branch, tag or commit (default: HEAD)"},
                    "dir_path": {"type": "string", "description": "Directory inside the repository (default: root)"},
                },
                "required": ["repo_path"],
            },
        ),
        Tool(
            name="generate_site",
            description="Render a local git repository into a static website",
            inputSchema={
                "type": "object",
                "properties": {
                    "repo_path": {"type": "string", "description": "Path to a local git repository"},
                    "output_dir": {"type": "string", "description": "Directory to write the site to"},
                },
                "required": ["repo_path", "output_dir"],
            },
        ),
    ]


async def _generate(repo_path: str, output_dir: str) -> str:
    config = SiteConfig(repo=pathlib.Path(repo_path), output=pathlib.Path(output_dir))
    stats = await asyncio.to_thread(generate_site, config)
    failed = f", failed: {', '.join(stats.failed_branches)}" if stats.failed_branches else ""
    return (f"Generated {stats.tree_pages} tree pages and {stats.blob_pages} blob pages for "
            f"{len(stats.branches)} branch(es) and {stats.tags} tag(s) in {output_dir}{failed}")


@server.call_tool()
async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Errors propagate; the server reports them to the client as tool errors."""
    if "repo_path" not in arguments:
        raise ValueError("Missing required argument: repo_path")
    repo_path = arguments["repo_path"]

    if name == "list_tree":
        dir_path = arguments.get("dir_path") or ""
        logger.info(f"Listing {repo_path}:{dir_path or '/'}")
        items = await asyncio.to_thread(list_tree_items, repo_path, arguments.get("ref"), dir_path)
        return [TextContent(type="text", text=format_listing(items))]

    if name == "generate_site":
        if "output_dir" not in arguments:
            raise ValueError("Missing required argument: output_dir")
        logger.info(f"Generating site for {repo_path} into {arguments['output_dir']}")
        return [TextContent(type="text", text=await _generate(repo_path, arguments["output_dir"]))]

    raise ValueError(f"Unknown tool: {name}")


async def serve():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main():
    asyncio.run(serve())


if __name__ == "__main__":
    main()
