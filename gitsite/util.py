from __future__ import annotations
import time

from .errors import InvalidPathError

INDEX_PAGE = "index.html"


def bytes_human(n: int) -> str:
    """Human-readable bytes: 1 decimal for KiB and above, integer for B."""
    units = ["B", "KiB", "MiB", "GiB", "TiB"]
    f = float(n)
    i = 0
    while f >= 1024.0 and i < len(units) - 1:
        f /= 1024.0
        i += 1
    if i == 0:
        return f"{int(f)} {units[i]}"
    return f"{f:.1f} {units[i]}"


def format_timestamp(seconds: int, now: float | None = None) -> str:
    """Relative time such as "5 min ago" or "3 weeks ago".

    Timestamps in the future (clock skew between committers) read as "just now".
    """
    if now is None:
        now = time.time()
    secs = max(0, int(now - seconds))
    minutes, hours, days = secs // 60, secs // 3600, secs // 86400
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} min ago"
    if hours < 24:
        return f"{hours} hr ago"
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    if days < 365:
        return f"{days // 30} months ago"
    return f"{days // 365} years ago"


def format_date(seconds: int) -> str:
    return time.strftime("%Y-%m-%d %H:%M UTC", time.gmtime(seconds))


def calculate_depth(branch: str, path: str = "") -> int:
    """Number of ``../`` needed to get from ``blob/<branch>/<path>.html`` back to the site root.

    Branch names may contain slashes (``fix/login``); each adds a level.
    """
    path_depth = path.count("/") if path else 0
    return branch.count("/") + 2 + path_depth


def tree_depth(branch: str, dir_path: str = "") -> int:
    """Depth of a directory page, ``tree/<branch>/<dir_path>/index.html``."""
    return calculate_depth(branch) + (dir_path.count("/") + 1 if dir_path else 0)


def has_reserved_component(path: str) -> bool:
    """True when a component of ``path`` is named like the directory pages themselves."""
    return INDEX_PAGE in path.split("/")


def root_prefix(depth: int) -> str:
    return "../" * depth


def validate_tree_path(path: str) -> None:
    if not path:
        return
    if path.startswith("/"):
        raise InvalidPathError(f"Path is absolute, must be relative: {path}")
    parts = path.split("/")
    if any(part in ("", ".", "..") for part in parts):
        raise InvalidPathError(f"Path contains empty or traversal components: {path}")
