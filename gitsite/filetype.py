from __future__ import annotations
import posixpath

BINARY_CHECK_LEN = 8192
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp", ".svg", ".ico"}
BINARY_EXTENSIONS = {
    ".pdf", ".zip", ".tar", ".gz", ".bz2", ".xz", ".7z", ".rar",
    ".mp3", ".mp4", ".mov", ".avi", ".mkv", ".wav", ".ogg", ".flac",
    ".ttf", ".otf", ".eot", ".woff", ".woff2",
    ".so", ".dll", ".dylib", ".class", ".jar", ".exe", ".bin",
}
MARKDOWN_EXTENSIONS = {".md", ".markdown", ".mdown", ".mkd", ".mkdn"}

TEXT = "text"
IMAGE = "image"
BINARY = "binary"


def extension(path: str) -> str:
    return posixpath.splitext(path)[1].lower()


def is_markdown(path: str) -> bool:
    return extension(path) in MARKDOWN_EXTENSIONS


def is_readme(path: str) -> bool:
    return posixpath.basename(path).lower().startswith("readme")


def detect_file_type(data: bytes, path: str) -> str:
    """Classify blob content as ``TEXT``, ``IMAGE`` or ``BINARY``.

    Images are recognised by extension only. Otherwise a NUL byte in the
    first 8 KiB, or content that is not UTF-8, means binary.
    """
    ext = extension(path)
    if ext in IMAGE_EXTENSIONS:
        return IMAGE
    if ext in BINARY_EXTENSIONS:
        return BINARY
    if b"\x00" in data[:BINARY_CHECK_LEN]:
        return BINARY
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return BINARY
    return TEXT
