from __future__ import annotations


class GitsiteError(Exception):
    """Base class for every error raised by gitsite."""


class ResolutionError(GitsiteError):
    """A reference or a path does not exist in the repository."""


class RepositoryError(GitsiteError):
    """The repository could not be read, or a git command failed."""


class InvalidPathError(GitsiteError):
    """A tree path is not safe to turn into an output file path."""
