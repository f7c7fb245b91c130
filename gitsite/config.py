from __future__ import annotations
import pathlib
from dataclasses import dataclass, field
from typing import List, Optional

from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .errors import GitsiteError

DEFAULT_OUTPUT = "dist"
DEFAULT_THEME = "default"
DEFAULT_PAGE_SIZE = 35
MAX_DEFAULT_BYTES = 512 * 1024


@dataclass
class SiteConfig:
    repo: pathlib.Path
    output: pathlib.Path = pathlib.Path(DEFAULT_OUTPUT)
    name: Optional[str] = None
    owner: Optional[str] = None
    theme: str = DEFAULT_THEME
    page_size: int = DEFAULT_PAGE_SIZE
    max_bytes: int = MAX_DEFAULT_BYTES  # larger blobs are listed but not rendered
    first_parent: bool = True
    branches: List[str] = field(default_factory=list)  # empty: every local branch

    def validate(self) -> None:
        if not self.repo.exists():
            raise GitsiteError(f"Repository path does not exist: {self.repo}")
        if self.page_size < 1:
            raise GitsiteError(f"Page size must be positive, got {self.page_size}")
        if self.max_bytes < 0:
            raise GitsiteError(f"Max bytes cannot be negative, got {self.max_bytes}")
        try:
            get_style_by_name(self.theme)
        except ClassNotFound as e:
            raise GitsiteError(f"Unknown Pygments style: {self.theme}") from e

    def project_name(self) -> str:
        if self.name:
            return self.name
        return self.repo.resolve().name
