"""Typed dataclasses describing chapterbook configuration."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from .._constants import META_FILENAME

DEFAULT_INCLUDE_GLOBS = ("test/**/*.ts", "contracts/**/*.sol")
DEFAULT_EXCLUDE_GLOBS = ("**/node_modules/**", "**/*.d.ts")


class DocgenConfigError(ValueError):
    """Raised when the docgen configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class DocgenConfig:
    """Resolved settings for one documentation build.

    Attributes
    ----------
    root_dir : Path
        Project root; include globs and bare-filename includes are resolved
        beneath it.
    include_globs : list[str]
        Glob patterns (relative to ``root_dir``) selecting files to scan.
    exclude_globs : list[str]
        Glob patterns removing files from the scanned and includable set.
    out_dir : Path
        Directory receiving one markdown file per chapter; cleared per run.
    summary_file : Path
        Table of contents written after every chapter.
    api_dir : Path
        Directory holding pre-rendered API reference markdown.
    meta_filename : str
        Per-folder override file name.
    intro_page : str or None
        Introduction link emitted at the top of the table of contents.
    toc_title : str
        Heading of the table of contents.
    strict : bool
        Raise instead of warning when chapter ids collide across files.
    api_in_tree : bool
        Attach API files to the navigation tree instead of appending them.
    """

    root_dir: Path
    include_globs: list[str] = dc.field(
        default_factory=lambda: list(DEFAULT_INCLUDE_GLOBS)
    )
    exclude_globs: list[str] = dc.field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_GLOBS)
    )
    out_dir: Path | None = None
    summary_file: Path | None = None
    api_dir: Path | None = None
    meta_filename: str = META_FILENAME
    intro_page: str | None = "README.md"
    toc_title: str = "Table of Contents"
    strict: bool = False
    api_in_tree: bool = False

    def __post_init__(self) -> None:
        self.root_dir = Path(self.root_dir).resolve()
        if self.out_dir is None:
            self.out_dir = self.root_dir / "docs" / "chapters"
        if self.summary_file is None:
            self.summary_file = self.root_dir / "docs" / "SUMMARY.md"
        if self.api_dir is None:
            self.api_dir = self.root_dir / "docs" / "api"

    @property
    def chapters_dir(self) -> Path:
        """Return the output directory, typed as a concrete ``Path``."""
        assert self.out_dir is not None  # noqa: S101 - set in __post_init__
        return self.out_dir

    @property
    def summary_path(self) -> Path:
        """Return the table of contents path, typed as a concrete ``Path``."""
        assert self.summary_file is not None  # noqa: S101 - set in __post_init__
        return self.summary_file

    @property
    def api_path(self) -> Path:
        """Return the API reference directory, typed as a concrete ``Path``."""
        assert self.api_dir is not None  # noqa: S101 - set in __post_init__
        return self.api_dir
