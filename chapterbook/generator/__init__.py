"""Utilities for rendering chapters and the table of contents to markdown."""

from .page_generator import DocsGenerator, OutputDirectoryError
from .renderer import ChapterRenderer, render_block
from .summary import TableOfContentsBuilder, collect_api_files

__all__ = [
    "ChapterRenderer",
    "DocsGenerator",
    "OutputDirectoryError",
    "TableOfContentsBuilder",
    "collect_api_files",
    "render_block",
]
