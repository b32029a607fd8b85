"""Shared dataclasses describing chapters, blocks, and navigation nodes.

Blocks and render items are closed unions of slotted dataclasses so the
renderer and tree builder can dispatch with ``match`` and have type checkers
flag any unhandled variant.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from ._constants import DEFAULT_PRIORITY


@dc.dataclass(slots=True)
class MarkdownBlock:
    """Narrative prose collected from consecutive ``///`` lines."""

    content: str


@dc.dataclass(slots=True)
class CodeBlock:
    """Captured snippet or included file.

    Attributes
    ----------
    id : str
        Snippet name from ``@start``/``@end`` or ``include-<filename>``.
    content : str
        Dedented or stripped source text.
    language : str
        Fence language derived from the source file extension.
    source_file : str
        Absolute path of the file the code came from.
    title : str or None
        Tab label used when the block lives inside a :class:`TabGroup`.
    """

    id: str
    content: str
    language: str
    source_file: str
    title: str | None = None


@dc.dataclass(slots=True)
class TabGroup:
    """Code blocks presented as alternative tabs in one content slot."""

    group_id: str
    tabs: list[CodeBlock] = dc.field(default_factory=list)


Block: typ.TypeAlias = MarkdownBlock | CodeBlock | TabGroup


@dc.dataclass(slots=True)
class Section:
    """Titled subdivision of a chapter holding ordered blocks."""

    title: str
    blocks: list[Block] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class Chapter:
    """One documentation page assembled from annotated source files.

    Attributes
    ----------
    id : str
        Stable identifier, also the output filename stem.
    title : str
        Display title; ``_meta.json`` overrides replace it once.
    priority : int
        Sort key used when no explicit order is configured.
    sections : list[Section]
        Sections in first-seen order, unique by title.
    source_file : str
        Absolute path of the file declaring the chapter.
    relative_source_dir : str
        POSIX directory of ``source_file`` relative to the scan root.
    write_dir : str or None
        Output directory relative to the chapters folder, assigned by the
        navigation tree (differs from the source folder when hoisted).
    """

    id: str
    title: str
    source_file: str
    relative_source_dir: str
    priority: int = DEFAULT_PRIORITY
    sections: list[Section] = dc.field(default_factory=list)
    write_dir: str | None = None

    def get_section(self, title: str) -> Section:
        """Return the section called ``title``, creating it on first use."""
        for section in self.sections:
            if section.title == title:
                return section
        section = Section(title=title)
        self.sections.append(section)
        return section


@dc.dataclass(slots=True)
class ApiFile:
    """Pre-rendered API reference page listed in the table of contents."""

    id: str
    title: str
    path: str


@dc.dataclass(slots=True)
class MetaEntry:
    """Normalized value of one ``_meta.json`` key."""

    title: str | None = None
    hidden: bool = False
    type: str | None = None

    @property
    def is_separator(self) -> bool:
        return self.type == "separator"


@dc.dataclass(frozen=True, slots=True)
class NodeItem:
    """Render item pointing at a child folder by its tree path."""

    path: str


@dc.dataclass(frozen=True, slots=True)
class ChapterItem:
    """Render item pointing at a chapter by id."""

    chapter_id: str


@dc.dataclass(frozen=True, slots=True)
class FileItem:
    """Render item wrapping an API reference file."""

    file: ApiFile


@dc.dataclass(frozen=True, slots=True)
class SeparatorItem:
    """Heading-only divider declared in ``_meta.json``."""

    title: str


RenderItem: typ.TypeAlias = NodeItem | ChapterItem | FileItem | SeparatorItem


@dc.dataclass(slots=True)
class NavNode:
    """One folder in the navigation tree.

    Attributes
    ----------
    segment : str
        Folder name; used for output paths and links, never renamed.
    label : str
        Display name, defaults to ``segment``.
    path : str
        POSIX path of the folder relative to the tree root (``""`` for root).
    source_path : str
        Directory searched for the folder's ``_meta.json``.
    children : dict[str, str]
        Child segment mapped to the child's tree path.
    chapter_ids : list[str]
        Chapters attached directly to this folder.
    files : list[ApiFile]
        API reference files attached directly to this folder.
    render_list : list[RenderItem]
        Final ordered items, computed once by the bottom-up meta pass.
    """

    segment: str
    path: str
    source_path: str
    label: str = ""
    children: dict[str, str] = dc.field(default_factory=dict)
    chapter_ids: list[str] = dc.field(default_factory=list)
    files: list[ApiFile] = dc.field(default_factory=list)
    render_list: list[RenderItem] = dc.field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.label:
            self.label = self.segment


__all__ = [
    "ApiFile",
    "Block",
    "Chapter",
    "ChapterItem",
    "CodeBlock",
    "FileItem",
    "MarkdownBlock",
    "MetaEntry",
    "NavNode",
    "NodeItem",
    "RenderItem",
    "Section",
    "SeparatorItem",
    "TabGroup",
]
