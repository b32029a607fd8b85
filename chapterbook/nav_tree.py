"""Build the navigation tree that orders chapters for the table of contents.

Chapters are placed in folders mirroring their source directories below the
common root of all chapters. A bottom-up pass then applies each folder's
``_meta.json``: keys rename and order items, ``---`` keys insert separators,
``...`` marks where unlisted items go, and keys containing ``/`` hoist a
chapter out of a descendant folder into the current one.

Nodes and chapters are stored in flat dictionaries keyed by tree path and
chapter id; render items refer to them by key, so hoisting only moves ids
between lists.

Example ``_meta.json``::

    {
      "basics": "Getting Started",
      "---tokens": "Tokens",
      "tokens/erc20": "Confidential Tokens",
      "legacy": {"hidden": true}
    }
"""

from __future__ import annotations

import collections.abc as cabc
import json
import logging
import posixpath
import typing as typ
from pathlib import Path

from ._constants import DEFAULT_PRIORITY, META_FILENAME, REST_KEYS, SEPARATOR_PREFIX
from .models import (
    ApiFile,
    Chapter,
    ChapterItem,
    FileItem,
    MetaEntry,
    NavNode,
    NodeItem,
    RenderItem,
    SeparatorItem,
)

if typ.TYPE_CHECKING:
    from .config import DocgenConfig

log = logging.getLogger(__name__)


def _split(path: str) -> list[str]:
    return [part for part in path.split("/") if part and part != "."]


def infer_common_root(directories: cabc.Iterable[str]) -> str:
    """Return the longest shared POSIX directory prefix of ``directories``.

    Examples
    --------
    >>> infer_common_root(["test/basic", "test/advanced/tokens"])
    'test'
    >>> infer_common_root([])
    ''
    """
    common: list[str] | None = None
    for directory in directories:
        parts = _split(directory)
        if common is None:
            common = parts
            continue
        size = 0
        for left, right in zip(common, parts, strict=False):
            if left != right:
                break
            size += 1
        common = common[:size]
    return "/".join(common or [])


def load_meta_config(
    path: Path, warn: cabc.Callable[[str], None] | None = None
) -> dict[str, MetaEntry]:
    """Read a ``_meta.json`` override file.

    Parameters
    ----------
    path : Path
        Location of the override file.
    warn : Callable[[str], None], optional
        Receives a message when the file is malformed; defaults to the module
        logger.

    Returns
    -------
    dict[str, MetaEntry]
        Entries in declared order. Missing or malformed files yield ``{}``.
    """
    report = warn or log.warning
    if not path.is_file():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        report(f"Invalid JSON in {path}: {exc}")
        return {}
    if not isinstance(payload, dict):
        report(f"Invalid JSON in {path}: top-level value must be an object")
        return {}

    entries: dict[str, MetaEntry] = {}
    for key, value in payload.items():
        match value:
            case str():
                entries[key] = MetaEntry(title=value)
            case dict():
                title = value.get("title")
                entries[key] = MetaEntry(
                    title=str(title) if title else None,
                    hidden=bool(value.get("hidden", False)),
                    type=value.get("type"),
                )
            case _:
                report(f"Ignoring unsupported value for '{key}' in {path}")
                entries[key] = MetaEntry()
    return entries


class NavTree:
    """Folder tree of chapters and API files with resolved render lists."""

    def __init__(
        self, source_root: Path, *, meta_filename: str = META_FILENAME
    ) -> None:
        """Initialize an empty tree.

        Parameters
        ----------
        source_root : Path
            Directory matching the tree root; each node reads its override
            file from the corresponding directory below it.
        meta_filename : str, optional
            Override file name looked up in every folder.
        """
        self.meta_filename = meta_filename
        self.nodes: dict[str, NavNode] = {
            "": NavNode(segment="root", path="", source_path=str(source_root))
        }
        self.chapters: dict[str, Chapter] = {}
        self.warnings: list[str] = []
        self.mounts: dict[str, Path] = {}

    @property
    def root(self) -> NavNode:
        return self.nodes[""]

    def warn(self, message: str) -> None:
        """Record ``message`` and emit it through the module logger."""
        self.warnings.append(message)
        log.warning(message)

    def add_chapter(self, chapter: Chapter, relative_path: str) -> None:
        """Attach ``chapter`` to the folder at ``relative_path``."""
        node = self._traverse(relative_path)
        self.chapters[chapter.id] = chapter
        if chapter.id not in node.chapter_ids:
            node.chapter_ids.append(chapter.id)

    def add_file(self, api_file: ApiFile, relative_path: str) -> None:
        """Attach an API reference file to the folder at ``relative_path``."""
        self._traverse(relative_path).files.append(api_file)

    def mount(self, relative_path: str, source_dir: Path) -> NavNode:
        """Create the folder at ``relative_path`` reading overrides from ``source_dir``.

        Folders created below a mounted folder derive their override location
        from ``source_dir``, and table of contents links for them point into
        ``source_dir`` instead of the chapters folder.
        """
        node = self._traverse(relative_path)
        node.source_path = str(source_dir)
        self.mounts[node.path] = source_dir
        return node

    def process_meta(self) -> None:
        """Compute every node's render list, children before parents."""
        self._process_node(self.root)

    def is_empty(self, path: str) -> bool:
        """Return True when the folder holds no content, directly or below."""
        node = self.nodes[path]
        if node.chapter_ids or node.files:
            return False
        return all(self.is_empty(child) for child in node.children.values())

    def label_of(self, item: RenderItem) -> str:
        """Return the display label of ``item``."""
        match item:
            case NodeItem(path=path):
                return self.nodes[path].label
            case ChapterItem(chapter_id=chapter_id):
                return self.chapters[chapter_id].title
            case FileItem(file=api_file):
                return api_file.title
            case SeparatorItem(title=title):
                return title
            case _:
                typ.assert_never(item)

    def output_path(self, chapter: Chapter) -> str:
        """Return the chapter's output file relative to the chapters folder."""
        return posixpath.join(chapter.write_dir or "", f"{chapter.id}.md")

    def _process_node(self, node: NavNode) -> None:
        for child_path in node.children.values():
            self._process_node(self.nodes[child_path])

        meta = load_meta_config(
            Path(node.source_path) / self.meta_filename, warn=self.warn
        )
        available = self._available_items(node)

        configured: list[RenderItem] = []
        used: set[str] = set()
        rest_index: int | None = None
        for key, entry in meta.items():
            if key in REST_KEYS:
                rest_index = len(configured)
                continue
            if key.startswith(SEPARATOR_PREFIX) or entry.is_separator:
                configured.append(SeparatorItem(title=entry.title or ""))
                continue
            items = [item for name, item in available if name == key]
            if items:
                used.add(key)
            elif "/" in key:
                chapter = self._detach_chapter(node, key)
                if chapter is None:
                    self.warn(
                        f"{node.source_path}/{self.meta_filename}: cannot hoist "
                        f"'{key}', no such chapter"
                    )
                    continue
                chapter.write_dir = node.path
                node.chapter_ids.append(chapter.id)
                items = [ChapterItem(chapter_id=chapter.id)]
            else:
                log.debug("No item '%s' under '%s'", key, node.path or "/")
                continue
            for item in items:
                self._apply_entry(item, entry)
                if not entry.hidden:
                    configured.append(item)

        rest = sorted(
            (item for name, item in available if name not in used),
            key=self._rest_sort_key,
        )
        if rest_index is None:
            render_list = configured + rest
        else:
            render_list = configured[:rest_index] + rest + configured[rest_index:]
        node.render_list = [
            item
            for item in render_list
            if not (isinstance(item, NodeItem) and self.is_empty(item.path))
        ]

    def _available_items(self, node: NavNode) -> list[tuple[str, RenderItem]]:
        """Return ``(meta key, item)`` pairs; a key may name several items."""
        available: list[tuple[str, RenderItem]] = []
        for segment, child_path in node.children.items():
            if not self.is_empty(child_path):
                available.append((segment, NodeItem(path=child_path)))
        for chapter_id in node.chapter_ids:
            chapter = self.chapters[chapter_id]
            if chapter.write_dir is None:
                chapter.write_dir = node.path
            available.append((chapter_id, ChapterItem(chapter_id=chapter_id)))
        for api_file in node.files:
            available.append((api_file.id, FileItem(file=api_file)))

        seen: set[str] = set()
        for name, _ in available:
            if name in seen:
                self.warn(
                    f"'{node.path or '/'}': several entries are named '{name}'; "
                    "all are listed and share its _meta.json entry"
                )
            seen.add(name)
        return available

    def _rest_sort_key(self, item: RenderItem) -> tuple[int, str, int]:
        label = self.label_of(item).casefold()
        match item:
            case NodeItem():
                return (0, label, DEFAULT_PRIORITY)
            case ChapterItem(chapter_id=chapter_id):
                return (1, label, self.chapters[chapter_id].priority)
            case _:
                return (1, label, DEFAULT_PRIORITY)

    def _apply_entry(self, item: RenderItem, entry: MetaEntry) -> None:
        if not entry.title:
            return
        match item:
            case NodeItem(path=path):
                self.nodes[path].label = entry.title
            case ChapterItem(chapter_id=chapter_id):
                self.chapters[chapter_id].title = entry.title
            case FileItem(file=api_file):
                api_file.title = entry.title
            case SeparatorItem():
                pass
            case _:
                typ.assert_never(item)

    def _detach_chapter(self, start: NavNode, key: str) -> Chapter | None:
        """Remove the chapter addressed by ``key`` from a descendant folder."""
        *segments, chapter_id = key.split("/")
        current = start
        for segment in segments:
            child_path = current.children.get(segment)
            if child_path is None:
                return None
            current = self.nodes[child_path]
        if chapter_id not in current.chapter_ids:
            return None
        current.chapter_ids.remove(chapter_id)
        current.render_list = [
            item
            for item in current.render_list
            if not (isinstance(item, ChapterItem) and item.chapter_id == chapter_id)
        ]
        return self.chapters[chapter_id]

    def _traverse(self, relative_path: str) -> NavNode:
        current = self.root
        for segment in _split(relative_path):
            child_path = current.children.get(segment)
            if child_path is None:
                child_path = posixpath.join(current.path, segment)
                self.nodes[child_path] = NavNode(
                    segment=segment,
                    path=child_path,
                    source_path=str(Path(current.source_path) / segment),
                )
                current.children[segment] = child_path
            current = self.nodes[child_path]
        return current


def build_nav_tree(chapters: cabc.Iterable[Chapter], config: DocgenConfig) -> NavTree:
    """Place ``chapters`` into a tree rooted at their common source directory.

    The returned tree has not been processed yet; attach any API files and
    then call :meth:`NavTree.process_meta`.
    """
    chapter_list = list(chapters)
    common = infer_common_root(chapter.relative_source_dir for chapter in chapter_list)
    source_root = config.root_dir / common if common else config.root_dir
    tree = NavTree(source_root, meta_filename=config.meta_filename)
    prefix = len(_split(common))
    for chapter in chapter_list:
        relative = "/".join(_split(chapter.relative_source_dir)[prefix:])
        tree.add_chapter(chapter, relative)
    return tree


__all__ = ["NavTree", "build_nav_tree", "infer_common_root", "load_meta_config"]
