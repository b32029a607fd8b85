"""Build the ``SUMMARY.md`` table of contents from a processed nav tree.

Top-level folders become ``##`` headings and deeper folders become nested
list entries. Folder entries display the (possibly renamed) label but link
through the folder's segment path, so renaming never breaks links. The
pre-rendered API reference is appended as a final section without being
parsed.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import os
import typing as typ
from pathlib import Path

from chapterbook._constants import API_SKIP_NAMES
from chapterbook.models import (
    ApiFile,
    ChapterItem,
    FileItem,
    NavNode,
    NodeItem,
    SeparatorItem,
)

from .renderer import build_environment

if typ.TYPE_CHECKING:
    from jinja2 import Environment

    from chapterbook.config import DocgenConfig
    from chapterbook.nav_tree import NavTree

log = logging.getLogger(__name__)


@dc.dataclass(slots=True)
class ApiEntry:
    """Link rendered in the API reference section."""

    title: str
    href: str


def collect_api_files(
    api_dir: Path, warn: cabc.Callable[[str], None] | None = None
) -> list[ApiFile]:
    """Return the pre-rendered API pages below ``api_dir`` sorted by path.

    ``README.md``, ``SUMMARY.md`` and ``index.md`` are skipped. A missing
    directory yields an empty list silently; an existing directory without
    pages is reported through ``warn``.
    """
    if not api_dir.is_dir():
        return []
    relative_paths = sorted(
        path.relative_to(api_dir).as_posix()
        for path in api_dir.rglob("*.md")
        if path.is_file() and path.name not in API_SKIP_NAMES
    )
    if not relative_paths:
        (warn or log.warning)(
            f"No API docs found in {api_dir}. Was the API reference generated?"
        )
    return [
        ApiFile(id=Path(relative).stem, title=Path(relative).stem, path=relative)
        for relative in relative_paths
    ]


def _relative_href(target: Path, start: Path) -> str:
    """Return the POSIX-relative link from directory ``start`` to ``target``."""
    return Path(os.path.relpath(target, start=start)).as_posix()


class TableOfContentsBuilder:
    """Render the tree's render lists into the summary document."""

    def __init__(
        self,
        tree: NavTree,
        config: DocgenConfig,
        *,
        api_files: cabc.Sequence[ApiFile] = (),
        env: Environment | None = None,
    ) -> None:
        """Initialize the builder.

        Parameters
        ----------
        tree : NavTree
            Navigation tree whose ``process_meta`` pass has completed.
        config : DocgenConfig
            Supplies the output, summary, and API directories.
        api_files : Sequence[ApiFile], optional
            Files appended as the trailing API reference section.
        env : Environment, optional
            Jinja environment; defaults to the package templates.
        """
        self.tree = tree
        self.config = config
        self.api_files = list(api_files)
        self.env = env or build_environment()
        self.template = self.env.get_template("summary.md.jinja")
        self._summary_dir = config.summary_path.parent

    def render(self) -> str:
        """Return the markdown for the table of contents."""
        return self.template.render(
            title=self.config.toc_title,
            intro_page=self.config.intro_page,
            toc_lines=self.toc_lines(),
            api_entries=[
                ApiEntry(title=api_file.title, href=self._file_href(api_file))
                for api_file in self.api_files
            ],
        )

    def toc_lines(self) -> list[str]:
        """Return the tree portion of the table of contents, one line each."""
        lines: list[str] = []
        self._walk(self.tree.root, 0, lines)
        return lines

    def _walk(self, node: NavNode, depth: int, lines: list[str]) -> None:
        indent = "  " * max(depth - 1, 0)
        for item in node.render_list:
            match item:
                case NodeItem(path=path):
                    if self.tree.is_empty(path):
                        continue
                    child = self.tree.nodes[path]
                    if depth == 0:
                        _heading(lines, f"## {child.label}")
                    else:
                        href = self._node_href(child)
                        lines.append(f"{indent}* [{child.label}]({href})")
                    self._walk(child, depth + 1, lines)
                case ChapterItem(chapter_id=chapter_id):
                    chapter = self.tree.chapters[chapter_id]
                    href = _relative_href(
                        self.config.chapters_dir / self.tree.output_path(chapter),
                        self._summary_dir,
                    )
                    lines.append(f"{indent}* [{chapter.title}]({href})")
                case FileItem(file=api_file):
                    href = self._file_href(api_file)
                    lines.append(f"{indent}* [{api_file.title}]({href})")
                case SeparatorItem(title=title):
                    if depth == 0:
                        _heading(lines, f"## {title}" if title else "---")
                    elif title:
                        lines.append(f"{indent}* **{title}**")
                case _:
                    typ.assert_never(item)

    def _node_href(self, node: NavNode) -> str:
        target = self.config.chapters_dir / node.path
        for mount_path, directory in self.tree.mounts.items():
            if node.path == mount_path or node.path.startswith(f"{mount_path}/"):
                target = directory / node.path[len(mount_path) :].lstrip("/")
        href = _relative_href(target, self._summary_dir)
        return f"{href}/"

    def _file_href(self, api_file: ApiFile) -> str:
        return _relative_href(self.config.api_path / api_file.path, self._summary_dir)


def _heading(lines: list[str], text: str) -> None:
    """Append ``text`` surrounded by single blank lines."""
    if not lines or lines[-1] != "":
        lines.append("")
    lines.extend((text, ""))


__all__ = ["ApiEntry", "TableOfContentsBuilder", "collect_api_files"]
