"""High-level orchestration for chapter documentation generation.

:class:`DocsGenerator` runs the whole pipeline for one project: scan the
configured files into chapters, build and process the navigation tree, clear
the chapters directory, write one markdown page per chapter, and finally
write the table of contents once the tree is complete.

Example
-------
>>> from pathlib import Path
>>> from chapterbook.config import load_docgen_config
>>> from chapterbook.generator import DocsGenerator
>>> config = load_docgen_config(Path("."))  # doctest: +SKIP
>>> DocsGenerator(config).run()  # doctest: +SKIP
[PosixPath('docs/chapters/intro.md'), ..., PosixPath('docs/SUMMARY.md')]
"""

from __future__ import annotations

import logging
import posixpath
import shutil
import typing as typ
from pathlib import Path

from chapterbook._constants import API_SEGMENT
from chapterbook.nav_tree import build_nav_tree
from chapterbook.scanner import scan_directory

from .renderer import ChapterRenderer, build_environment
from .summary import TableOfContentsBuilder, collect_api_files

if typ.TYPE_CHECKING:
    from chapterbook.config import DocgenConfig
    from chapterbook.models import ApiFile, Chapter
    from chapterbook.nav_tree import NavTree
    from chapterbook.scanner import ScanResult

log = logging.getLogger(__name__)


class OutputDirectoryError(RuntimeError):
    """Raised when the chapters directory cannot be cleared or created."""


class DocsGenerator:
    """Scan, organise, and write chapter pages plus the table of contents."""

    def __init__(
        self, config: DocgenConfig, *, templates_dir: Path | None = None
    ) -> None:
        """Initialize the generator.

        Parameters
        ----------
        config : DocgenConfig
            Resolved build configuration.
        templates_dir : Path, optional
            Directory containing ``chapter.md.jinja`` and ``summary.md.jinja``;
            defaults to the package templates.
        """
        self.config = config
        self.env = build_environment(templates_dir)
        self.renderer = ChapterRenderer(self.env)
        self.scan_result: ScanResult | None = None
        self.tree: NavTree | None = None

    @property
    def warnings(self) -> list[str]:
        """Return every recoverable problem reported by the last run."""
        collected: list[str] = []
        if self.scan_result is not None:
            collected.extend(self.scan_result.warnings)
        if self.tree is not None:
            collected.extend(self.tree.warnings)
        return collected

    def run(self) -> list[Path]:
        """Generate the documentation and return the written paths.

        Returns
        -------
        list[Path]
            Chapter pages in chapter order followed by the summary file. Empty
            when no chapters were found; nothing is written in that case.

        Raises
        ------
        OutputDirectoryError
            If the chapters directory cannot be cleared or created.
        DuplicateChapterError
            In strict mode, when chapter ids collide across files.
        """
        self.scan_result = scan_directory(self.config)
        chapters = self.scan_result.ordered_chapters()
        if not chapters:
            log.warning("No chapters found. Did you add @chapter tags to your sources?")
            return []

        self.tree = build_nav_tree(chapters, self.config)
        api_files = collect_api_files(self.config.api_path, warn=self.tree.warn)
        if self.config.api_in_tree:
            self._attach_api_files(self.tree, api_files)
        self.tree.process_meta()

        self._prepare_output_dir()
        written = [self._write_chapter(self.tree, chapter) for chapter in chapters]

        summary = TableOfContentsBuilder(
            self.tree,
            self.config,
            api_files=[] if self.config.api_in_tree else api_files,
            env=self.env,
        ).render()
        summary_path = self.config.summary_path
        summary_path.parent.mkdir(parents=True, exist_ok=True)
        summary_path.write_text(summary, encoding="utf-8")
        written.append(summary_path)
        log.info("Updated %s with %d chapters", summary_path.name, len(chapters))
        return written

    def _attach_api_files(self, tree: NavTree, api_files: list[ApiFile]) -> None:
        if not api_files:
            return
        tree.mount(API_SEGMENT, self.config.api_path)
        for api_file in api_files:
            folder = posixpath.dirname(api_file.path)
            tree.add_file(api_file, posixpath.join(API_SEGMENT, folder))

    def _prepare_output_dir(self) -> None:
        """Remove and recreate the chapters directory."""
        out_dir = self.config.chapters_dir.resolve()
        if out_dir == self.config.root_dir or out_dir in self.config.root_dir.parents:
            msg = f"Refusing to clear '{out_dir}': it contains the project root."
            raise OutputDirectoryError(msg)
        try:
            if out_dir.exists():
                shutil.rmtree(out_dir)
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Cannot prepare output directory '{out_dir}': {exc}"
            raise OutputDirectoryError(msg) from exc

    def _write_chapter(self, tree: NavTree, chapter: Chapter) -> Path:
        output_path = self.config.chapters_dir / tree.output_path(chapter)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.renderer.render(chapter), encoding="utf-8")
        log.info("Generated guide %s", output_path.name)
        return output_path


__all__ = ["DocsGenerator", "OutputDirectoryError"]
