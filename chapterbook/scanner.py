r"""Scan annotated source files into chapters, sections, and blocks.

Each file is read once, line by line, by a small state machine that tracks the
current chapter, the current section, and an optional open code capture. The
recognised directives are:

``/// @chapter: <id> "<Title>"``
    Start or continue a chapter.
``/// @section: "<Title>"``
    Switch to (or create) a section within the current chapter.
``/// @priority: <int>``
    Set the chapter sort priority (invalid values fall back to 100).
``/// @include: "<target>" {"strip": true, "group": "g", "tabTitle": "T"}``
    Embed another file as a code block or tab.
``// @start: <snippet>`` / ``// @end: <snippet>``
    Capture the lines in between as a code block.
``// @ignore``
    Drop the line (also accepted as a trailing marker on captured code).
``/// <text>``
    Narrative markdown for the current section.

Results accumulate in a :class:`ScanResult`, which is created per scan so
independent scans never share state.

Example
-------
>>> from pathlib import Path
>>> from chapterbook.config import DocgenConfig
>>> scanner = DocScanner(DocgenConfig(root_dir=Path(".")))
>>> text = '/// @chapter: demo "Demo"\n/// Hello'
>>> scanner.scan_text(text, Path("demo.test.ts")).chapters["demo"].title
'Demo'
"""

from __future__ import annotations

import dataclasses as dc
import json
import logging
import re
import typing as typ
from pathlib import Path

from ._constants import DEFAULT_PRIORITY, DEFAULT_SECTION_TITLE
from .blocks import append_code, append_markdown, dedent, strip_comments
from .includes import IncludeResolver, detect_language, discover_files
from .models import Chapter, CodeBlock

if typ.TYPE_CHECKING:
    from .config import DocgenConfig
    from .models import Section

log = logging.getLogger(__name__)

CHAPTER_PATTERN = re.compile(r'^///\s*@chapter:\s*([a-z0-9_-]+)\s+"(.+)"')
SECTION_PATTERN = re.compile(r'^///\s*@section:\s*"(.*)"')
PRIORITY_PATTERN = re.compile(r"^///\s*@priority:\s*(.*)$")
INCLUDE_PATTERN = re.compile(r'^///\s*@include:\s*"([^"]+)"(?:\s+(\{.*\}))?')
START_PATTERN = re.compile(r"^//\s*@start:\s*([a-z0-9_-]+)")
END_PATTERN = re.compile(r"^//\s*@end:\s*([a-z0-9_-]+)")
PROSE_PREFIX = re.compile(r"^\s*///\s?")
IGNORE_MARKER = "// @ignore"


class DuplicateChapterError(ValueError):
    """Raised in strict mode when two files declare one chapter id differently."""


@dc.dataclass(slots=True)
class ScanResult:
    """Accumulator for one scan: chapters keyed by id plus warnings."""

    chapters: dict[str, Chapter] = dc.field(default_factory=dict)
    warnings: list[str] = dc.field(default_factory=list)
    files: list[Path] = dc.field(default_factory=list)

    def warn(self, message: str) -> None:
        """Record ``message`` and emit it through the module logger."""
        self.warnings.append(message)
        log.warning(message)

    def ordered_chapters(self) -> list[Chapter]:
        """Return chapters by priority; ties keep first-declared order."""
        return sorted(self.chapters.values(), key=lambda chapter: chapter.priority)


@dc.dataclass(slots=True)
class IncludeOptions:
    """Inline options accepted by ``@include``."""

    strip: bool = False
    group: str | None = None
    tab_title: str | None = None

    @classmethod
    def from_json(cls, raw: str | None) -> IncludeOptions:
        """Parse the JSON object trailing an include directive.

        Raises
        ------
        ValueError
            If ``raw`` is not a JSON object.
        """
        if not raw:
            return cls()
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            msg = "include options must be a JSON object"
            raise ValueError(msg)
        group = payload.get("group")
        tab_title = payload.get("tabTitle")
        return cls(
            strip=payload.get("strip") is True,
            group=str(group) if group else None,
            tab_title=str(tab_title) if tab_title else None,
        )


@dc.dataclass(slots=True)
class _FileState:
    """Per-file parsing context."""

    path: Path
    language: str
    chapter_id: str | None = None
    section_title: str = DEFAULT_SECTION_TITLE
    snippet_id: str | None = None
    buffer: list[str] = dc.field(default_factory=list)
    line_no: int = 0

    @property
    def capturing(self) -> bool:
        return self.snippet_id is not None

    def where(self) -> str:
        return f"{self.path}:{self.line_no}"


class DocScanner:
    """Parse annotated files into a shared :class:`ScanResult`."""

    def __init__(
        self,
        config: DocgenConfig,
        *,
        result: ScanResult | None = None,
        resolver: IncludeResolver | None = None,
    ) -> None:
        """Initialize the scanner.

        Parameters
        ----------
        config : DocgenConfig
            Build configuration (scan root, glob filters, strict mode).
        result : ScanResult, optional
            Accumulator to extend; a fresh one is created when omitted.
        resolver : IncludeResolver, optional
            Include resolver; defaults to one bound to ``config``.
        """
        self.config = config
        self.result = result if result is not None else ScanResult()
        self.resolver = resolver or IncludeResolver(config, warn=self.result.warn)

    def scan_file(self, path: Path) -> ScanResult:
        """Read ``path`` as UTF-8 and scan its contents."""
        text = path.read_text(encoding="utf-8")
        return self.scan_text(text, path)

    def scan_text(self, text: str, path: Path) -> ScanResult:
        """Scan ``text`` as if it were the contents of ``path``.

        Parameters
        ----------
        text : str
            File contents.
        path : Path
            Location of the file; used for language detection, relative
            directories, and resolving relative includes.

        Returns
        -------
        ScanResult
            The accumulator, extended with this file's chapters.
        """
        source = Path(path).resolve()
        state = _FileState(path=source, language=detect_language(source))
        # Only "\n" ends a line; other Unicode breaks belong to the code.
        for line_no, line in enumerate(text.split("\n"), start=1):
            state.line_no = line_no
            self._scan_line(state, line.removesuffix("\r"))
        if state.capturing:
            self._flush_capture(state)
        self.result.files.append(source)
        return self.result

    def _scan_line(self, state: _FileState, line: str) -> None:  # noqa: C901, PLR0911
        trimmed = line.strip()

        if match := CHAPTER_PATTERN.match(trimmed):
            chapter_id, title = match.groups()
            self._declare_chapter(state, chapter_id, title)
            return

        if match := SECTION_PATTERN.match(trimmed):
            if state.chapter_id is None:
                log.debug("%s: section outside a chapter ignored", state.where())
                return
            state.section_title = match.group(1)
            self._chapter(state).get_section(state.section_title)
            return

        if match := PRIORITY_PATTERN.match(trimmed):
            self._set_priority(state, match.group(1))
            return

        if match := INCLUDE_PATTERN.match(trimmed):
            if state.capturing:
                self._flush_capture(state)
            self._include(state, match.group(1), match.group(2))
            return

        if match := START_PATTERN.match(trimmed):
            if state.capturing:
                self.result.warn(
                    f"{state.where()}: snippet '{state.snippet_id}' was not closed "
                    f"before '@start: {match.group(1)}'"
                )
                self._flush_capture(state)
            state.snippet_id = match.group(1)
            state.buffer = []
            return

        if match := END_PATTERN.match(trimmed):
            snippet_id = match.group(1)
            if state.snippet_id == snippet_id:
                self._flush_capture(state)
            elif state.snippet_id is None:
                self.result.warn(
                    f"{state.where()}: '@end: {snippet_id}' with no open snippet; "
                    "ignored"
                )
            else:
                self.result.warn(
                    f"{state.where()}: '@end: {snippet_id}' does not match the open "
                    f"snippet {state.snippet_id!r}; ignored"
                )
            return

        if trimmed.startswith(IGNORE_MARKER):
            return

        if trimmed.startswith("///"):
            if state.chapter_id is not None:
                text = PROSE_PREFIX.sub("", line, count=1)
                append_markdown(self._section(state), text)
            return

        if state.capturing and not trimmed.endswith(IGNORE_MARKER):
            state.buffer.append(line)

    def _declare_chapter(self, state: _FileState, chapter_id: str, title: str) -> None:
        state.chapter_id = chapter_id
        existing = self.result.chapters.get(chapter_id)
        if existing is None:
            self.result.chapters[chapter_id] = Chapter(
                id=chapter_id,
                title=title,
                source_file=str(state.path),
                relative_source_dir=self._relative_dir(state.path),
            )
            return
        if existing.source_file == str(state.path) or existing.title == title:
            return
        message = (
            f"{state.where()}: chapter '{chapter_id}' already declared as "
            f"'{existing.title}' in {existing.source_file}; keeping the first"
        )
        if self.config.strict:
            raise DuplicateChapterError(message)
        self.result.warn(message)

    def _set_priority(self, state: _FileState, raw: str) -> None:
        if state.chapter_id is None:
            log.debug("%s: priority outside a chapter ignored", state.where())
            return
        try:
            priority = int(raw.strip())
        except ValueError:
            self.result.warn(
                f"{state.where()}: invalid priority {raw.strip()!r}; "
                f"using {DEFAULT_PRIORITY}"
            )
            priority = DEFAULT_PRIORITY
        self._chapter(state).priority = priority

    def _include(self, state: _FileState, target: str, raw_options: str | None) -> None:
        if state.chapter_id is None:
            self.result.warn(f"{state.where()}: include '{target}' outside a chapter")
            return
        try:
            options = IncludeOptions.from_json(raw_options)
        except ValueError as exc:
            self.result.warn(
                f"{state.where()}: invalid include options {raw_options!r} ({exc}); "
                "using defaults"
            )
            options = IncludeOptions()

        resolved = self.resolver.resolve(target, state.path)
        if resolved is None:
            self.result.warn(f"{state.where()}: missing include '{target}'")
            return
        try:
            content = resolved.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self.result.warn(f"{state.where()}: cannot read include '{target}': {exc}")
            return
        if options.strip:
            content = strip_comments(content)
        block = CodeBlock(
            id=f"include-{resolved.name}",
            content=content.strip(),
            language=detect_language(resolved),
            source_file=str(resolved),
            title=options.tab_title or resolved.name,
        )
        append_code(self._section(state), block, options.group)

    def _flush_capture(self, state: _FileState) -> None:
        snippet_id = state.snippet_id
        lines = state.buffer
        state.snippet_id = None
        state.buffer = []
        if snippet_id is None:
            return
        if state.chapter_id is None:
            self.result.warn(
                f"{state.where()}: snippet '{snippet_id}' outside a chapter dropped"
            )
            return
        block = CodeBlock(
            id=snippet_id,
            content=dedent(lines),
            language=state.language,
            source_file=str(state.path),
        )
        append_code(self._section(state), block)

    def _chapter(self, state: _FileState) -> Chapter:
        assert state.chapter_id is not None  # noqa: S101 - callers check first
        return self.result.chapters[state.chapter_id]

    def _section(self, state: _FileState) -> Section:
        return self._chapter(state).get_section(state.section_title)

    def _relative_dir(self, path: Path) -> str:
        try:
            relative = path.parent.relative_to(self.config.root_dir)
        except ValueError:
            return ""
        posix = relative.as_posix()
        return "" if posix == "." else posix


def scan_directory(config: DocgenConfig) -> ScanResult:
    """Discover and scan every configured file under ``config.root_dir``.

    Files are scanned in sorted path order so repeated runs produce the same
    chapters. Unreadable files are reported as warnings and skipped.

    Raises
    ------
    DuplicateChapterError
        In strict mode, when chapter ids collide across files.
    """
    files = discover_files(config)
    result = ScanResult()
    resolver = IncludeResolver(config, files=files, warn=result.warn)
    scanner = DocScanner(config, result=result, resolver=resolver)
    log.info("Found %d files to scan.", len(files))
    for path in files:
        try:
            scanner.scan_file(path)
        except (OSError, UnicodeDecodeError) as exc:
            result.warn(f"{path}: cannot read file: {exc}")
    return result


__all__ = [
    "DocScanner",
    "DuplicateChapterError",
    "IncludeOptions",
    "ScanResult",
    "scan_directory",
]
