"""Unit tests for the directive scanner.

These tests drive :class:`chapterbook.scanner.DocScanner` with in-memory
source text (and a few files on disk for includes) to pin down how chapters,
sections, prose, captured snippets, and included files are assembled.

Usage
-----
Run ``pytest tests/test_scanner.py -v``. The ``project_root``,
``write_file`` and ``docgen_config`` fixtures from ``conftest.py`` provide a
throwaway project per test.
"""

from __future__ import annotations

import typing as typ

import pytest

from chapterbook.config import DocgenConfig
from chapterbook.models import CodeBlock, MarkdownBlock, Section, TabGroup
from chapterbook.scanner import DocScanner, DuplicateChapterError, scan_directory

if typ.TYPE_CHECKING:
    from pathlib import Path

    from chapterbook.scanner import ScanResult

    from .conftest import WriteFile

DEMO_SOURCE = """\
/// @chapter: demo "Demo"
/// @section: "Intro"
/// Hello world
// @start: snip1
const x = 1;
// @end: snip1
"""


def _scan(
    config: DocgenConfig, text: str, relative: str = "test/demo.test.ts"
) -> ScanResult:
    return DocScanner(config).scan_text(text, config.root_dir / relative)


def _blocks(result: ScanResult, chapter_id: str, section: str = "Overview") -> list:
    chapter = result.chapters[chapter_id]
    return next(s.blocks for s in chapter.sections if s.title == section)


def test_demo_chapter_structure(docgen_config: DocgenConfig) -> None:
    """Prose and a captured snippet form one section in declaration order."""
    result = _scan(docgen_config, DEMO_SOURCE)
    chapter = result.chapters["demo"]
    source_file = str(docgen_config.root_dir / "test" / "demo.test.ts")
    expected = [
        Section(
            title="Intro",
            blocks=[
                MarkdownBlock(content="Hello world"),
                CodeBlock(
                    id="snip1",
                    content="const x = 1;",
                    language="typescript",
                    source_file=source_file,
                ),
            ],
        )
    ]
    assert chapter.title == "Demo", f"unexpected title {chapter.title!r}"
    assert chapter.sections == expected, f"unexpected sections {chapter.sections!r}"
    assert chapter.relative_source_dir == "test", "relative dir should be 'test'"
    assert result.warnings == [], f"expected no warnings, got {result.warnings}"


def test_prose_defaults_to_overview_and_coalesces(docgen_config: DocgenConfig) -> None:
    """Prose before any section lands in one Overview markdown block."""
    text = '/// @chapter: a "A"\n/// one\n  /// two\n///\n/// three'
    result = _scan(docgen_config, text)
    assert _blocks(result, "a") == [MarkdownBlock(content="one\ntwo\n\nthree")], (
        "consecutive prose lines should coalesce into one block"
    )


def test_section_redeclaration_continues_existing_section(
    docgen_config: DocgenConfig,
) -> None:
    """Returning to a section title appends to the original section."""
    text = "\n".join([
        '/// @chapter: a "A"',
        '/// @section: "First"',
        "/// one",
        '/// @section: "Second"',
        "/// two",
        '/// @section: "First"',
        "/// three",
    ])
    result = _scan(docgen_config, text)
    titles = [section.title for section in result.chapters["a"].sections]
    assert titles == ["First", "Second"], f"unexpected section order {titles}"
    assert _blocks(result, "a", "First") == [MarkdownBlock(content="one\nthree")], (
        "prose should resume the earlier section"
    )


def test_directives_outside_a_chapter_are_ignored(docgen_config: DocgenConfig) -> None:
    """Sections and prose before any chapter produce nothing."""
    text = '/// @section: "Lost"\n/// orphan prose\n// @start: s\ncode();\n// @end: s'
    result = _scan(docgen_config, text)
    assert result.chapters == {}, "no chapter should be created"
    assert any("outside a chapter" in w for w in result.warnings), (
        "dropping an orphan snippet should be reported"
    )


def test_priority_is_parsed(docgen_config: DocgenConfig) -> None:
    """A numeric priority is stored on the chapter."""
    result = _scan(docgen_config, '/// @chapter: a "A"\n/// @priority: 5')
    assert result.chapters["a"].priority == 5, "priority should be 5"


def test_invalid_priority_falls_back_with_warning(docgen_config: DocgenConfig) -> None:
    """Non-integer priorities fall back to 100 and are reported."""
    result = _scan(docgen_config, '/// @chapter: a "A"\n/// @priority: high')
    assert result.chapters["a"].priority == 100, "invalid priority should be 100"
    assert any("invalid priority" in w for w in result.warnings), (
        f"expected an invalid priority warning, got {result.warnings}"
    )


def test_mismatched_end_is_ignored(docgen_config: DocgenConfig) -> None:
    """An ``@end`` for another snippet keeps the capture open."""
    text = "\n".join([
        '/// @chapter: a "A"',
        "// @start: one",
        "first();",
        "// @end: two",
        "second();",
        "// @end: one",
    ])
    result = _scan(docgen_config, text)
    blocks = _blocks(result, "a")
    assert len(blocks) == 1, f"expected a single snippet, got {blocks!r}"
    assert blocks[0].content == "first();\nsecond();", (
        "capture should span the stray end"
    )
    assert any("does not match" in w for w in result.warnings), "mismatch should warn"


def test_end_without_open_snippet_is_reported(docgen_config: DocgenConfig) -> None:
    """A stray ``@end`` before any ``@start`` is ignored with its own warning."""
    text = "\n".join([
        '/// @chapter: a "A"',
        "// @end: ghost",
        "/// still prose",
    ])
    result = _scan(docgen_config, text)
    assert _blocks(result, "a") == [MarkdownBlock(content="still prose")], (
        "a stray end should not produce a snippet"
    )
    assert any("'@end: ghost' with no open snippet" in w for w in result.warnings), (
        f"expected a no open snippet warning, got {result.warnings}"
    )
    assert not any("does not match" in w for w in result.warnings), (
        "a stray end is not a mismatch"
    )


def test_only_newlines_end_lines(docgen_config: DocgenConfig) -> None:
    """Form feeds and Unicode separators inside code stay on their line."""
    text = "\n".join([
        '/// @chapter: a "A"',
        "// @start: one",
        'const page = "a\x0cb";',
        'const sep = "c\u2028d";',
        "// @end: one",
    ])
    result = _scan(docgen_config, text)
    (block,) = _blocks(result, "a")
    assert block.content == 'const page = "a\x0cb";\nconst sep = "c\u2028d";', (
        f"unexpected snippet content {block.content!r}"
    )
    assert result.warnings == [], f"expected no warnings, got {result.warnings}"


def test_crlf_line_endings_are_normalised(docgen_config: DocgenConfig) -> None:
    """Windows line endings leave no carriage returns in chapters."""
    result = _scan(docgen_config, DEMO_SOURCE.replace("\n", "\r\n"))
    chapter = result.chapters["demo"]
    assert chapter.title == "Demo", f"unexpected title {chapter.title!r}"
    assert _blocks(result, "demo", "Intro") == [
        MarkdownBlock(content="Hello world"),
        CodeBlock(
            id="snip1",
            content="const x = 1;",
            language="typescript",
            source_file=str(docgen_config.root_dir / "test" / "demo.test.ts"),
        ),
    ], "carriage returns should be dropped from prose and code"


def test_start_while_capturing_flushes_previous_snippet(
    docgen_config: DocgenConfig,
) -> None:
    """Opening a snippet while one is open closes the first one."""
    text = "\n".join([
        '/// @chapter: a "A"',
        "// @start: one",
        "first();",
        "// @start: two",
        "second();",
        "// @end: two",
    ])
    result = _scan(docgen_config, text)
    blocks = _blocks(result, "a")
    assert [(b.id, b.content) for b in blocks] == [
        ("one", "first();"),
        ("two", "second();"),
    ], f"unexpected snippets {blocks!r}"
    assert any("was not closed" in w for w in result.warnings), "self-heal should warn"


def test_unclosed_snippet_is_flushed_at_end_of_file(docgen_config: DocgenConfig) -> None:
    """A capture left open at EOF still becomes a code block."""
    result = _scan(docgen_config, '/// @chapter: a "A"\n// @start: tail\ntail();')
    blocks = _blocks(result, "a")
    assert [(b.id, b.content) for b in blocks] == [("tail", "tail();")], (
        f"expected the trailing snippet, got {blocks!r}"
    )


def test_ignore_markers_drop_lines_and_code_is_dedented(
    docgen_config: DocgenConfig,
) -> None:
    """Full-line and trailing ignore markers remove lines from snippets."""
    text = "\n".join([
        '/// @chapter: a "A"',
        "  // @start: one",
        "    keep();",
        "    // @ignore",
        "    drop(); // @ignore",
        "      nested();",
        "  // @end: one",
    ])
    result = _scan(docgen_config, text)
    (block,) = _blocks(result, "a")
    assert block.content == "keep();\n  nested();", (
        f"unexpected snippet content {block.content!r}"
    )


def test_missing_include_warns_and_parsing_continues(
    docgen_config: DocgenConfig,
) -> None:
    """A missing include adds no block and later lines still parse."""
    text = '/// @chapter: a "A"\n/// Before\n/// @include: "Nope.sol"\n/// After'
    result = _scan(docgen_config, text)
    assert _blocks(result, "a") == [MarkdownBlock(content="Before\nAfter")], (
        "the missing include should contribute no block"
    )
    assert any("missing include 'Nope.sol'" in w for w in result.warnings), (
        f"expected a missing include warning, got {result.warnings}"
    )


def test_grouped_includes_form_one_tab_group(
    docgen_config: DocgenConfig, write_file: WriteFile
) -> None:
    """Consecutive includes sharing a group become tabs in order."""
    for name in ("A", "B", "C"):
        write_file(f"contracts/{name}.sol", f"contract {name} {{}}\n")
    text = "\n".join(
        ['/// @chapter: tabs "Tabs"']
        + [f'/// @include: "{n}.sol" {{"group": "g"}}' for n in ("A", "B", "C")]
    )
    result = _scan(docgen_config, text)
    blocks = _blocks(result, "tabs")
    assert len(blocks) == 1, f"expected one tab group, got {blocks!r}"
    group = blocks[0]
    assert isinstance(group, TabGroup), "grouped includes should form a TabGroup"
    assert group.group_id == "g", "group id should be preserved"
    assert [tab.title for tab in group.tabs] == ["A.sol", "B.sol", "C.sol"], (
        "tabs should keep declaration order"
    )
    assert {tab.language for tab in group.tabs} == {"solidity"}, "tabs are solidity"
    assert group.tabs[0].id == "include-A.sol", "include ids derive from the file name"
    assert group.tabs[0].content == "contract A {}", "include content is trimmed"


def test_include_options_strip_and_tab_title(
    docgen_config: DocgenConfig, write_file: WriteFile
) -> None:
    """``strip`` removes comments and ``tabTitle`` overrides the title."""
    write_file(
        "contracts/Counter.sol",
        "// SPDX-License-Identifier: MIT\npragma solidity ^0.8.24;\n\n"
        "/// Counter contract.\ncontract Counter {}\n",
    )
    text = (
        '/// @chapter: a "A"\n'
        '/// @include: "Counter.sol" {"strip": true, "tabTitle": "Contract"}'
    )
    result = _scan(docgen_config, text)
    (block,) = _blocks(result, "a")
    assert block.title == "Contract", f"unexpected title {block.title!r}"
    assert block.content == "pragma solidity ^0.8.24;\n\ncontract Counter {}", (
        f"unexpected stripped include {block.content!r}"
    )


@pytest.mark.parametrize("raw_strip", ['"false"', '"true"', "1"])
def test_include_strip_requires_json_true(
    docgen_config: DocgenConfig, write_file: WriteFile, raw_strip: str
) -> None:
    """Only a JSON ``true`` enables comment stripping."""
    write_file("contracts/A.sol", "// header\ncontract A {}\n")
    text = f'/// @chapter: a "A"\n/// @include: "A.sol" {{"strip": {raw_strip}}}'
    result = _scan(docgen_config, text)
    (block,) = _blocks(result, "a")
    assert block.content == "// header\ncontract A {}", (
        f"comments should be kept for strip={raw_strip}, got {block.content!r}"
    )


def test_relative_include_resolves_from_current_file(
    docgen_config: DocgenConfig, write_file: WriteFile
) -> None:
    """``./`` targets resolve against the including file's directory."""
    write_file("test/helpers/setup.ts", "export const setup = () => 1;\n")
    text = '/// @chapter: a "A"\n/// @include: "./helpers/setup.ts"'
    result = _scan(docgen_config, text)
    (block,) = _blocks(result, "a")
    assert block.content == "export const setup = () => 1;", "relative include failed"
    assert block.language == "typescript", "ts files render as typescript"


def test_invalid_include_options_fall_back_to_defaults(
    docgen_config: DocgenConfig, write_file: WriteFile
) -> None:
    """Malformed option JSON is reported and the include still happens."""
    write_file("contracts/A.sol", "contract A {}\n")
    result = _scan(docgen_config, '/// @chapter: a "A"\n/// @include: "A.sol" {oops}')
    (block,) = _blocks(result, "a")
    assert isinstance(block, CodeBlock), "include should still be added standalone"
    assert any("invalid include options" in w for w in result.warnings), (
        "malformed options should warn"
    )


def test_include_closes_open_capture(
    docgen_config: DocgenConfig, write_file: WriteFile
) -> None:
    """An include while capturing flushes the snippet first."""
    write_file("contracts/A.sol", "contract A {}\n")
    text = "\n".join([
        '/// @chapter: a "A"',
        "// @start: setup",
        "setup();",
        '/// @include: "A.sol"',
        "notCaptured();",
    ])
    result = _scan(docgen_config, text)
    assert [b.id for b in _blocks(result, "a")] == ["setup", "include-A.sol"], (
        "the snippet should precede the include"
    )


def test_duplicate_chapter_with_other_title_warns(docgen_config: DocgenConfig) -> None:
    """The first declaration wins when another file reuses an id."""
    scanner = DocScanner(docgen_config)
    root = docgen_config.root_dir
    scanner.scan_text('/// @chapter: a "First"\n/// one', root / "test" / "one.ts")
    result = scanner.scan_text(
        '/// @chapter: a "Second"\n/// two', root / "test" / "two.ts"
    )
    assert result.chapters["a"].title == "First", "first declaration should win"
    assert any("already declared" in w for w in result.warnings), (
        f"expected a duplicate warning, got {result.warnings}"
    )


def test_duplicate_chapter_raises_in_strict_mode(project_root: Path) -> None:
    """Strict mode turns a conflicting redeclaration into an error."""
    config = DocgenConfig(root_dir=project_root, strict=True)
    scanner = DocScanner(config)
    scanner.scan_text('/// @chapter: a "First"', project_root / "test" / "one.ts")
    with pytest.raises(DuplicateChapterError, match="already declared"):
        scanner.scan_text('/// @chapter: a "Second"', project_root / "test" / "two.ts")


def test_same_title_redeclaration_continues_chapter(
    docgen_config: DocgenConfig,
) -> None:
    """A second file with the same id and title extends the chapter silently."""
    scanner = DocScanner(docgen_config)
    root = docgen_config.root_dir
    scanner.scan_text('/// @chapter: a "A"\n/// one', root / "test" / "one.ts")
    result = scanner.scan_text('/// @chapter: a "A"\n/// two', root / "test" / "two.ts")
    assert _blocks(result, "a") == [MarkdownBlock(content="one\ntwo")], (
        "continuation prose should join the Overview section"
    )
    assert result.warnings == [], "a matching redeclaration should not warn"


def test_scan_directory_orders_and_filters(
    docgen_config: DocgenConfig, write_file: WriteFile
) -> None:
    """Discovered files are scanned in order and chapters sort by priority."""
    write_file("test/beginner/b.test.ts", '/// @chapter: later "Later"\n')
    write_file(
        "test/advanced/a.test.ts", '/// @chapter: first "First"\n/// @priority: 1\n'
    )
    write_file("test/node_modules/pkg/x.test.ts", '/// @chapter: vendored "V"\n')
    write_file("test/types.d.ts", '/// @chapter: typings "T"\n')

    result = scan_directory(docgen_config)
    ids = [chapter.id for chapter in result.ordered_chapters()]
    assert ids == ["first", "later"], f"unexpected chapter order {ids}"
    assert result.chapters["first"].relative_source_dir == "test/advanced", (
        "relative source dir should be project-relative"
    )


def test_repeated_scans_are_identical(
    docgen_config: DocgenConfig, write_file: WriteFile
) -> None:
    """Scanning the same tree twice yields equal chapters."""
    write_file("contracts/A.sol", "contract A {}\n")
    write_file(
        "test/demo.test.ts",
        DEMO_SOURCE + '/// @include: "A.sol" {"group": "g"}\n',
    )
    first = scan_directory(docgen_config)
    second = scan_directory(docgen_config)
    assert first.chapters == second.chapters, "scans should not share state"
