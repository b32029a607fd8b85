r"""Assemble chapter sections from prose lines and captured code.

The helpers here own the block merging rules: consecutive prose always lands
in one :class:`~chapterbook.models.MarkdownBlock`, and grouped includes share a
:class:`~chapterbook.models.TabGroup` while their group id repeats. They also
normalise captured code (``dedent``) and clean included files
(``strip_comments``).

Example
-------
>>> from chapterbook.blocks import dedent
>>> dedent(["", "    a = 1", "      b = 2", ""])
'a = 1\n  b = 2'
"""

from __future__ import annotations

import re
import typing as typ

from .models import CodeBlock, MarkdownBlock, TabGroup

if typ.TYPE_CHECKING:
    from .models import Section

BLOCK_COMMENT_PATTERN = re.compile(r"/\*[\s\S]*?\*/")
# ``//`` directly after ``:`` is a URL scheme (``https://``), not a comment.
LINE_COMMENT_PATTERN = re.compile(r"(?<!:)//.*$")


def dedent(lines: typ.Sequence[str]) -> str:
    r"""Trim blank edges and remove the common indentation of ``lines``.

    Parameters
    ----------
    lines : Sequence[str]
        Raw buffered lines, without trailing newlines.

    Returns
    -------
    str
        Lines joined with ``\n``; blank lines are emitted empty and an
        all-blank buffer yields ``""``.
    """
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    body = lines[start:end]
    if not body:
        return ""
    indent = min(len(line) - len(line.lstrip()) for line in body if line.strip())
    return "\n".join(line[indent:] if line.strip() else "" for line in body)


def strip_comments(content: str) -> str:
    r"""Remove comments from included source while keeping deliberate spacing.

    Block comments go first regardless of what surrounds them. Each line then
    loses its trailing ``//`` comment; a line is dropped only when stripping
    emptied it, so blank lines that were already blank survive.

    Examples
    --------
    >>> strip_comments("const a = 1; // init\n\n// full comment\nconst b = 2;")
    'const a = 1;\n\nconst b = 2;'
    """
    without_blocks = BLOCK_COMMENT_PATTERN.sub("", content)
    kept: list[str] = []
    for line in without_blocks.split("\n"):
        was_blank = not line.strip()
        cleaned = LINE_COMMENT_PATTERN.sub("", line).rstrip()
        if cleaned.strip() or was_blank:
            kept.append(cleaned)
    return "\n".join(kept)


def append_markdown(section: Section, text: str) -> None:
    """Append prose to ``section``, extending a trailing markdown block."""
    if section.blocks:
        last = section.blocks[-1]
        if isinstance(last, MarkdownBlock):
            last.content += f"\n{text}"
            return
    section.blocks.append(MarkdownBlock(content=text))


def append_code(section: Section, block: CodeBlock, group_id: str | None = None) -> None:
    """Append ``block`` to ``section``, merging into a matching tab group.

    Without ``group_id`` the block is stored standalone. With a group id the
    block joins the trailing :class:`TabGroup` when that group has the same
    id, otherwise it opens a new group.
    """
    if not group_id:
        section.blocks.append(block)
        return
    if section.blocks:
        last = section.blocks[-1]
        if isinstance(last, TabGroup) and last.group_id == group_id:
            last.tabs.append(block)
            return
    section.blocks.append(TabGroup(group_id=group_id, tabs=[block]))


__all__ = ["append_code", "append_markdown", "dedent", "strip_comments"]
