"""Render chapters into markdown pages with YAML front matter."""

from __future__ import annotations

import io
import re
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from ruamel.yaml import YAML

from chapterbook.models import Block, Chapter, CodeBlock, MarkdownBlock, TabGroup

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
BACKTICK_RUN = re.compile(r"`{3,}")
TABS_OPEN = "{% tabs %}"
TABS_CLOSE = "{% endtabs %}"
TAB_CLOSE = "{% endtab %}"


def build_environment(templates_dir: Path | None = None) -> Environment:
    """Return the Jinja environment shared by chapter and summary templates."""
    env = Environment(
        loader=FileSystemLoader(str(templates_dir or DEFAULT_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["render_block"] = render_block
    return env


def front_matter(title: str) -> str:
    """Return the YAML body of a page's front matter.

    Examples
    --------
    >>> front_matter("Demo")
    'title: Demo\\n'
    """
    yaml = YAML(typ="safe", pure=True)
    yaml.default_flow_style = False
    yaml.width = 4096
    stream = io.StringIO()
    yaml.dump({"title": title}, stream)
    return stream.getvalue()


def fence(block: CodeBlock) -> str:
    """Wrap ``block`` in a fenced code block longer than any inner fence."""
    longest = max((len(run) for run in BACKTICK_RUN.findall(block.content)), default=2)
    marker = "`" * max(3, longest + 1)
    return f"{marker}{block.language}\n{block.content}\n{marker}"


def render_block(block: Block) -> str:
    """Render one block as markdown without a trailing newline.

    Tab groups use GitBook's ``{% tabs %}`` container; each tab is titled by
    its ``tabTitle`` option or the included file's name.
    """
    match block:
        case MarkdownBlock(content=content):
            return content
        case CodeBlock():
            return fence(block)
        case TabGroup(tabs=tabs):
            parts = [TABS_OPEN]
            for tab in tabs:
                title = (tab.title or Path(tab.source_file).name).replace('"', "'")
                parts.extend((f'{{% tab title="{title}" %}}', fence(tab), TAB_CLOSE))
            parts.append(TABS_CLOSE)
            return "\n".join(parts)
        case _:
            typ.assert_never(block)


class ChapterRenderer:
    """Render :class:`Chapter` objects through ``chapter.md.jinja``."""

    def __init__(self, env: Environment | None = None) -> None:
        self.env = env or build_environment()
        self.template = self.env.get_template("chapter.md.jinja")

    def render(self, chapter: Chapter) -> str:
        """Return the full markdown page for ``chapter``."""
        return self.template.render(
            chapter=chapter, front_matter=front_matter(chapter.title)
        )


__all__ = [
    "ChapterRenderer",
    "build_environment",
    "fence",
    "front_matter",
    "render_block",
]
