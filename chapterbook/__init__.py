"""Turn documentation comments in tests and contracts into markdown chapters.

This package exposes the CLI entry points used by ``chapterbook generate`` to
scan annotated sources, build the navigation tree, and render chapter pages
plus a ``SUMMARY.md`` table of contents.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from chapterbook import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
