"""Cyclopts CLI entrypoint for generating chapter documentation.

The ``chapterbook`` console script scans annotated tests and contracts under a
project root, writes one markdown page per chapter into ``docs/chapters`` and
rebuilds ``docs/SUMMARY.md``, appending any pre-rendered API reference found in
``docs/api``.

Examples
--------
Generate the docs for the project in the current directory:

>>> from chapterbook.cli import main
>>> main()  # doctest: +SKIP

Generate the docs for another project with strict duplicate checks:

>>> from chapterbook.cli import app
>>> app(["generate", "--root", "examples", "--strict"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .config import load_docgen_config
from .generator import DocsGenerator

app = App(name="chapterbook", config=cyclopts.config.Env("INPUT_", command=False))  # type: ignore[unknown-argument]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def configure_logging(*, verbose: bool = False) -> None:
    """Send log records to stderr; ``verbose`` lowers the level to DEBUG."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(levelname)s %(message)s", stream=sys.stderr, force=True
    )


@app.command(help="Generate chapter pages and SUMMARY.md from annotated sources.")
def generate(
    *,
    root: typ.Annotated[
        Path, Parameter(help="Project root to scan", env_var="INPUT_ROOT")
    ] = Path(),
    config: typ.Annotated[
        Path | None,
        Parameter(help="Path to docgen.yaml", env_var="INPUT_CONFIG"),
    ] = None,
    strict: typ.Annotated[
        bool | None,
        Parameter(
            help="Fail when chapter ids collide across files", env_var="INPUT_STRICT"
        ),
    ] = None,
    verbose: typ.Annotated[
        bool, Parameter(help="Log debug details", env_var="INPUT_VERBOSE")
    ] = False,
) -> None:
    """Generate documentation for the project at ``root``.

    Parameters
    ----------
    root : Path, optional
        Project root; defaults to the current directory.
    config : Path or None, optional
        Explicit configuration file; ``<root>/docgen.yaml`` is used when it
        exists and ``None`` is given.
    strict : bool or None, optional
        Override the configured strict mode.
    verbose : bool, optional
        Enable debug logging.

    Returns
    -------
    None
        Writes the documentation and prints each generated path.

    Raises
    ------
    OutputDirectoryError
        If the chapters directory cannot be cleared or created.
    """
    configure_logging(verbose=verbose)
    docgen_config = load_docgen_config(root, config, strict=strict)
    generator = DocsGenerator(docgen_config)
    written = generator.run()
    for path in written:
        print(f"wrote {_format_path(path)}")
    warnings = generator.warnings
    if warnings:
        print(f"{len(warnings)} warning(s) reported", file=sys.stderr)


def main() -> None:
    """Invoke the Cyclopts application that powers the ``chapterbook`` command."""
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
