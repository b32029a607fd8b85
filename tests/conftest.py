"""Shared fixtures for chapterbook tests."""

from __future__ import annotations

import collections.abc as cabc
from pathlib import Path

import pytest

from chapterbook.config import DocgenConfig

WriteFile = cabc.Callable[[str, str], Path]


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Return an empty project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def write_file(project_root: Path) -> WriteFile:
    """Return a helper writing ``text`` to a project-relative path."""

    def _write(relative: str, text: str) -> Path:
        path = project_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def docgen_config(project_root: Path) -> DocgenConfig:
    """Return the default configuration for ``project_root``."""
    return DocgenConfig(root_dir=project_root)
