"""Discover annotated files and resolve ``@include`` targets.

File discovery and bare-filename include lookup share the same include and
exclude globs, so an include can never reach outside the documentation source
set. Bare-filename candidates are sorted before the first one is taken, making
the choice independent of filesystem enumeration order.
"""

from __future__ import annotations

import collections.abc as cabc
import fnmatch
import logging
import typing as typ
from pathlib import Path

from pygments.lexers import get_lexer_for_filename
from pygments.util import ClassNotFound

if typ.TYPE_CHECKING:
    from .config import DocgenConfig

log = logging.getLogger(__name__)

LANGUAGE_OVERRIDES: dict[str, str] = {
    "ts": "typescript",
    "tsx": "typescript",
    "sol": "solidity",
}


def detect_language(path: str | Path) -> str:
    """Return the fence language for ``path`` based on its extension.

    TypeScript and Solidity use fixed names; other extensions use the first
    Pygments alias for the filename and fall back to the bare extension.

    Examples
    --------
    >>> detect_language("Token.sol")
    'solidity'
    >>> detect_language("notes.unknownext")
    'unknownext'
    """
    name = Path(path).name
    ext = Path(name).suffix.lstrip(".").lower()
    if ext in LANGUAGE_OVERRIDES:
        return LANGUAGE_OVERRIDES[ext]
    if not ext:
        return ""
    try:
        lexer = get_lexer_for_filename(name)
    except ClassNotFound:
        return ext
    return lexer.aliases[0] if lexer.aliases else ext


def is_excluded(relative: str, patterns: cabc.Iterable[str]) -> bool:
    """Return True when the POSIX ``relative`` path matches an exclude glob."""
    rooted = f"/{relative}"
    return any(
        fnmatch.fnmatchcase(relative, pattern) or fnmatch.fnmatchcase(rooted, pattern)
        for pattern in patterns
    )


def discover_files(config: DocgenConfig) -> list[Path]:
    """Return the sorted absolute files selected by the configured globs."""
    root = config.root_dir
    found: set[Path] = set()
    for pattern in config.include_globs:
        for candidate in root.glob(pattern):
            if not candidate.is_file():
                continue
            relative = candidate.relative_to(root).as_posix()
            if is_excluded(relative, config.exclude_globs):
                continue
            found.add(candidate.resolve())
    return sorted(found)


class IncludeResolver:
    """Map an include reference to exactly one file on disk."""

    def __init__(
        self,
        config: DocgenConfig,
        *,
        files: cabc.Sequence[Path] | None = None,
        warn: cabc.Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the resolver.

        Parameters
        ----------
        config : DocgenConfig
            Build configuration supplying the scan root and glob filters.
        files : Sequence[Path], optional
            Pre-discovered candidate files; discovered lazily when omitted.
        warn : Callable[[str], None], optional
            Receives ambiguity warnings; defaults to the module logger.
        """
        self.config = config
        self._files = sorted(files) if files is not None else None
        self._warn = warn or log.warning

    @property
    def files(self) -> list[Path]:
        """Return the candidate set used for bare-filename lookups."""
        if self._files is None:
            self._files = discover_files(self.config)
        return self._files

    def resolve(self, target: str, current_file: str | Path) -> Path | None:
        """Return the absolute path ``target`` refers to, or ``None``.

        Parameters
        ----------
        target : str
            Absolute path, ``./``/``../`` relative path, project path, or bare
            filename.
        current_file : str or Path
            File containing the ``@include`` directive.

        Returns
        -------
        Path or None
            The resolved file; ``None`` when nothing matches.
        """
        candidate = Path(target)
        if candidate.is_absolute():
            return candidate if candidate.is_file() else None
        if target.startswith("."):
            resolved = (Path(current_file).parent / candidate).resolve()
            return resolved if resolved.is_file() else None
        if "/" in target:
            direct = (self.config.root_dir / candidate).resolve()
            if direct.is_file():
                return direct
            matches = [
                path for path in self.files if path.as_posix().endswith(f"/{target}")
            ]
        else:
            matches = [path for path in self.files if path.name == target]
        if not matches:
            return None
        if len(matches) > 1:
            names = ", ".join(self._display(path) for path in matches)
            self._warn(f"Ambiguous include '{target}' matches {names}; using the first.")
        return matches[0]

    def _display(self, path: Path) -> str:
        try:
            return path.relative_to(self.config.root_dir).as_posix()
        except ValueError:
            return path.as_posix()


__all__ = [
    "IncludeResolver",
    "detect_language",
    "discover_files",
    "is_excluded",
]
