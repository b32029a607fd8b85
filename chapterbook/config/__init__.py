"""Load and validate chapterbook build configuration.

This subpackage reads the optional ``docgen.yaml`` file at the project root,
applies the defaults used for test and contract projects, and produces a
:class:`DocgenConfig` that the scanner, tree builder, and renderer share.

Examples
--------
>>> from pathlib import Path
>>> from chapterbook.config import load_docgen_config
>>> config = load_docgen_config(Path("."))  # doctest: +SKIP
>>> config.include_globs  # doctest: +SKIP
['test/**/*.ts', 'contracts/**/*.sol']
"""

from .loader import DEFAULT_CONFIG_NAME, load_docgen_config
from .models import DocgenConfig, DocgenConfigError

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DocgenConfig",
    "DocgenConfigError",
    "load_docgen_config",
]
