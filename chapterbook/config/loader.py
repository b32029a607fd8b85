"""Load ``docgen.yaml`` into a typed :class:`DocgenConfig`."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from .._constants import META_FILENAME
from .models import (
    DEFAULT_EXCLUDE_GLOBS,
    DEFAULT_INCLUDE_GLOBS,
    DocgenConfig,
    DocgenConfigError,
)

DEFAULT_CONFIG_NAME = "docgen.yaml"


def load_docgen_config(
    root_dir: Path,
    path: Path | None = None,
    *,
    strict: bool | None = None,
) -> DocgenConfig:
    """Build the configuration for a documentation run rooted at ``root_dir``.

    Parameters
    ----------
    root_dir : Path
        Project root used for globbing and as the base of relative paths in
        the configuration file.
    path : Path, optional
        Explicit configuration file. When ``None``, ``<root_dir>/docgen.yaml``
        is read if it exists and defaults are used otherwise.
    strict : bool, optional
        Overrides the ``strict`` key of the file when not ``None``.

    Returns
    -------
    DocgenConfig
        Settings with every path resolved against ``root_dir``.

    Raises
    ------
    FileNotFoundError
        If ``path`` is given but does not exist.
    DocgenConfigError
        If the file is not a mapping or a key has the wrong shape.

    Examples
    --------
    >>> from pathlib import Path
    >>> config = load_docgen_config(Path("."))  # doctest: +SKIP
    >>> config.meta_filename  # doctest: +SKIP
    '_meta.json'
    """
    root = Path(root_dir).resolve()
    raw: dict[str, typ.Any] = {}
    if path is not None and not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)
    config_path = path if path is not None else root / DEFAULT_CONFIG_NAME
    if config_path.exists():
        raw = _read_yaml(config_path)

    config = DocgenConfig(
        root_dir=root,
        include_globs=_string_list(raw, "include", DEFAULT_INCLUDE_GLOBS),
        exclude_globs=_string_list(raw, "exclude", DEFAULT_EXCLUDE_GLOBS),
        out_dir=_optional_path(root, raw.get("out_dir")),
        summary_file=_optional_path(root, raw.get("summary_file")),
        api_dir=_optional_path(root, raw.get("api_dir")),
        meta_filename=str(raw.get("meta_filename", META_FILENAME)),
        intro_page=_intro_page(raw),
        toc_title=str(raw.get("toc_title", "Table of Contents")),
        strict=bool(raw.get("strict", False)),
        api_in_tree=bool(raw.get("api_in_tree", False)),
    )
    if strict is not None:
        config.strict = strict
    return config


def _read_yaml(path: Path) -> dict[str, typ.Any]:
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = f"Top-level YAML structure in '{path}' must be a mapping."
        raise DocgenConfigError(msg)
    return dict(loaded)


def _string_list(
    raw: typ.Mapping[str, typ.Any], key: str, default: typ.Sequence[str]
) -> list[str]:
    """Return ``raw[key]`` as a list of strings, accepting a single string."""
    value = raw.get(key)
    match value:
        case None:
            return list(default)
        case str():
            return [value]
        case list() if all(isinstance(item, str) for item in value):
            return list(value)
        case _:
            msg = f"'{key}' must be a string or a list of strings."
            raise DocgenConfigError(msg)


def _optional_path(root: Path, value: object) -> Path | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        msg = f"Expected a non-empty path string, got {value!r}."
        raise DocgenConfigError(msg)
    candidate = Path(value)
    return candidate if candidate.is_absolute() else root / candidate


def _intro_page(raw: typ.Mapping[str, typ.Any]) -> str | None:
    if "intro_page" not in raw:
        return "README.md"
    value = raw["intro_page"]
    if value is None or value is False:
        return None
    return str(value)


__all__ = ["DEFAULT_CONFIG_NAME", "load_docgen_config"]
