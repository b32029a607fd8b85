"""Common literal values used across chapterbook.

These constants keep directive defaults, override filenames, and reserved
``_meta.json`` keys centralized so the scanner, tree builder, and tests import
the same values without drifting. Intended for internal use within the
chapterbook package.

Examples
--------
>>> from chapterbook import _constants
>>> _constants.DEFAULT_PRIORITY
100
>>> "---intro".startswith(_constants.SEPARATOR_PREFIX)
True
"""

DEFAULT_PRIORITY = 100
DEFAULT_SECTION_TITLE = "Overview"
META_FILENAME = "_meta.json"
SEPARATOR_PREFIX = "---"
REST_KEYS = frozenset({"...", "...rest"})
API_SEGMENT = "api"
API_SKIP_NAMES = frozenset({"README.md", "SUMMARY.md", "index.md"})
