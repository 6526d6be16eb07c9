# topmark:header:start
#
#   project      : CgpLens
#   file         : constants.py
#   file_relpath : src/cgplens/constants.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CgpLens Constants."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import Final

try:
    CGPLENS_VERSION: str = get_version("cgplens")
except PackageNotFoundError:  # pragma: no cover - running from a source checkout
    CGPLENS_VERSION = "0.0.0"

# Config file names looked up from the working directory upwards.
CGPLENS_TOML_NAME: Final[str] = "cgplens.toml"
PYPROJECT_TOML_NAME: Final[str] = "pyproject.toml"

# Literal substrings that mark a compiler diagnostic as CGP-related.
CGP_MARKERS: Final[tuple[str, ...]] = (
    "CanUseComponent",
    "IsProviderFor",
    "HasField",
    "cgp_impl",
    "cgp_component",
    "cgp_auto_getter",
    "delegate_components",
    "check_components",
)

# Module prefixes of the CGP crate removed from rendered type names.
DEFAULT_STRIP_PREFIXES: Final[tuple[str, ...]] = ("cgp::prelude::", "cgp::")

# Notes longer than this are truncated at the first elided generic list.
DEFAULT_MAX_NOTE_LENGTH: Final[int] = 150

# Shown in place of characters the compiler elided from a field name.
REDACTED_CHAR: Final[str] = "�"

# Tree glyphs.
TREE_BRANCH: Final[str] = "├─ "
TREE_LAST: Final[str] = "└─ "
TREE_PIPE: Final[str] = "│  "
TREE_SPACE: Final[str] = "   "
UNSATISFIED_MARK: Final[str] = " ✗"
REFERENCE_MARK: Final[str] = " (*)"
NOTE_ARROW: Final[str] = "→"
