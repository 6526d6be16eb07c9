# topmark:header:start
#
#   project      : CgpLens
#   file         : __init__.py
#   file_relpath : src/cgplens/config/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Configuration layer for CgpLens.

Settings are layered: built-in defaults, then discovered `pyproject.toml` /
`cgplens.toml` files (root-most first, nearest last), then CLI overrides. The
result is frozen into an immutable `Config` before any diagnostic is processed.
"""

from __future__ import annotations

from cgplens.config.model import Config, MutableConfig

__all__ = [
    "Config",
    "MutableConfig",
]
