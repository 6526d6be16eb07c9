# topmark:header:start
#
#   project      : CgpLens
#   file         : __init__.py
#   file_relpath : src/cgplens/analysis/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CGP diagnostic analysis: pattern extraction, correlation and dependency trees.

Nothing in this package raises on unexpected compiler text. Extractors return
``None`` when a shape is not found and callers fall back to a more generic
rendering.
"""

from __future__ import annotations
