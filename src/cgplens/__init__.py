# topmark:header:start
#
#   project      : CgpLens
#   file         : __init__.py
#   file_relpath : src/cgplens/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CgpLens package.

CgpLens re-describes `cargo check` diagnostics produced while compiling code that uses
the Context-Generic Programming (CGP) framework. It recognizes errors that are artifacts
of CGP's generated code, merges records that describe the same root cause, and renders a
single explanation naming the missing field and the chain of components that needs it.
"""

from __future__ import annotations
