# topmark:header:start
#
#   project      : CgpLens
#   file         : __init__.py
#   file_relpath : src/cgplens/rendering/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Turn correlated CGP diagnostic entries into explanations.

`cgplens.rendering.builder` assembles a `CgpDiagnostic` from a finalized database
entry; `cgplens.rendering.emitters` serializes it as decorated text, plain text
or JSON.
"""

from __future__ import annotations
