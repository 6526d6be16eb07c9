# topmark:header:start
#
#   project      : CgpLens
#   file         : __init__.py
#   file_relpath : src/cgplens/pipeline/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Two-phase processing of cargo's message stream.

Absorb: every message is routed (`cgplens.pipeline.router`); CGP diagnostics are
collected in a `DiagnosticDatabase`, everything else is passed through.

Finalize: once the stream is drained, the database is deduplicated, ranked and
rendered (`cgplens.pipeline.runner`).
"""
