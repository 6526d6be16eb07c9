# topmark:header:start
#
#   project      : CgpLens
#   file         : __main__.py
#   file_relpath : src/cgplens/__main__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Module entry point for running CgpLens via ``python -m cgplens``.

It delegates directly to `cgplens.cli.main.cli`, ensuring a single,
authoritative CLI entry point regardless of how CgpLens is launched.

Examples:
    Explain a saved cargo message stream::

        cargo check --message-format=json > messages.json
        python -m cgplens explain messages.json
"""

from __future__ import annotations

from cgplens.cli.main import cli

if __name__ == "__main__":
    # We call the Click group directly
    cli()
