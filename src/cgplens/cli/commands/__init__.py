# topmark:header:start
#
#   project      : CgpLens
#   file         : __init__.py
#   file_relpath : src/cgplens/cli/commands/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CgpLens subcommands."""
