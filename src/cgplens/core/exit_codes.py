# topmark:header:start
#
#   project      : CgpLens
#   file         : exit_codes.py
#   file_relpath : src/cgplens/core/exit_codes.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Exit codes for CgpLens CLI.

CgpLens aligns with the BSD `sysexits` convention where practical, so that other tooling
can interpret failures consistently. When CgpLens wraps `cargo check`, a failing build
is reported with cargo's own exit status instead (usually 101).
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Standardized exit codes for CgpLens CLI.

    Attributes:
        SUCCESS: Successful execution with no errors.
        FAILURE: Generic failure; also used by ``explain`` when the stream
            contained error diagnostics.
        USAGE_ERROR: Command-line invocation error (invalid flags/args). Mirrors
            BSD ``EX_USAGE (64)``.
        STREAM_ERROR: Malformed compiler message in the diagnostic stream.
            Mirrors BSD ``EX_DATAERR (65)``.
        FILE_NOT_FOUND: Input path does not exist. Mirrors BSD ``EX_NOINPUT (66)``.
        TOOLCHAIN_UNAVAILABLE: The toolchain executable could not be spawned.
            Mirrors BSD ``EX_UNAVAILABLE (69)``.
        IO_ERROR: I/O error reading the stream. Mirrors BSD ``EX_IOERR (74)``.
        CONFIG_ERROR: Configuration error (malformed config). Mirrors BSD
            ``EX_CONFIG (78)``.
        UNEXPECTED_ERROR: Unhandled/unknown error (last-resort).
    """

    SUCCESS = 0
    FAILURE = 1

    USAGE_ERROR = 64  # EX_USAGE
    STREAM_ERROR = 65  # EX_DATAERR
    FILE_NOT_FOUND = 66  # EX_NOINPUT
    TOOLCHAIN_UNAVAILABLE = 69  # EX_UNAVAILABLE
    IO_ERROR = 74  # EX_IOERR
    CONFIG_ERROR = 78  # EX_CONFIG

    UNEXPECTED_ERROR = 255
