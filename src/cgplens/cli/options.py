# topmark:header:start
#
#   project      : CgpLens
#   file         : options.py
#   file_relpath : src/cgplens/cli/options.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Reusable Click options and their resolution helpers.

Group-level options (verbosity, color) are resolved once in `cgplens.cli.main`;
command-level options (format, config files) are shared by ``check`` and
``explain``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ParamSpec, TypeVar

import click

from cgplens.cli.cli_types import EnumChoiceParam
from cgplens.cli.errors import CgpLensUsageError
from cgplens.config.logging import TRACE_LEVEL, get_logger
from cgplens.core.formats import ColorMode, OutputFormat

if TYPE_CHECKING:
    from collections.abc import Callable

    from cgplens.config.logging import CgpLensLogger

P = ParamSpec("P")
R = TypeVar("R")

logger: CgpLensLogger = get_logger(__name__)


def resolve_verbosity(verbose_count: int, quiet_count: int) -> int:
    """Return the program-output verbosity for ``-v``/``-q`` counts.

    Positive values ask for more detail, negative values for less.

    Raises:
        CgpLensUsageError: If both verbose and quiet flags are used.
    """
    if verbose_count > 0 and quiet_count > 0:
        raise CgpLensUsageError("The '--verbose' and '--quiet' options are mutually exclusive.")
    return verbose_count - quiet_count


def log_level_for_verbosity(verbosity: int) -> int | None:
    """Logging level implied by a verbosity; None leaves the default (CRITICAL).

    ``-v`` shows INFO, ``-vv`` DEBUG (including suppressed entries) and ``-vvv`` TRACE.
    """
    if verbosity >= 3:
        return TRACE_LEVEL
    if verbosity == 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return None


def common_verbose_options(f: Callable[P, R]) -> Callable[P, R]:
    """Add counting -v/--verbose and -q/--quiet options."""
    f = click.option(
        "-v",
        "--verbose",
        count=True,
        help="Increase verbosity. Repeat for more detail (-vv shows suppressed diagnostics).",
    )(f)
    f = click.option(
        "-q",
        "--quiet",
        count=True,
        help="Suppress informational output.",
    )(f)
    return f


def common_color_options(f: Callable[P, R]) -> Callable[P, R]:
    """Add --color and --no-color options."""
    f = click.option(
        "--color",
        "color_mode",
        type=EnumChoiceParam(ColorMode),
        default=None,
        help="Color output: auto (default), always, or never.",
    )(f)
    f = click.option(
        "--no-color",
        "no_color",
        is_flag=True,
        help="Disable color output (equivalent to --color=never).",
    )(f)
    return f


def common_format_options(f: Callable[P, R]) -> Callable[P, R]:
    """Add the --format option."""
    return click.option(
        "--format",
        "output_format",
        type=EnumChoiceParam(OutputFormat),
        default=None,
        help=f"Output format ({', '.join(v.value for v in OutputFormat)}).",
    )(f)


def common_config_options(f: Callable[P, R]) -> Callable[P, R]:
    """Add --config and --no-config options."""
    f = click.option(
        "--no-config",
        "no_config",
        is_flag=True,
        help="Ignore project config files (only use defaults).",
    )(f)
    f = click.option(
        "--config",
        "config_paths",
        multiple=True,
        metavar="FILE",
        type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True),
        help="Additional config file(s) to load and merge.",
    )(f)
    return f
