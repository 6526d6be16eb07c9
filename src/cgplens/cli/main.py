# topmark:header:start
#
#   project      : CgpLens
#   file         : main.py
#   file_relpath : src/cgplens/cli/main.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CgpLens command line entry points.

Key ideas:
- Group-level options (verbosity, color) are initialized once and placed into ``ctx.obj``.
- Subcommands resolve the effective `Config` from files and their own options.
- `cargo_cli` lets cargo run CgpLens as ``cargo cgplens check``: cargo invokes the
  ``cargo-cgplens`` executable with the subcommand name as first argument.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

from cgplens.cli.commands.check import check_command
from cgplens.cli.commands.explain import explain_command
from cgplens.cli.commands.version import version_command
from cgplens.cli.console import ClickConsole
from cgplens.cli.options import (
    common_color_options,
    common_verbose_options,
    log_level_for_verbosity,
    resolve_verbosity,
)
from cgplens.config.keys import ArgKey
from cgplens.config.logging import get_logger, resolve_env_log_level, setup_logging
from cgplens.core.formats import ColorMode, resolve_color_mode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cgplens.config.logging import CgpLensLogger
    from cgplens.core.console_api import ConsoleLike

logger: CgpLensLogger = get_logger(__name__)

CARGO_SUBCOMMAND: str = "cgplens"


def init_common_state(
    ctx: click.Context,
    *,
    verbose: int,
    quiet: int,
    color_mode: ColorMode | None,
    no_color: bool,
) -> None:
    """Initialize shared state (verbosity, logging and color) on the Click context.

    Args:
        ctx (click.Context): Current Click context; will have ``obj`` and ``color`` set.
        verbose (int): Count of ``-v`` flags.
        quiet (int): Count of ``-q`` flags.
        color_mode (ColorMode | None): Explicit color mode from ``--color`` (or ``None``).
        no_color (bool): Whether ``--no-color`` was passed; forces color off.
    """
    ctx.ensure_object(dict)

    verbosity: int = resolve_verbosity(verbose, quiet)
    ctx.obj["verbosity_level"] = verbosity

    # CGPLENS_LOG_LEVEL wins over -v so internal tracing can be enabled independently.
    log_level: int | None = resolve_env_log_level() or log_level_for_verbosity(verbosity)
    ctx.obj["log_level"] = log_level
    setup_logging(level=log_level)

    effective: ColorMode | None = ColorMode.NEVER if no_color else color_mode
    ctx.obj["color_mode"] = effective
    enable_color: bool = resolve_color_mode(color_mode_override=effective, output_format=None)
    ctx.color = enable_color
    ctx.obj[ArgKey.CONSOLE] = ClickConsole(enable_color=enable_color)


@click.group(
    cls=click.Group,
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
    help="Explain cargo check errors in Context-Generic Programming (CGP) code.",
)
@common_verbose_options
@common_color_options
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: int,
    quiet: int,
    color_mode: ColorMode | None,
    no_color: bool,
) -> None:
    """Entry point for the CgpLens CLI."""
    init_common_state(
        ctx,
        verbose=verbose,
        quiet=quiet,
        color_mode=color_mode,
        no_color=no_color,
    )
    console: ConsoleLike = ctx.obj[ArgKey.CONSOLE]

    if ctx.invoked_subcommand is None:
        console.print("Hint: use 'cgplens check' to explain the errors of `cargo check`.")
        console.print()
        console.print(ctx.get_help())


cli.add_command(check_command)

cli.add_command(explain_command)

cli.add_command(version_command)


def cargo_cli(argv: Sequence[str] | None = None) -> None:
    """Entry point of the ``cargo-cgplens`` executable.

    Cargo runs ``cargo-cgplens cgplens <args>``; the repeated subcommand name is
    dropped before handing over to `cli`.
    """
    args: list[str] = list(sys.argv[1:] if argv is None else argv)
    if args and args[0] == CARGO_SUBCOMMAND:
        args = args[1:]
    cli.main(args=args, prog_name="cargo cgplens")


if __name__ == "__main__":
    cli()
