# topmark:header:start
#
#   project      : CgpLens
#   file         : check.py
#   file_relpath : src/cgplens/cli/commands/check.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CgpLens `check` command.

Runs ``cargo check --message-format=json`` in the current directory, prints
non-CGP compiler output as cargo would, and explains the CGP errors once the
build has finished.

Examples:
  Check the current crate:

    $ cgplens check

  Pass arguments through to cargo (after ``--`` when they look like options):

    $ cgplens check -- --all-targets -p my-crate
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cgplens.cli.cmd_common import prepare_console, report_config_issues, resolve_config
from cgplens.cli.options import common_config_options, common_format_options
from cgplens.config.logging import get_logger
from cgplens.pipeline.runner import run_check

if TYPE_CHECKING:
    from cgplens.cli.cli_types import ArgsNamespace
    from cgplens.config.logging import CgpLensLogger
    from cgplens.config.model import Config
    from cgplens.core.console_api import ConsoleLike
    from cgplens.core.formats import OutputFormat

logger: CgpLensLogger = get_logger(__name__)


@click.command(
    name="check",
    help="Run `cargo check` and explain CGP errors.",
    context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
)
@click.option(
    "--cargo",
    "cargo",
    metavar="PROGRAM",
    default=None,
    help="Cargo executable to run (default: cargo).",
)
@common_format_options
@common_config_options
@click.argument("cargo_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def check_command(
    ctx: click.Context,
    *,
    cargo: str | None,
    output_format: OutputFormat | None,
    config_paths: tuple[str, ...],
    no_config: bool,
    cargo_args: tuple[str, ...],
) -> None:
    """Run ``cargo check`` and explain its CGP diagnostics.

    Exits with cargo's own exit status.
    """
    args: ArgsNamespace = {"cargo": cargo, "format": output_format}
    config: Config = resolve_config(ctx, args, config_paths=config_paths, no_config=no_config)
    console: ConsoleLike = prepare_console(ctx, config)
    report_config_issues(console, config)

    status: int = run_check(list(cargo_args), config, console)
    ctx.exit(status)
