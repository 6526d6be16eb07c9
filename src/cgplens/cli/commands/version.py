# topmark:header:start
#
#   project      : CgpLens
#   file         : version.py
#   file_relpath : src/cgplens/cli/commands/version.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CgpLens `version` command.

Prints the current CgpLens version as installed in the active Python environment.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import click

from cgplens.cli.cmd_common import get_effective_verbosity
from cgplens.cli.options import common_format_options
from cgplens.config.keys import ArgKey
from cgplens.constants import CGPLENS_VERSION
from cgplens.core.formats import OutputFormat

if TYPE_CHECKING:
    from cgplens.core.console_api import ConsoleLike


@click.command(
    name="version",
    help="Show the current version of CgpLens.",
)
@common_format_options
def version_command(*, output_format: OutputFormat | None = None) -> None:
    """Show the current version of CgpLens.

    Args:
        output_format (OutputFormat | None): Optional output format.
    """
    ctx = click.get_current_context()
    ctx.ensure_object(dict)
    console: ConsoleLike = ctx.obj[ArgKey.CONSOLE]
    vlevel: int = get_effective_verbosity(ctx)

    fmt: OutputFormat = output_format or OutputFormat.DEFAULT
    if fmt == OutputFormat.JSON:
        console.print(json.dumps({"version": CGPLENS_VERSION}))
    elif vlevel > 0:
        console.print(console.styled("CgpLens version:\n", bold=True, underline=True))
        console.print(f"    {console.styled(CGPLENS_VERSION, bold=True)}")
    else:
        console.print(console.styled(CGPLENS_VERSION, bold=True))
