# topmark:header:start
#
#   project      : CgpLens
#   file         : explain.py
#   file_relpath : src/cgplens/cli/commands/explain.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CgpLens `explain` command.

Explains a saved ``cargo check --message-format=json`` stream instead of running
cargo. Useful in CI logs and for reproducing a report.

Examples:
  Explain a saved stream:

    $ cargo check --message-format=json > messages.json
    $ cgplens explain messages.json

  Read from STDIN:

    $ cargo check --message-format=json | cgplens explain -
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from cgplens.cli.cmd_common import prepare_console, report_config_issues, resolve_config
from cgplens.cli.errors import CgpLensFileNotFoundError, CgpLensIOError
from cgplens.cli.options import common_config_options, common_format_options
from cgplens.config.logging import get_logger
from cgplens.core.exit_codes import ExitCode
from cgplens.pipeline.runner import explain_stream

if TYPE_CHECKING:
    from cgplens.cli.cli_types import ArgsNamespace
    from cgplens.config.logging import CgpLensLogger
    from cgplens.config.model import Config
    from cgplens.core.console_api import ConsoleLike
    from cgplens.core.formats import OutputFormat
    from cgplens.pipeline.runner import StreamSummary

logger: CgpLensLogger = get_logger(__name__)

STDIN_SENTINEL: str = "-"


@click.command(
    name="explain",
    help="Explain CGP errors in a saved `cargo check --message-format=json` stream.",
)
@click.argument("stream", metavar="FILE", default=STDIN_SENTINEL)
@click.option(
    "--source-root",
    "source_root",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Directory that file names in the stream are relative to (default: current directory).",
)
@common_format_options
@common_config_options
@click.pass_context
def explain_command(
    ctx: click.Context,
    *,
    stream: str,
    source_root: Path | None,
    output_format: OutputFormat | None,
    config_paths: tuple[str, ...],
    no_config: bool,
) -> None:
    """Explain a saved message stream read from FILE, or STDIN when FILE is ``-``.

    Exits with 1 when the stream reported errors, 0 otherwise.
    """
    args: ArgsNamespace = {"format": output_format}
    config: Config = resolve_config(ctx, args, config_paths=config_paths, no_config=no_config)
    console: ConsoleLike = prepare_console(ctx, config)
    report_config_issues(console, config)

    summary: StreamSummary
    if stream == STDIN_SENTINEL:
        summary = explain_stream(
            click.get_text_stream("stdin"), config, console, source_root=source_root
        )
    else:
        path = Path(stream)
        if not path.is_file():
            raise CgpLensFileNotFoundError(f"no such file: {stream}")
        try:
            with path.open(encoding="utf-8") as fh:
                summary = explain_stream(fh, config, console, source_root=source_root)
        except OSError as exc:
            raise CgpLensIOError(f"cannot read {stream}: {exc}") from exc

    logger.info(
        "%d explanation(s), %d suppressed, %d other error(s)",
        summary.cgp_diagnostics,
        summary.suppressed,
        summary.passthrough_errors,
    )
    ctx.exit(ExitCode.FAILURE if summary.has_errors else ExitCode.SUCCESS)
