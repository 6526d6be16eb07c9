# topmark:header:start
#
#   project      : CgpLens
#   file         : cmd_common.py
#   file_relpath : src/cgplens/cli/cmd_common.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Helpers shared by the ``check`` and ``explain`` commands.

Configuration is resolved the same way for every command: defaults, then
discovered config files, then ``--config`` files, then CLI overrides. The console
created by the group is then adjusted to the effective color decision.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from cgplens.cli.errors import CgpLensConfigError
from cgplens.config.keys import ArgKey
from cgplens.config.loaders import ConfigLoadError
from cgplens.config.logging import get_logger
from cgplens.config.model import MutableConfig
from cgplens.core.formats import resolve_color_mode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cgplens.cli.cli_types import ArgsNamespace
    from cgplens.config.issues import ConfigIssue
    from cgplens.config.logging import CgpLensLogger
    from cgplens.config.model import Config
    from cgplens.core.console_api import ConsoleLike

logger: CgpLensLogger = get_logger(__name__)


def get_effective_verbosity(ctx: click.Context, config: Config | None = None) -> int:
    """Return the effective program-output verbosity for this command.

    Resolution order:
        1. ``config.verbosity_level`` when a config is given
        2. ``ctx.obj["verbosity_level"]`` if present
        3. 0 (terse)
    """
    if config is not None:
        return config.verbosity_level
    return int(ctx.obj.get("verbosity_level", 0))


def resolve_config(
    ctx: click.Context,
    args: ArgsNamespace,
    *,
    config_paths: Sequence[str] = (),
    no_config: bool = False,
) -> Config:
    """Build the effective configuration for a command.

    Raises:
        CgpLensConfigError: If a config file cannot be read or parsed.
    """
    try:
        draft: MutableConfig = (
            MutableConfig.from_defaults()
            if no_config
            else MutableConfig.load_merged(extra_files=[Path(p) for p in config_paths])
        )
        if no_config:
            for path in config_paths:
                layer: MutableConfig | None = MutableConfig.from_toml_file(Path(path))
                if layer is not None:
                    draft = draft.merge_with(layer)
    except ConfigLoadError as exc:
        raise CgpLensConfigError(f"cannot load configuration: {exc}") from exc

    overrides: dict[str, object] = dict(args)
    overrides.setdefault(ArgKey.COLOR, ctx.obj.get("color_mode"))
    overrides.setdefault(ArgKey.VERBOSITY, ctx.obj.get("verbosity_level"))
    config: Config = draft.apply_cli_args(overrides).freeze()
    logger.debug("Effective config files: %s", [str(p) for p in config.config_files])
    return config


def prepare_console(ctx: click.Context, config: Config) -> ConsoleLike:
    """Apply the effective color decision to the group's console and return it."""
    console: ConsoleLike = ctx.obj[ArgKey.CONSOLE]
    enable_color: bool = resolve_color_mode(
        color_mode_override=config.color,
        output_format=config.output_format,
    )
    console.enable_color = enable_color
    ctx.color = enable_color
    return console


def report_config_issues(console: ConsoleLike, config: Config) -> None:
    """Print configuration warnings: a one-line triage, or every issue with ``-v``."""
    issues: tuple[ConfigIssue, ...] = config.diagnostics
    if not issues:
        return
    if config.verbosity_level > 0:
        for issue in issues:
            console.warn(f"config {issue.level.color(issue.level.value)}: {issue.message}")
        return
    count: int = len(issues)
    console.warn(f"config: {count} issue{'s' if count != 1 else ''} (use -v for details)")
