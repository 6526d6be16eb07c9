# topmark:header:start
#
#   project      : CgpLens
#   file         : runner.py
#   file_relpath : src/cgplens/pipeline/runner.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Drive a CgpLens run from a cargo message stream to rendered output.

`run_check` spawns ``cargo check --message-format=json`` and processes its stdout;
`explain_stream` processes a previously saved stream. Both share `process_stream`:

1. absorb every message (`route_message`), in emission order;
2. once the stream is drained, deduplicate the database and rank the survivors;
3. build and emit one explanation per active entry.

Rendering must wait for step 2: a later diagnostic can make an earlier one
redundant.
"""

from __future__ import annotations

import json
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from cgplens.analysis.database import DiagnosticDatabase
from cgplens.analysis.root_cause import rank_by_causal_priority
from cgplens.cli.errors import CgpLensIOError, CgpLensStreamError, CgpLensToolchainError
from cgplens.config.logging import get_logger
from cgplens.core.formats import OutputFormat, is_machine_format
from cgplens.diagnostic.wire import (
    BuildFinished,
    CompilerMessage,
    MalformedMessageError,
    parse_stream,
)
from cgplens.pipeline.router import RenderMode, message_to_json, route_message
from cgplens.rendering.builder import build_cgp_diagnostic
from cgplens.rendering.emitters import (
    diagnostic_to_dict,
    render_diagnostic_graphical,
    render_diagnostic_plain,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from cgplens.config.logging import CgpLensLogger
    from cgplens.config.model import Config
    from cgplens.core.console_api import ConsoleLike
    from cgplens.diagnostic.wire import Message
    from cgplens.rendering.model import CgpDiagnostic

logger: CgpLensLogger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class StreamSummary:
    """What a processed stream contained.

    Attributes:
        cgp_diagnostics (int): Explanations emitted for CGP diagnostics.
        suppressed (int): CGP entries hidden as redundant.
        passthrough_errors (int): Non-CGP error diagnostics passed through.
        build_success (bool | None): Outcome of the ``build-finished`` record, if any.
    """

    cgp_diagnostics: int
    suppressed: int
    passthrough_errors: int
    build_success: bool | None

    @property
    def has_errors(self) -> bool:
        """Whether the stream reported any error."""
        return bool(self.cgp_diagnostics or self.passthrough_errors or self.build_success is False)


def finalize(
    db: DiagnosticDatabase,
    config: Config,
    *,
    source_root: Path | None = None,
) -> list[CgpDiagnostic]:
    """Deduplicate ``db``, rank its active entries and build their explanations."""
    db.deduplicate()
    for entry in db.all_entries():
        if entry.suppressed:
            logger.debug(
                "Suppressed %s at %s: %s",
                entry.message,
                ", ".join(str(loc) for loc in entry.locations),
                entry.suppressed_reason,
            )
    ranked = rank_by_causal_priority(db.active_entries())
    return [build_cgp_diagnostic(entry, config, source_root=source_root) for entry in ranked]


def emit_diagnostics(
    diagnostics: Sequence[CgpDiagnostic],
    config: Config,
    console: ConsoleLike,
) -> None:
    """Write explanations in the configured format.

    ``default`` uses the decorated style when the console emits color and the plain
    style otherwise.
    """
    for diagnostic in diagnostics:
        if is_machine_format(config.output_format):
            console.print(json.dumps(diagnostic_to_dict(diagnostic), ensure_ascii=False))
            continue
        if config.output_format == OutputFormat.DEFAULT and console.enable_color:
            console.print(render_diagnostic_graphical(diagnostic))
        else:
            console.print(render_diagnostic_plain(diagnostic))
        console.print()


def process_stream(
    lines: Iterable[str],
    config: Config,
    console: ConsoleLike,
    *,
    source_root: Path | None = None,
) -> StreamSummary:
    """Absorb a cargo message stream, then render its CGP diagnostics.

    Raises:
        CgpLensStreamError: If a compiler message in the stream is malformed.
    """
    mode: RenderMode = (
        RenderMode.JSON if is_machine_format(config.output_format) else RenderMode.HUMAN
    )
    db = DiagnosticDatabase()
    passthrough_errors: int = 0
    build_success: bool | None = None
    try:
        for message in parse_stream(lines):
            if isinstance(message, BuildFinished):
                build_success = message.success
            absorbed_before: int = db.absorbed
            passed: Message | None = route_message(message, db, mode, console)
            if passed is not None:
                console.print(message_to_json(passed))
            if (
                isinstance(message, CompilerMessage)
                and message.message.level.is_error
                and db.absorbed == absorbed_before
            ):
                passthrough_errors += 1
    except MalformedMessageError as exc:
        raise CgpLensStreamError(f"malformed compiler message: {exc}") from exc

    logger.info("Absorbed %d CGP diagnostic group(s)", len(db))
    diagnostics: list[CgpDiagnostic] = finalize(db, config, source_root=source_root)
    emit_diagnostics(diagnostics, config, console)
    suppressed: int = sum(1 for entry in db.all_entries() if entry.suppressed)
    return StreamSummary(
        cgp_diagnostics=len(diagnostics),
        suppressed=suppressed,
        passthrough_errors=passthrough_errors,
        build_success=build_success,
    )


def explain_stream(
    lines: Iterable[str],
    config: Config,
    console: ConsoleLike,
    *,
    source_root: Path | None = None,
) -> StreamSummary:
    """Process a saved cargo message stream.

    Raises:
        CgpLensIOError: If reading the stream fails.
        CgpLensStreamError: If a compiler message in the stream is malformed.
    """
    try:
        return process_stream(lines, config, console, source_root=source_root)
    except (OSError, UnicodeDecodeError) as exc:
        raise CgpLensIOError(f"cannot read diagnostic stream: {exc}") from exc


def cargo_command(args: Sequence[str], config: Config) -> list[str]:
    """The ``cargo check`` command line for ``args``."""
    return [config.cargo, "check", "--message-format=json", *config.check_args, *args]


def run_check(
    args: Sequence[str],
    config: Config,
    console: ConsoleLike,
    *,
    cwd: Path | None = None,
) -> int:
    """Run ``cargo check`` and explain its CGP diagnostics.

    Cargo's stderr is captured separately and shown only when cargo fails without
    completing a build, e.g. when no manifest is found.

    Args:
        args (Sequence[str]): Extra arguments for ``cargo check``.
        config (Config): Effective configuration.
        console (ConsoleLike): Program output.
        cwd (Path | None): Directory to run cargo in; the current directory when None.

    Returns:
        int: Cargo's exit status.

    Raises:
        CgpLensToolchainError: If cargo cannot be spawned.
        CgpLensStreamError: If cargo emits a malformed compiler message.
    """
    command: list[str] = cargo_command(args, config)
    logger.info("Running: %s", " ".join(command))
    with tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace") as stderr:
        try:
            proc = subprocess.Popen(
                command,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=stderr,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise CgpLensToolchainError(f"failed to spawn `{config.cargo}`: {exc}") from exc

        assert proc.stdout is not None  # stdout=PIPE
        with proc:
            summary: StreamSummary = process_stream(
                proc.stdout, config, console, source_root=cwd or Path.cwd()
            )
        returncode: int = proc.returncode
        logger.debug("cargo exited with status %d", returncode)

        if returncode != 0 and summary.build_success is None:
            stderr.seek(0)
            captured: str = stderr.read().rstrip()
            if captured:
                console.error(captured)
    return returncode
