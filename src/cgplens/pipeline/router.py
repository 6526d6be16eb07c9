# topmark:header:start
#
#   project      : CgpLens
#   file         : router.py
#   file_relpath : src/cgplens/pipeline/router.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Route cargo messages during the absorb phase.

CGP diagnostics go into the database and produce no output yet. Everything else
is passed through:

* in human mode, non-CGP compiler messages are printed at once using the
  compiler's own rendering, artifacts become ``Compiling``/``Fresh`` progress
  lines on stderr, a failed build prints ``Build failed``, and remaining
  records (build scripts, text lines, unknown reasons) are dropped;
* in JSON mode, every non-CGP message is returned to the caller, which writes it
  back out unchanged.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING

from cgplens.config.logging import get_logger
from cgplens.diagnostic.wire import (
    BuildFinished,
    CompilerArtifact,
    CompilerMessage,
    TextLine,
)

if TYPE_CHECKING:
    from cgplens.analysis.database import DiagnosticDatabase
    from cgplens.config.logging import CgpLensLogger
    from cgplens.core.console_api import ConsoleLike
    from cgplens.diagnostic.wire import Message

logger: CgpLensLogger = get_logger(__name__)


class RenderMode(str, Enum):
    """How passed-through messages are handled.

    Attributes:
        HUMAN: Print non-CGP messages immediately, in human-readable form.
        JSON: Hand non-CGP messages back to the caller for re-serialization.
    """

    HUMAN = "human"
    JSON = "json"


def message_to_json(message: Message) -> str:
    """Serialize a passed-through message the way cargo wrote it."""
    if isinstance(message, TextLine):
        return message.text
    return json.dumps(message.payload, ensure_ascii=False)


def route_message(
    message: Message,
    db: DiagnosticDatabase,
    mode: RenderMode,
    console: ConsoleLike,
) -> Message | None:
    """Absorb or pass through one message.

    Args:
        message (Message): A decoded cargo message.
        db (DiagnosticDatabase): The run's database; receives CGP diagnostics.
        mode (RenderMode): Pass-through handling.
        console (ConsoleLike): Output for human mode.

    Returns:
        Message | None: The message itself in JSON mode when it is not absorbed,
        None otherwise.
    """
    if isinstance(message, CompilerMessage):
        if db.add(message.message):
            return None
        if mode == RenderMode.JSON:
            return message
        rendered: str | None = message.message.rendered
        if rendered:
            console.print(rendered.rstrip("\n"))
        else:
            logger.debug("Compiler message without rendering dropped: %s", message.message.message)
        return None

    if mode == RenderMode.JSON:
        return message

    if isinstance(message, CompilerArtifact):
        verb: str = "Fresh" if message.fresh else "Compiling"
        console.progress(f"    {verb:>12} {message.target_name}")
    elif isinstance(message, BuildFinished):
        if not message.success:
            console.progress("Build failed")
    else:
        logger.trace("Dropping %s in human mode", type(message).__name__)
    return None
