# topmark:header:start
#
#   project      : CgpLens
#   file         : issues.py
#   file_relpath : src/cgplens/config/issues.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Issues collected while loading and merging configuration.

These are CgpLens's own configuration warnings, not compiler diagnostics. They are
recorded instead of raised so that a typo in `cgplens.toml` never prevents the
compiler output from being shown.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, cast

from yachalk import chalk

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


class IssueLevel(Enum):
    """Severity levels for configuration issues."""

    INFO = "info"
    WARNING = "warning"

    @property
    def color(self) -> Callable[[str], str]:
        """Return the `yachalk` color function associated with this severity level."""
        return cast(
            "Callable[[str], str]",
            {
                IssueLevel.INFO: chalk.blue,
                IssueLevel.WARNING: chalk.yellow,
            }[self],
        )


@dataclass(frozen=True)
class ConfigIssue:
    """A single configuration issue with a severity level and message."""

    level: IssueLevel
    message: str


@dataclass
class ConfigIssueLog:
    """Append-only collection of configuration issues."""

    items: list[ConfigIssue] = field(default_factory=lambda: [])

    def add_info(self, message: str) -> None:
        """Record an informational issue."""
        self.items.append(ConfigIssue(IssueLevel.INFO, message))

    def add_warning(self, message: str) -> None:
        """Record a warning."""
        self.items.append(ConfigIssue(IssueLevel.WARNING, message))

    def extend(self, other: ConfigIssueLog) -> None:
        """Append all issues from ``other``."""
        self.items.extend(other.items)

    def __iter__(self) -> Iterator[ConfigIssue]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)
