# topmark:header:start
#
#   project      : CgpLens
#   file         : cli_types.py
#   file_relpath : src/cgplens/cli/cli_types.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Shared CLI parameter types for CgpLens.

Defines the `ArgsNamespace` TypedDict handed from commands to
`MutableConfig.apply_cli_args`, and `EnumChoiceParam`, a case-insensitive
Click parameter type for string-valued enums (`OutputFormat`, `ColorMode`).
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Generic, NoReturn, Protocol, TypedDict, TypeVar, cast

import click

if TYPE_CHECKING:
    from collections.abc import Iterable

    from click.shell_completion import CompletionItem as ClickCompletionItem

    from cgplens.core.formats import ColorMode, OutputFormat

    class ParamTypeBase(Protocol):
        """Typed base to avoid subclassing Any when Click lacks stubs."""

        name: str

else:
    # At runtime, subclass the real Click type
    ParamTypeBase = click.ParamType  # type: ignore[assignment]

E = TypeVar("E", bound=Enum)


class ArgsNamespace(TypedDict, total=False):
    """Parsed CLI arguments that override configuration.

    Attributes:
        cargo (str | None): Toolchain executable.
        check_args (list[str] | None): Extra arguments for ``cargo check``.
        color (ColorMode | None): Color mode from ``--color``/``--no-color``.
        format (OutputFormat | None): Output format from ``--format``.
        verbosity (int | None): Program-output verbosity.
    """

    cargo: str | None
    check_args: list[str] | None
    color: ColorMode | None
    format: OutputFormat | None
    verbosity: int | None


class EnumChoiceParam(ParamTypeBase, Generic[E]):
    """A Click parameter type that converts a string to a member of a given Enum."""

    enum_cls: type[E]
    name: str
    choices: list[str]

    def __init__(self, enum_cls: type[E]) -> None:
        self.enum_cls = enum_cls
        self.name = self.enum_cls.__name__.lower()
        self.choices = [cast("str", e.value) for e in self.enum_cls]

    def _fail_noreturn(
        self,
        message: str,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> NoReturn:
        raise click.BadParameter(message, param=param, ctx=ctx)

    def convert(
        self,
        value: str | E | None,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> E | None:
        """Convert a string (case-insensitive) to a member of the Enum."""
        if value is None or isinstance(value, self.enum_cls):
            return value
        lookup: dict[str, E] = {
            cast("str", member.value).lower(): member
            for member in cast("Iterable[E]", self.enum_cls)
        }
        key: str = str(value).lower()
        if key in lookup:
            return lookup[key]
        self._fail_noreturn(
            f"Invalid value '{value}'. Must be one of: {', '.join(self.choices)}",
            param,
            ctx,
        )

    def shell_complete(
        self,
        ctx: click.Context,  # pylint: disable=unused-argument
        param: click.Parameter,  # pylint: disable=unused-argument
        incomplete: str,
    ) -> list[ClickCompletionItem]:
        """Tab completion for Click.

        Bash: `eval "$(_CGPLENS_COMPLETE=bash_source cgplens)"`
        """
        from click.shell_completion import CompletionItem as RuntimeCompletionItem

        prefix: str = (incomplete or "").lower()
        return [RuntimeCompletionItem(c) for c in self.choices if c.lower().startswith(prefix)]

    def __repr__(self) -> str:
        """Return a string representation."""
        return f"EnumParam({self.enum_cls.__name__})"
