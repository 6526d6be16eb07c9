# topmark:header:start
#
#   project      : CgpLens
#   file         : model.py
#   file_relpath : src/cgplens/config/model.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Configuration model for CgpLens.

`MutableConfig` is the builder used while layering defaults, config files and CLI
overrides; `Config` is the immutable snapshot handed to the pipeline. The split
keeps merge policy in one place and guarantees that nothing downstream of
`MutableConfig.freeze` can alter settings mid-run.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cgplens.config.getters import (
    get_enum_value_checked,
    get_int_value_checked,
    get_string_list_value_checked,
    get_string_value_checked,
)
from cgplens.config.issues import ConfigIssue, ConfigIssueLog
from cgplens.config.keys import ArgKey, Toml
from cgplens.config.loaders import (
    discover_config_files,
    extract_cgplens_table,
    load_toml_dict,
)
from cgplens.config.logging import get_logger
from cgplens.constants import DEFAULT_MAX_NOTE_LENGTH, DEFAULT_STRIP_PREFIXES
from cgplens.core.formats import ColorMode, OutputFormat

if TYPE_CHECKING:
    from cgplens.config.loaders import TomlTable
    from cgplens.config.logging import CgpLensLogger

# Generic mapping accepted from the CLI or from tests.
ArgsLike = Mapping[str, Any]

logger: CgpLensLogger = get_logger(__name__)

# Marker recorded in `config_files` when CLI overrides were applied.
CLI_OVERRIDE_STR = "<CLI overrides>"


@dataclass(frozen=True, slots=True)
class Config:
    """Immutable runtime configuration for CgpLens.

    Attributes:
        cargo (str): Toolchain executable used by ``cgplens check``.
        check_args (tuple[str, ...]): Extra arguments always passed to ``cargo check``.
        strip_prefixes (tuple[str, ...]): Namespace prefixes removed from type names.
        max_note_length (int): Delegation notes longer than this are truncated.
        color (ColorMode): Color intent for decorated output.
        output_format (OutputFormat): Selected output format.
        verbosity_level (int): 0 = default, positive = more chatter, negative = quiet.
        config_files (tuple[Path | str, ...]): Paths or identifiers of the sources used.
        diagnostics (tuple[ConfigIssue, ...]): Issues recorded while loading config.
    """

    cargo: str
    check_args: tuple[str, ...]
    strip_prefixes: tuple[str, ...]
    max_note_length: int
    color: ColorMode
    output_format: OutputFormat
    verbosity_level: int
    config_files: tuple[Path | str, ...]
    diagnostics: tuple[ConfigIssue, ...]

    @classmethod
    def default(cls) -> Config:
        """Return the built-in defaults, frozen."""
        return MutableConfig.from_defaults().freeze()

    def thaw(self) -> MutableConfig:
        """Return a mutable copy of this config."""
        return MutableConfig(
            cargo=self.cargo,
            check_args=list(self.check_args),
            strip_prefixes=list(self.strip_prefixes),
            max_note_length=self.max_note_length,
            color=self.color,
            output_format=self.output_format,
            verbosity_level=self.verbosity_level,
            config_files=list(self.config_files),
            diagnostics=ConfigIssueLog(items=list(self.diagnostics)),
        )


@dataclass
class MutableConfig:
    """Mutable configuration builder.

    ``None`` on an optional field means "not set by this layer" so that
    `merge_with` can tell an explicit value from an inherited one. Defaults are
    filled in by `freeze`.
    """

    cargo: str | None = None
    check_args: list[str] | None = None
    strip_prefixes: list[str] | None = None
    max_note_length: int | None = None
    color: ColorMode | None = None
    output_format: OutputFormat | None = None
    verbosity_level: int | None = None
    config_files: list[Path | str] = field(default_factory=lambda: [])
    diagnostics: ConfigIssueLog = field(default_factory=ConfigIssueLog)

    @classmethod
    def from_defaults(cls) -> MutableConfig:
        """Return a draft holding the built-in defaults."""
        return cls(
            cargo="cargo",
            check_args=[],
            strip_prefixes=list(DEFAULT_STRIP_PREFIXES),
            max_note_length=DEFAULT_MAX_NOTE_LENGTH,
            color=ColorMode.AUTO,
            output_format=OutputFormat.DEFAULT,
            verbosity_level=0,
        )

    @classmethod
    def from_toml_dict(cls, table: TomlTable, *, where: str) -> MutableConfig:
        """Build a draft from an already-extracted CgpLens settings table.

        Unknown keys and ill-typed values are recorded as warnings and ignored.

        Args:
            table (TomlTable): The `[tool.cgplens]` table or the top-level `cgplens.toml` table.
            where (str): Source name used in warnings.

        Returns:
            MutableConfig: A draft containing only the keys present in ``table``.
        """
        diagnostics = ConfigIssueLog()
        known: set[str] = {
            Toml.KEY_ROOT,
            Toml.KEY_CARGO,
            Toml.KEY_CHECK_ARGS,
            Toml.KEY_STRIP_PREFIXES,
            Toml.KEY_MAX_NOTE_LENGTH,
            Toml.KEY_COLOR,
            Toml.KEY_FORMAT,
        }
        for key in table:
            if key not in known:
                msg: str = f"{where}: unknown key '{key}' ignored"
                logger.warning(msg)
                diagnostics.add_warning(msg)

        draft = cls(
            cargo=get_string_value_checked(
                table, Toml.KEY_CARGO, where=where, diagnostics=diagnostics
            ),
            check_args=get_string_list_value_checked(
                table, Toml.KEY_CHECK_ARGS, where=where, diagnostics=diagnostics
            ),
            strip_prefixes=get_string_list_value_checked(
                table, Toml.KEY_STRIP_PREFIXES, where=where, diagnostics=diagnostics
            ),
            max_note_length=get_int_value_checked(
                table,
                Toml.KEY_MAX_NOTE_LENGTH,
                where=where,
                diagnostics=diagnostics,
                minimum=20,
            ),
            color=get_enum_value_checked(
                table, Toml.KEY_COLOR, ColorMode, where=where, diagnostics=diagnostics
            ),
            output_format=get_enum_value_checked(
                table, Toml.KEY_FORMAT, OutputFormat, where=where, diagnostics=diagnostics
            ),
            diagnostics=diagnostics,
        )
        if draft.cargo is not None and not draft.cargo.strip():
            msg = f"{where}: '{Toml.KEY_CARGO}' must not be empty"
            logger.warning(msg)
            diagnostics.add_warning(msg)
            draft.cargo = None
        return draft

    @classmethod
    def from_toml_file(cls, path: Path) -> MutableConfig | None:
        """Load configuration from a single TOML file.

        Args:
            path (Path): Path to `cgplens.toml` or `pyproject.toml`.

        Returns:
            MutableConfig | None: The draft, or ``None`` when a `pyproject.toml` has no
            `[tool.cgplens]` table.

        Raises:
            ConfigLoadError: If the file cannot be read or parsed.
        """
        logger.debug("Creating MutableConfig from TOML config: %s", path)
        table: TomlTable | None = extract_cgplens_table(path, load_toml_dict(path))
        if table is None:
            logger.debug("No CgpLens settings in %s", path)
            return None
        draft: MutableConfig = cls.from_toml_dict(table, where=str(path))
        draft.config_files = [path]
        return draft

    @classmethod
    def load_merged(
        cls,
        *,
        start: Path | None = None,
        extra_files: list[Path] | None = None,
    ) -> MutableConfig:
        """Return defaults merged with discovered and explicitly given config files.

        Precedence, lowest first: defaults, discovered files (root-most first),
        ``extra_files`` in the given order.

        Args:
            start (Path | None): Discovery anchor; defaults to the current directory.
            extra_files (list[Path] | None): Explicit config files (``--config``).

        Returns:
            MutableConfig: The merged draft.
        """
        merged: MutableConfig = cls.from_defaults()
        anchor: Path = start if start is not None else Path.cwd()
        paths: list[Path] = discover_config_files(anchor) + list(extra_files or [])
        for path in paths:
            layer: MutableConfig | None = cls.from_toml_file(path)
            if layer is not None:
                merged = merged.merge_with(layer)
        return merged

    def merge_with(self, other: MutableConfig) -> MutableConfig:
        """Return a new draft where values set in ``other`` override this draft."""
        merged_diagnostics = ConfigIssueLog(items=list(self.diagnostics.items))
        merged_diagnostics.extend(other.diagnostics)
        return MutableConfig(
            cargo=other.cargo if other.cargo is not None else self.cargo,
            check_args=other.check_args if other.check_args is not None else self.check_args,
            strip_prefixes=other.strip_prefixes
            if other.strip_prefixes is not None
            else self.strip_prefixes,
            max_note_length=other.max_note_length
            if other.max_note_length is not None
            else self.max_note_length,
            color=other.color if other.color is not None else self.color,
            output_format=other.output_format
            if other.output_format is not None
            else self.output_format,
            verbosity_level=other.verbosity_level
            if other.verbosity_level is not None
            else self.verbosity_level,
            config_files=self.config_files + other.config_files,
            diagnostics=merged_diagnostics,
        )

    def apply_cli_args(self, args: ArgsLike) -> MutableConfig:
        """Apply CLI overrides in place and return ``self``.

        Only keys present in ``args`` with a non-``None`` value override the draft.
        Extra ``check_args`` from the command line are appended to configured ones.
        """
        logger.debug("Applying CLI arguments to MutableConfig: %s", args)
        self.config_files.append(CLI_OVERRIDE_STR)

        if args.get(ArgKey.CARGO) is not None:
            self.cargo = args[ArgKey.CARGO]
        if args.get(ArgKey.CHECK_ARGS):
            self.check_args = [*(self.check_args or []), *args[ArgKey.CHECK_ARGS]]
        if args.get(ArgKey.COLOR) is not None:
            self.color = args[ArgKey.COLOR]
        if args.get(ArgKey.FORMAT) is not None:
            self.output_format = args[ArgKey.FORMAT]
        if args.get(ArgKey.VERBOSITY) is not None:
            self.verbosity_level = args[ArgKey.VERBOSITY]
        return self

    def freeze(self) -> Config:
        """Return an immutable `Config`, filling unset fields from the defaults."""
        defaults: MutableConfig = MutableConfig.from_defaults()
        return Config(
            cargo=self.cargo or defaults.cargo or "cargo",
            check_args=tuple(self.check_args or ()),
            strip_prefixes=tuple(
                self.strip_prefixes
                if self.strip_prefixes is not None
                else (defaults.strip_prefixes or ())
            ),
            max_note_length=self.max_note_length
            if self.max_note_length is not None
            else DEFAULT_MAX_NOTE_LENGTH,
            color=self.color or ColorMode.AUTO,
            output_format=self.output_format or OutputFormat.DEFAULT,
            verbosity_level=self.verbosity_level or 0,
            config_files=tuple(self.config_files),
            diagnostics=tuple(self.diagnostics),
        )
