# topmark:header:start
#
#   project      : CgpLens
#   file         : getters.py
#   file_relpath : src/cgplens/config/getters.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Checked value getters for TOML config tables.

Each getter validates the expected shape of a value. On a mismatch it records a
warning in a `ConfigIssueLog`, logs the same warning and returns ``None`` so that
the caller keeps its default. Missing keys are not an issue and also yield ``None``.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from cgplens.config.logging import get_logger

if TYPE_CHECKING:
    from cgplens.config.issues import ConfigIssueLog
    from cgplens.config.logging import CgpLensLogger
    from cgplens.config.loaders import TomlTable

logger: CgpLensLogger = get_logger(__name__)

E = TypeVar("E", bound=Enum)


def _warn(diagnostics: ConfigIssueLog, message: str) -> None:
    logger.warning(message)
    diagnostics.add_warning(message)


def get_string_value_checked(
    table: TomlTable,
    key: str,
    *,
    where: str,
    diagnostics: ConfigIssueLog,
) -> str | None:
    """Return a string value, warning when the key holds another type.

    Args:
        table (TomlTable): Table to query.
        key (str): Key to extract.
        where (str): Human-readable location used in warnings (e.g. a file path).
        diagnostics (ConfigIssueLog): Log receiving warnings.

    Returns:
        str | None: The string value, or ``None`` when absent or invalid.
    """
    value: Any | None = table.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        return value
    _warn(diagnostics, f"{where}: expected a string for '{key}', got {type(value).__name__}")
    return None


def get_string_list_value_checked(
    table: TomlTable,
    key: str,
    *,
    where: str,
    diagnostics: ConfigIssueLog,
) -> list[str] | None:
    """Return a list of strings, dropping (and warning about) non-string items.

    Args:
        table (TomlTable): Table to query.
        key (str): Key to extract.
        where (str): Human-readable location used in warnings.
        diagnostics (ConfigIssueLog): Log receiving warnings.

    Returns:
        list[str] | None: The string items, or ``None`` when absent or not a list.
    """
    value: Any | None = table.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        _warn(diagnostics, f"{where}: expected a list of strings for '{key}'")
        return None
    result: list[str] = []
    for item in value:  # pyright: ignore[reportUnknownVariableType]
        if isinstance(item, str):
            result.append(item)
        else:
            _warn(
                diagnostics,
                f"{where}: ignoring non-string entry {item!r} in '{key}'",
            )
    return result


def get_int_value_checked(
    table: TomlTable,
    key: str,
    *,
    where: str,
    diagnostics: ConfigIssueLog,
    minimum: int | None = None,
) -> int | None:
    """Return an integer value, warning on non-integers and values below ``minimum``.

    Booleans are rejected even though ``bool`` subclasses ``int`` in Python.
    """
    value: Any | None = table.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        _warn(diagnostics, f"{where}: expected an integer for '{key}', got {value!r}")
        return None
    if minimum is not None and value < minimum:
        _warn(diagnostics, f"{where}: '{key}' must be >= {minimum}, got {value}")
        return None
    return value


def get_enum_value_checked(
    table: TomlTable,
    key: str,
    enum_cls: type[E],
    *,
    where: str,
    diagnostics: ConfigIssueLog,
) -> E | None:
    """Return an enum member looked up by value, warning on unknown values.

    Args:
        table (TomlTable): Table to query.
        key (str): Key to extract.
        enum_cls (type[E]): Enum class whose member values are the allowed strings.
        where (str): Human-readable location used in warnings.
        diagnostics (ConfigIssueLog): Log receiving warnings.

    Returns:
        E | None: The matching member, or ``None`` when absent or unknown.
    """
    raw: str | None = get_string_value_checked(
        table,
        key,
        where=where,
        diagnostics=diagnostics,
    )
    if raw is None:
        return None
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        allowed: str = ", ".join(str(m.value) for m in enum_cls)
        _warn(diagnostics, f"{where}: invalid value {raw!r} for '{key}' (allowed: {allowed})")
        return None
