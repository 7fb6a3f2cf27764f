from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional
import re

if TYPE_CHECKING:
    from .datefmt import DateFormat


class Kind(Enum):
    NUMERIC = "numeric"
    DATE = "date"
    TEXT = "text"


NUMERIC_TYPES: frozenset[str] = frozenset(
    {
        # DuckDB
        "TINYINT", "SMALLINT", "INTEGER", "BIGINT", "HUGEINT",
        "UTINYINT", "USMALLINT", "UINTEGER", "UBIGINT", "UHUGEINT",
        "FLOAT", "DOUBLE", "REAL", "DECIMAL", "NUMERIC",
        "INT", "INT1", "INT2", "INT4", "INT8", "LONG", "SHORT", "SIGNED",
        "FLOAT4", "FLOAT8",
        # Oracle-style names
        "NUMBER", "BINARY_FLOAT", "BINARY_DOUBLE",
    }
)

DATE_TYPES: frozenset[str] = frozenset(
    {
        "DATE",
        "DATETIME",
        "TIMESTAMP",
        "TIMESTAMP_S",
        "TIMESTAMP_MS",
        "TIMESTAMP_NS",
        "TIMESTAMP_US",
        "TIMESTAMPTZ",
        "TIMESTAMP WITH TIME ZONE",
        "TIME",
        "TIMETZ",
        "TIME WITH TIME ZONE",
    }
)

_PARAMS_RE = re.compile(r"\s*\(.*\)\s*$")


def normalize_type_name(native: Any) -> str:
    """Upper-case a native type name and strip parameters: ``decimal(18,3)`` -> ``DECIMAL``."""
    if native is None:
        return ""
    text = str(native).strip().upper()
    return _PARAMS_RE.sub("", text)


def map_type(native: Any) -> Kind:
    # Total: anything not recognised is exported as text.
    name = normalize_type_name(native)
    if name in NUMERIC_TYPES:
        return Kind.NUMERIC
    if name in DATE_TYPES:
        return Kind.DATE
    return Kind.TEXT


def _render_numeric(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value)
        return format(value.normalize(), "f")
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _render_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex().upper()
    return str(value)


def render_value(kind: Kind, value: Any, date_format: Optional["DateFormat"] = None) -> str:
    """String representation of one fetched value. NULL is always the empty string."""
    if value is None:
        return ""
    if kind == Kind.NUMERIC:
        return _render_numeric(value)
    if kind == Kind.DATE:
        if date_format is not None and isinstance(value, date):
            return date_format.render(value)
        return str(value)
    return _render_text(value)
