"""
confbind.coerce
---------------

Conversion of loosely-typed values into a target field's kind.

Two entry points, with deliberately different strictness:

* ``coerce_env`` handles strings read from environment variables. Numbers
  that do not parse raise ``CoercionError``.
* ``coerce_document`` handles values already typed by the document parser.
  Mismatched types, numbers outside the 64-bit range of the field (negative
  ones for unsigned fields) and ``null`` return ``UNSET`` so the caller
  leaves the field alone.
"""

import math
import re
from enum import Enum
from typing import Any, Optional

from .exceptions import CoercionError

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
UINT64_MAX = 2 ** 64 - 1

_SIGNED = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"[0-9]+")


class FieldKind(Enum):
    STRING = "string"
    INT = "int"
    UINT = "uint"
    BOOL = "bool"
    SEQUENCE = "sequence"
    STRUCT = "struct"


SCALAR_KINDS = frozenset({FieldKind.STRING, FieldKind.INT, FieldKind.UINT, FieldKind.BOOL})


class _Unset:
    """Sentinel for "leave the field as it is" (distinct from ``None``)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


def zero_value(kind: FieldKind) -> Any:
    """Zero value for a scalar kind."""
    if kind is FieldKind.STRING:
        return ""
    if kind is FieldKind.BOOL:
        return False
    if kind in (FieldKind.INT, FieldKind.UINT):
        return 0
    raise ValueError(f"No zero value for kind {kind.value}")


# --- Environment strings ---

def _parse_int(value: str, kind: FieldKind, key: Optional[str], env_var: Optional[str]) -> int:
    pattern = _UNSIGNED if kind is FieldKind.UINT else _SIGNED
    if not pattern.fullmatch(value):
        raise CoercionError(value, kind.value, key=key, env_var=env_var, reason="invalid syntax")
    number = int(value)
    low, high = (0, UINT64_MAX) if kind is FieldKind.UINT else (INT64_MIN, INT64_MAX)
    if not low <= number <= high:
        raise CoercionError(value, kind.value, key=key, env_var=env_var, reason="value out of range")
    return number


def _env_scalar(value: str, kind: FieldKind, key: Optional[str], env_var: Optional[str]) -> Any:
    if kind is FieldKind.STRING:
        return value
    if kind in (FieldKind.INT, FieldKind.UINT):
        return _parse_int(value, kind, key, env_var)
    if kind is FieldKind.BOOL:
        # Permissive: anything but "true"/"1" is False
        return value == "true" or value == "1"
    raise CoercionError(value, kind.value, key=key, env_var=env_var, reason="not a scalar kind")


def coerce_env(value: str, kind: FieldKind, elem_kind: Optional[FieldKind] = None,
               key: Optional[str] = None, env_var: Optional[str] = None) -> Any:
    """
    Convert an environment variable string into ``kind``.

    Sequences are read as comma-separated lists; surrounding whitespace is
    stripped and empty items are dropped before each item is converted.

    Args:
        value: The raw environment string.
        kind: Target field kind.
        elem_kind: Element kind, required when ``kind`` is SEQUENCE.
        key: Dotted key, only used in error messages.
        env_var: Variable name, only used in error messages.

    Raises:
        CoercionError: If an integer field gets text that is not a base-10
            integer in range.
    """
    if kind is FieldKind.SEQUENCE:
        if elem_kind is None:
            raise CoercionError(value, kind.value, key=key, env_var=env_var, reason="unknown element kind")
        items = [part.strip() for part in value.split(",")]
        return [_env_scalar(item, elem_kind, key, env_var) for item in items if item]
    return _env_scalar(value, kind, key, env_var)


# --- Document values ---

def _document_int(value: Any, kind: FieldKind) -> Any:
    # bool is an int subclass but never a number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return UNSET
    if kind is FieldKind.UINT and value < 0:
        return UNSET
    if isinstance(value, float):
        if not math.isfinite(value):
            return UNSET
        value = int(value)  # truncates toward zero
    low, high = (0, UINT64_MAX) if kind is FieldKind.UINT else (INT64_MIN, INT64_MAX)
    if not low <= value <= high:
        return UNSET
    return value


def _document_scalar(value: Any, kind: FieldKind) -> Any:
    if value is None:
        return UNSET
    if kind is FieldKind.STRING:
        return value if isinstance(value, str) else UNSET
    if kind in (FieldKind.INT, FieldKind.UINT):
        return _document_int(value, kind)
    if kind is FieldKind.BOOL:
        return value if isinstance(value, bool) else UNSET
    return UNSET


def coerce_document(value: Any, kind: FieldKind, elem_kind: Optional[FieldKind] = None) -> Any:
    """
    Convert a parsed document value into ``kind``.

    Never raises for bad data: anything that does not fit returns ``UNSET``.
    For sequences a new list is built with one entry per source item; items
    that do not convert become the element kind's zero value.
    """
    if value is None:
        return UNSET
    if kind is FieldKind.SEQUENCE:
        if not isinstance(value, (list, tuple)) or elem_kind not in SCALAR_KINDS:
            return UNSET
        result = []
        for item in value:
            converted = _document_scalar(item, elem_kind)
            result.append(zero_value(elem_kind) if converted is UNSET else converted)
        return result
    return _document_scalar(value, kind)
