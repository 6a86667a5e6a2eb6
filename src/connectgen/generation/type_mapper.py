"""Type mapping utilities for code generation.

This module maps schema field kinds onto Python annotations and the default
literals used for optional parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..schema import Field


class TargetType(Enum):
    """Target categories a schema kind can map to.

    The value of each member is the Python annotation emitted for it.
    """

    STRING = "str"
    INTEGER = "int"
    FLOAT = "float"
    BOOLEAN = "bool"
    MAP = "dict[str, Any]"
    DYNAMIC = "Any"


@dataclass(frozen=True)
class TypeMapping:
    """The result of mapping a schema kind.

    Attributes:
        target: The target category
        default: Python literal of the kind's default value
    """

    target: TargetType
    default: str

    @property
    def annotation(self) -> str:
        return self.target.value


_INTEGER_KINDS = frozenset(
    {
        "int32",
        "int64",
        "uint32",
        "uint64",
        "sint32",
        "sint64",
        "fixed32",
        "fixed64",
        "sfixed32",
        "sfixed64",
    }
)

_STRING = TypeMapping(TargetType.STRING, '""')
_INTEGER = TypeMapping(TargetType.INTEGER, "0")
_FLOAT = TypeMapping(TargetType.FLOAT, "0.0")
_BOOLEAN = TypeMapping(TargetType.BOOLEAN, "False")
_MAP = TypeMapping(TargetType.MAP, "{}")
_DYNAMIC = TypeMapping(TargetType.DYNAMIC, "None")


def map_kind(kind: str) -> TypeMapping:
    """Map a schema field kind to its target type and default literal.

    Unknown kinds map to ``Any`` with a ``None`` default instead of failing,
    so an unrecognised but valid schema never aborts generation.

    Example:
        >>> map_kind("string")
        TypeMapping(target=<TargetType.STRING: 'str'>, default='""')
        >>> map_kind("bytes").annotation
        'Any'
    """
    if kind == "string":
        return _STRING
    if kind in _INTEGER_KINDS:
        return _INTEGER
    if kind in {"float", "double"}:
        return _FLOAT
    if kind == "bool":
        return _BOOLEAN
    if kind == "message":
        return _MAP
    return _DYNAMIC


def field_annotation(field: Field) -> str:
    """Annotation of a field inside a message shape."""
    annotation = map_kind(field.kind).annotation
    if field.is_repeated:
        return f"list[{annotation}]"
    return annotation
