"""Types, symbol entries and expression attributes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class Kind(enum.Enum):
    INT = 0
    FLOAT = 1
    STRUCT = 2
    ARRAY = 3
    STRUCT_TYPE = 4


@dataclass
class Type:
    """A data type.

    ``ARRAY`` uses ``elem`` and ``size``; ``STRUCT`` points at the symbol that
    defines the structure; ``STRUCT_TYPE`` lists the members.
    """

    kind: Kind
    elem: Type | None = None
    size: int = 0
    struct: Symbol | None = None
    members: list[Symbol] = field(default_factory=list)


@dataclass(eq=False)
class Symbol:
    """An entry of the variable table (variables, members, structure tags)."""

    name: str
    defined: bool = False
    dtype: Type | None = None


@dataclass(eq=False)
class Function:
    """An entry of the function table."""

    name: str
    defined: bool = False
    return_type: Type | None = None
    params: list[Symbol] = field(default_factory=list)


class ValueCategory(enum.Enum):
    ERROR = 0
    LVALUE = 1
    RVALUE = 2


@dataclass
class ExpType:
    """The type and value category of an expression."""

    category: ValueCategory
    dtype: Type | None = None

    def is_error(self) -> bool:
        return self.category is ValueCategory.ERROR


def _members_match(one: list[Symbol], other: list[Symbol]) -> bool:
    if len(one) != len(other):
        return False
    return all(types_match(a.dtype, b.dtype) for a, b in zip(one, other))


def types_match(one: Type | None, other: Type | None) -> bool:
    """Structural type equivalence; array sizes are not compared."""
    if one is None or other is None or one.kind is not other.kind:
        return False
    if one.kind in (Kind.INT, Kind.FLOAT):
        return True
    if one.kind is Kind.STRUCT:
        if one.struct is None or other.struct is None:
            return False
        return types_match(one.struct.dtype, other.struct.dtype)
    if one.kind is Kind.ARRAY:
        return types_match(one.elem, other.elem)
    return _members_match(one.members, other.members)


def size_of(dtype: Type | None) -> int:
    """Bytes occupied by a value of ``dtype``."""
    if dtype is None:
        return 0
    if dtype.kind in (Kind.INT, Kind.FLOAT):
        return 4
    if dtype.kind is Kind.ARRAY:
        return size_of(dtype.elem) * dtype.size
    if dtype.kind is Kind.STRUCT:
        return size_of(dtype.struct.dtype) if dtype.struct else 0
    return sum(size_of(member.dtype) for member in dtype.members)